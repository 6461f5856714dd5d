"""Core types shared by every firefly layer."""

from .config import FileConfig, load_config, load_config_or_default
from .errors import ErrorKind, ExitCode, FireflyError, exit_code_for
from .result import Err, Ok, Result, capture, is_err, is_ok

__all__ = [
    # config
    "FileConfig",
    "load_config",
    "load_config_or_default",
    # errors
    "ErrorKind",
    "ExitCode",
    "FireflyError",
    "exit_code_for",
    # result
    "Err",
    "Ok",
    "Result",
    "capture",
    "is_err",
    "is_ok",
]
