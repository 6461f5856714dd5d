"""Configuration file discovery and loading.

firefly reads its settings from ``firefly.toml`` at the project root, or from
the ``[tool.firefly]`` table of ``pyproject.toml`` when no dedicated file
exists. Loading only parses TOML into a typed container of raw tables;
each command validates its own section through its ``ConfigSchema``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .errors import FireflyError, io_error, not_found_error, validation_error
from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "FileConfig",
    "find_config_file",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = "firefly.toml"
PYPROJECT_FILE_NAME = "pyproject.toml"

_SOURCE = "config"


@dataclass(frozen=True, slots=True)
class FileConfig:
    """Parsed configuration file.

    Attributes:
        path: File the values came from (None for defaults).
        verbose: Global verbose flag.
        dry_run: Global dry-run flag.
        sections: Per-command raw tables, keyed by command name.
    """

    path: Path | None = None
    verbose: bool = False
    dry_run: bool = False
    sections: dict[str, StrDict] = field(default_factory=dict)

    def section(self, command: str) -> StrDict:
        """Raw table for ``command`` (empty when absent)."""
        return dict(self.sections.get(command, {}))

    @classmethod
    def from_dict(cls, data: StrDict, *, path: Path | None = None) -> FileConfig:
        sections: dict[str, StrDict] = {}
        for key in data:
            table = get_table(data, key)
            if table is not None:
                sections[key] = table
        return cls(
            path=path,
            verbose=get_bool(data, "verbose") or False,
            dry_run=get_bool(data, "dry_run") or False,
            sections=sections,
        )


def find_config_file(root: Path) -> Path | None:
    """Return the config file used for ``root``, if any.

    ``firefly.toml`` wins over ``pyproject.toml``; a ``pyproject.toml``
    only counts when it carries a ``[tool.firefly]`` table.
    """
    candidate = root / CONFIG_FILE_NAME
    if candidate.is_file():
        return candidate

    pyproject = root / PYPROJECT_FILE_NAME
    if pyproject.is_file():
        parsed = _parse_toml(pyproject)
        if isinstance(parsed, Ok) and _tool_table(parsed.value) is not None:
            return pyproject
    return None


def _tool_table(data: StrDict) -> StrDict | None:
    tool = get_table(data, "tool")
    if tool is None:
        return None
    return get_table(tool, "firefly")


def _parse_toml(path: Path) -> Result[StrDict, FireflyError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
    except FileNotFoundError:
        return Err(not_found_error(f"config file not found: {path}", source=_SOURCE))
    except PermissionError as e:
        return Err(io_error(f"permission denied reading: {path}", source=_SOURCE, cause=e))
    except tomllib.TOMLDecodeError as e:
        return Err(validation_error(f"invalid TOML syntax in {path}: {e}", source=_SOURCE))
    except UnicodeDecodeError as e:
        return Err(io_error(f"cannot decode {path}: {e}", source=_SOURCE, cause=e))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(validation_error("config root must be a TOML table", source=_SOURCE))
    return Ok(data)


def load_config(path: Path) -> Result[FileConfig, FireflyError]:
    """Load a configuration file.

    Args:
        path: ``firefly.toml`` or a ``pyproject.toml`` with ``[tool.firefly]``.

    Returns:
        Ok(FileConfig), or Err(FireflyError) when the file cannot be read or
        is not valid TOML.
    """
    parsed = _parse_toml(path)
    if isinstance(parsed, Err):
        return parsed

    data = parsed.value
    if path.name == PYPROJECT_FILE_NAME:
        tool = _tool_table(data)
        if tool is None:
            return Err(
                validation_error(f"{path} has no [tool.firefly] table", source=_SOURCE)
            )
        data = tool

    return Ok(FileConfig.from_dict(data, path=path))


def load_config_or_default(root: Path) -> Result[FileConfig, FireflyError]:
    """Load the project's config file, or defaults when there is none.

    A file that exists but fails to parse is still an error.
    """
    path = find_config_file(root)
    if path is None:
        return Ok(FileConfig())
    return load_config(path)
