"""Release command: config schema, task bodies and task graph."""

from .command import RELEASE_COMMAND, build_release_tasks
from .config import ReleaseConfig, ReleaseConfigSchema

__all__ = ["RELEASE_COMMAND", "ReleaseConfig", "ReleaseConfigSchema", "build_release_tasks"]
