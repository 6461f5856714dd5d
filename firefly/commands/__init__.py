"""Built-in commands."""

from firefly.core.errors import FireflyError
from firefly.core.result import Err, Ok, Result
from firefly.orchestration.registry import CommandRegistry

from .release import RELEASE_COMMAND

__all__ = ["default_registry"]


def default_registry() -> Result[CommandRegistry, FireflyError]:
    """A fresh registry holding every built-in command."""
    registry = CommandRegistry()
    registered = registry.register_all([RELEASE_COMMAND])
    if isinstance(registered, Err):
        return registered
    return Ok(registry)
