"""Command registry.

A :class:`Command` couples a name with the schema that validates its
configuration and the builder that produces its task graph. The registry is
an explicit object passed to whoever needs it; there is no module-level
instance.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from firefly.core.errors import FireflyError, conflict_error, not_found_error, validation_error
from firefly.core.result import Err, Ok, Result

from .context import ExecutionContext
from .task import Task

_SOURCE = "registry"

__all__ = ["Command", "CommandRegistry", "ConfigSchema"]


class ConfigSchema[C](Protocol):
    """Turns an untyped mapping (TOML section merged with CLI flags) into ``C``."""

    def parse(self, raw: Mapping[str, object]) -> Result[C, FireflyError]: ...


type BuildTasks[C, S] = Callable[[ExecutionContext[C], S], Result[list[Task], FireflyError]]


@dataclass(frozen=True, slots=True)
class Command[C, S]:
    """A runnable command.

    Attributes:
        name: CLI name, unique within a registry.
        description: One-line help.
        config_schema: Validates the command configuration before any task runs.
        build_tasks: Builds the task list from the context and services.
        examples: Example invocations shown by ``firefly commands``.
    """

    name: str
    description: str
    config_schema: ConfigSchema[C]
    build_tasks: BuildTasks[C, S]
    examples: tuple[str, ...] = ()


class CommandRegistry:
    """Name -> command lookup; registering a name twice is a CONFLICT."""

    def __init__(self) -> None:
        self._commands: dict[str, Command[Any, Any]] = {}

    def register(self, command: Command[Any, Any]) -> Result[None, FireflyError]:
        if not command.name:
            return Err(validation_error("command name must be non-empty", source=_SOURCE))
        if command.name in self._commands:
            return Err(conflict_error(f"command already registered: {command.name}", source=_SOURCE))
        self._commands[command.name] = command
        return Ok(None)

    def register_all(self, commands: Iterable[Command[Any, Any]]) -> Result[None, FireflyError]:
        """Register each command; stops at the first failure, keeping earlier ones."""
        for command in commands:
            result = self.register(command)
            if isinstance(result, Err):
                return result
        return Ok(None)

    def get(self, name: str) -> Result[Command[Any, Any], FireflyError]:
        command = self._commands.get(name)
        if command is None:
            known = ", ".join(self.names()) or "none"
            return Err(
                not_found_error(
                    f"unknown command: {name}",
                    source=_SOURCE,
                    details=[f"registered commands: {known}"],
                )
            )
        return Ok(command)

    def get_all(self) -> list[Command[Any, Any]]:
        return list(self._commands.values())

    def names(self) -> list[str]:
        return list(self._commands)

    def has(self, name: str) -> bool:
        return name in self._commands

    def clear(self) -> None:
        self._commands.clear()

    def __len__(self) -> int:
        return len(self._commands)
