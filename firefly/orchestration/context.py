"""Execution context shared by the tasks of one run.

The context holds two things:

- ``config``: the command's validated configuration. It can be replaced with
  :meth:`ExecutionContext.set_config` until the orchestrator seals the
  context at the start of a run; after that it is read-only.
- ``data``: a run-scoped key/value store. Tasks write values for later tasks
  to read. Keys are free-form strings; a missing key is reported as a
  NOT_FOUND error, never a crash.

The orchestrator runs tasks one at a time, so no locking is involved.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any, TypeVar, cast
from uuid import uuid4

from firefly.core.errors import (
    FireflyError,
    conflict_error,
    invalid_error,
    not_found_error,
    unexpected_error,
    validation_error,
)
from firefly.core.result import Err, Ok, Result

T = TypeVar("T")

_SOURCE = "context"

__all__ = ["ExecutionContext", "context_value", "new_execution_id"]


def new_execution_id() -> str:
    return uuid4().hex


class ExecutionContext[C]:
    """Per-run container of immutable config and mutable data.

    Attributes:
        execution_id: Unique id of the run.
        start_time: UTC creation time.
        command: Name of the command whose task graph is running.
    """

    __slots__ = ("execution_id", "start_time", "command", "_config", "_data", "_sealed")

    def __init__(
        self,
        config: C,
        *,
        command: str | None = None,
        execution_id: str | None = None,
        initial: Mapping[str, object] | None = None,
    ) -> None:
        self.execution_id = execution_id or new_execution_id()
        self.start_time = datetime.now(UTC)
        self.command = command
        self._config = config
        self._data: dict[str, object] = dict(initial or {})
        self._sealed = False

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(command={self.command!r}, execution_id={self.execution_id!r}, "
            f"keys={sorted(self._data)!r})"
        )

    # -- config ---------------------------------------------------------

    @property
    def config(self) -> C:
        return self._config

    def get_config(self) -> C:
        return self._config

    def set_config(self, config: C) -> Result[None, FireflyError]:
        """Replace the configuration; CONFLICT once the context is sealed."""
        if self._sealed:
            return Err(
                conflict_error("configuration is frozen once the run has started", source=_SOURCE)
            )
        self._config = config
        return Ok(None)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """Freeze the configuration for the rest of the context's life."""
        self._sealed = True

    # -- data -----------------------------------------------------------

    def get(self, key: str) -> Result[object, FireflyError]:
        """Read ``key``; NOT_FOUND when no earlier task wrote it."""
        if key not in self._data:
            return Err(not_found_error(f"key '{key}' not found in context", source=_SOURCE))
        return Ok(self._data[key])

    def get_as(self, key: str, kind: type[T]) -> Result[T, FireflyError]:
        """Read ``key`` and check its type; INVALID when it does not match."""
        result = self.get(key)
        if isinstance(result, Err):
            return result
        value = result.value
        if not isinstance(value, kind):
            return Err(
                invalid_error(
                    f"key '{key}' holds {type(value).__name__}, expected {kind.__name__}",
                    source=_SOURCE,
                )
            )
        return Ok(value)

    def get_or(self, key: str, default: T) -> object | T:
        return self._data.get(key, default)

    def set(self, key: str, value: object) -> Result[None, FireflyError]:
        if not key:
            return Err(validation_error("context keys must be non-empty", source=_SOURCE))
        self._data[key] = value
        return Ok(None)

    def update(self, key: str, fn: Callable[[Any], object]) -> Result[None, FireflyError]:
        """Replace ``key`` with ``fn(current)``; ``current`` is None when absent.

        An exception raised by ``fn`` leaves the data untouched and is
        returned as an UNEXPECTED error.
        """
        if not key:
            return Err(validation_error("context keys must be non-empty", source=_SOURCE))
        try:
            new_value = fn(self._data.get(key))
        except Exception as e:  # noqa: BLE001 - updater is caller-provided
            return Err(unexpected_error(f"update of '{key}' failed: {e}", source=_SOURCE, cause=e))
        self._data[key] = new_value
        return Ok(None)

    def has(self, key: str) -> bool:
        """True when ``key`` holds a non-None value."""
        return key in self._data and self._data[key] is not None

    def snapshot(self) -> Mapping[str, object]:
        """Read-only copy of the data, detached from later writes."""
        return MappingProxyType(dict(self._data))

    def clear(self) -> Result[None, FireflyError]:
        self._data.clear()
        return Ok(None)

    def keys(self) -> list[str]:
        return sorted(self._data)


def context_value[T](context: ExecutionContext[Any], key: str, kind: type[T]) -> T | None:
    """Typed read for display code that treats absence as None."""
    value = context.get_or(key, None)
    if isinstance(value, kind):
        return cast(T, value)
    return None
