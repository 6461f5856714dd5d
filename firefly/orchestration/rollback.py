"""Compensation stack for undoable tasks.

The orchestrator registers each undoable task just before executing it. On
failure the stack is unwound most-recent-first; the first undo that fails
stops the unwinding so the operator can see exactly which compensations did
not run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from firefly.core.errors import FireflyError, conflict_error, validation_error
from firefly.core.result import Err, Ok, Result, capture
from firefly.output.console import ConsoleProtocol

from .context import ExecutionContext
from .task import Task

_SOURCE = "rollback"

__all__ = ["RollbackManager", "RollbackOutcome"]


@dataclass(frozen=True, slots=True)
class RollbackOutcome:
    """Result of unwinding the stack.

    Attributes:
        rolled_back: Ids undone successfully, in the order they were undone.
        failed_task: Id whose undo failed, or None.
        error: The undo failure, or None.
        pending: Ids left on the stack because unwinding stopped early.
    """

    rolled_back: tuple[str, ...] = ()
    failed_task: str | None = None
    error: FireflyError | None = None
    pending: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.failed_task is None


class RollbackManager:
    """LIFO stack of executed undoable tasks for one run."""

    def __init__(self, console: ConsoleProtocol | None = None) -> None:
        self._console = console
        self._stack: list[Task] = []
        self._running = False

    def add_task(self, task: Task) -> Result[None, FireflyError]:
        if not task.undoable:
            return Err(validation_error(f"task '{task.id}' is not undoable", source=_SOURCE))
        self._stack.append(task)
        return Ok(None)

    def has_tasks(self) -> bool:
        return bool(self._stack)

    @property
    def task_count(self) -> int:
        return len(self._stack)

    def task_ids(self) -> list[str]:
        """Registered ids, oldest first."""
        return [t.id for t in self._stack]

    def clear(self) -> None:
        self._stack.clear()

    def execute_rollback(self, context: ExecutionContext[Any]) -> Result[RollbackOutcome, FireflyError]:
        """Undo registered tasks most-recent-first.

        Each undone task is popped. On the first failing undo the walk stops
        and that task plus everything older stays on the stack, listed in
        ``RollbackOutcome.pending``.

        Returns:
            Ok(RollbackOutcome), or Err(CONFLICT) when called while a
            rollback is already in progress.
        """
        if self._running:
            return Err(conflict_error("rollback already in progress", source=_SOURCE))

        self._running = True
        rolled_back: list[str] = []
        try:
            while self._stack:
                task = self._stack[-1]
                undo = task.undo
                if undo is None:
                    self._stack.pop()
                    continue
                self._emit_debug(f"undo {task.id}")
                result = capture(
                    lambda: undo(context),
                    source=_SOURCE,
                    message=f"undo of '{task.id}' raised",
                )
                if isinstance(result, Err):
                    if self._console is not None:
                        self._console.error(f"undo {task.id} failed: {result.error.pretty()}")
                    return Ok(
                        RollbackOutcome(
                            rolled_back=tuple(rolled_back),
                            failed_task=task.id,
                            error=result.error,
                            pending=tuple(reversed(self.task_ids())),
                        )
                    )
                self._stack.pop()
                rolled_back.append(task.id)
                if self._console is not None:
                    self._console.print(f"  undone {task.id}")
        finally:
            self._running = False

        return Ok(RollbackOutcome(rolled_back=tuple(rolled_back)))

    def _emit_debug(self, message: str) -> None:
        if self._console is not None:
            self._console.debug(message)
