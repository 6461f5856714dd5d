"""Task definitions.

A :class:`Task` is a stateless description of one release step. The
orchestrator calls its hooks in this order:

1. ``should_execute(context)``: decide to run or skip. Returns a bool, a
   :class:`Run` / :class:`Skip` decision, or an ``Err`` when the decision
   cannot be made (fatal for the run).
2. ``execute(context)``: perform the step; returns ``Ok(None)`` or ``Err``.
3. ``next_step(context)``: after a successful execute, tell the orchestrator
   how to continue (:class:`Continue`, :class:`SkipTo`, :class:`Abort`).
4. ``undo(context)``: compensation, called in reverse order if a later task
   fails.

Most tasks are built with :class:`TaskBuilder`:

    task = (
        TaskBuilder("create-tag")
        .description("Create the release tag")
        .depends_on("commit-changes")
        .skip_when(lambda ctx: ctx.config.skip_git, "git disabled")
        .execute(create_tag)
        .with_undo(delete_tag)
        .build()
    )
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from firefly.core.errors import FireflyError
from firefly.core.result import Ok, Result

from .context import ExecutionContext

__all__ = [
    "Abort",
    "Continue",
    "CONTINUE",
    "Decision",
    "ExecuteFn",
    "FlowInstruction",
    "NextStepFn",
    "RUN",
    "Run",
    "ShouldExecuteFn",
    "Skip",
    "SkipTo",
    "Task",
    "TaskBuilder",
    "UndoFn",
]

type Context = ExecutionContext[Any]


# -- run/skip decisions ------------------------------------------------


@dataclass(frozen=True, slots=True)
class Run:
    """Execute the task."""


@dataclass(frozen=True, slots=True)
class Skip:
    """Skip the task.

    Attributes:
        reason: Shown in the report and logs.
        through: Optional task id to jump to. Every task scheduled between
            this one and ``through`` is skipped as well.
    """

    reason: str = "condition not met"
    through: str | None = None


RUN = Run()

type Decision = Run | Skip


# -- post-execution flow instructions ----------------------------------


@dataclass(frozen=True, slots=True)
class Continue:
    """Proceed with the next task in order."""


@dataclass(frozen=True, slots=True)
class SkipTo:
    """Skip every remaining task scheduled before ``task_id``."""

    task_id: str
    reason: str = "skipped by branch"


@dataclass(frozen=True, slots=True)
class Abort:
    """Stop the run as a failure and roll back."""

    reason: str


CONTINUE = Continue()

type FlowInstruction = Continue | SkipTo | Abort


type ShouldExecuteFn = Callable[[Context], bool | Decision | Result[bool | Decision, FireflyError]]
type ExecuteFn = Callable[[Context], Result[None, FireflyError]]
type UndoFn = Callable[[Context], Result[None, FireflyError]]
type NextStepFn = Callable[[Context], FlowInstruction]


@dataclass(frozen=True, slots=True)
class Task:
    """One unit of work in a command's task graph.

    Attributes:
        id: Unique id within the graph.
        description: Human-readable summary.
        execute: The effectful operation.
        dependencies: Ids that must run (or be skipped) first.
        should_execute: Optional run/skip predicate; None means always run.
        undo: Optional compensation.
        can_undo: Override for rollback registration; defaults to True when
            ``undo`` is set.
        next_step: Optional post-execution branching hook.
    """

    id: str
    description: str
    execute: ExecuteFn
    dependencies: frozenset[str] = field(default_factory=frozenset)
    should_execute: ShouldExecuteFn | None = None
    undo: UndoFn | None = None
    can_undo: bool | None = None
    next_step: NextStepFn | None = None

    @property
    def undoable(self) -> bool:
        """True when the task takes part in rollback."""
        if self.undo is None:
            return False
        return True if self.can_undo is None else self.can_undo

    def __repr__(self) -> str:
        deps = ",".join(sorted(self.dependencies))
        return f"Task({self.id!r}, deps=[{deps}], undoable={self.undoable})"


def _noop(_: Context) -> Result[None, FireflyError]:
    return Ok(None)


class TaskBuilder:
    """Fluent constructor for :class:`Task`."""

    def __init__(self, task_id: str) -> None:
        self._id = task_id
        self._description: str | None = None
        self._dependencies: list[str] = []
        self._should_execute: ShouldExecuteFn | None = None
        self._execute: ExecuteFn | None = None
        self._undo: UndoFn | None = None
        self._can_undo: bool | None = None
        self._next_step: NextStepFn | None = None

    def description(self, text: str) -> TaskBuilder:
        self._description = text
        return self

    def depends_on(self, *task_ids: str) -> TaskBuilder:
        self._dependencies.extend(task_ids)
        return self

    def run_if(self, fn: ShouldExecuteFn) -> TaskBuilder:
        """Use ``fn`` as the raw ``should_execute`` hook."""
        self._should_execute = fn
        return self

    def skip_when(
        self,
        predicate: Callable[[Context], bool],
        reason: str = "condition not met",
    ) -> TaskBuilder:
        """Skip when ``predicate`` is true."""

        def decide(ctx: Context) -> Decision:
            return Skip(reason=reason) if predicate(ctx) else RUN

        self._should_execute = decide
        return self

    def skip_through_when(
        self,
        predicate: Callable[[Context], bool],
        target: str,
        reason: str = "condition not met",
    ) -> TaskBuilder:
        """Skip this task and everything up to ``target`` when ``predicate`` is true."""

        def decide(ctx: Context) -> Decision:
            return Skip(reason=reason, through=target) if predicate(ctx) else RUN

        self._should_execute = decide
        return self

    def execute(self, fn: ExecuteFn) -> TaskBuilder:
        self._execute = fn
        return self

    def with_undo(self, fn: UndoFn, *, can_undo: bool | None = None) -> TaskBuilder:
        self._undo = fn
        self._can_undo = can_undo
        return self

    def then(self, fn: NextStepFn) -> TaskBuilder:
        """Set the post-execution branching hook."""
        self._next_step = fn
        return self

    def build(self) -> Task:
        """Create the task.

        Raises:
            ValueError: When the id or description is empty. Graph builders
                call this at definition time, so a malformed task is a
                programming error rather than a runtime condition.
        """
        if not self._id.strip():
            raise ValueError("task id must be non-empty")
        if not self._description:
            raise ValueError(f"task '{self._id}' needs a description")
        return Task(
            id=self._id,
            description=self._description,
            execute=self._execute or _noop,
            dependencies=frozenset(self._dependencies),
            should_execute=self._should_execute,
            undo=self._undo,
            can_undo=self._can_undo,
            next_step=self._next_step,
        )
