"""Sequential task execution with rollback.

:class:`TaskOrchestrator` drives one run through this state machine::

    PENDING -> RUNNING -> SUCCEEDED
                       -> FAILED -> ROLLING_BACK -> ROLLED_BACK
                                                -> ROLLBACK_FAILED

A graph that cannot be resolved goes straight from PENDING to FAILED and
nothing executes.

Every callable a task supplies (predicate, execute, next step, undo) runs
behind :func:`firefly.core.result.capture`, so :meth:`TaskOrchestrator.run`
never raises; the returned :class:`ExecutionReport` carries every outcome.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from firefly.core.errors import (
    ExitCode,
    FireflyError,
    exit_code_for,
    failed_error,
    invalid_error,
    not_found_error,
    unexpected_error,
)
from firefly.core.result import Err, Ok, Result, capture
from firefly.output.console import ConsoleProtocol, Style

from .context import ExecutionContext
from .graph import resolve_tasks
from .rollback import RollbackManager, RollbackOutcome
from .task import Abort, Continue, Decision, FlowInstruction, RUN, Run, Skip, SkipTo, Task

_SOURCE = "orchestrator"

__all__ = [
    "CancellationToken",
    "ExecutionReport",
    "RunState",
    "TaskOrchestrator",
    "TaskOutcome",
    "TaskStatus",
]


class RunState(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_FAILED = "rollback_failed"

    def __str__(self) -> str:
        return self.value


_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.PENDING: frozenset({RunState.RUNNING, RunState.FAILED}),
    RunState.RUNNING: frozenset({RunState.SUCCEEDED, RunState.FAILED}),
    RunState.FAILED: frozenset({RunState.ROLLING_BACK}),
    RunState.ROLLING_BACK: frozenset({RunState.ROLLED_BACK, RunState.ROLLBACK_FAILED}),
    RunState.SUCCEEDED: frozenset(),
    RunState.ROLLED_BACK: frozenset(),
    RunState.ROLLBACK_FAILED: frozenset(),
}


class TaskStatus(Enum):
    EXECUTED = "executed"
    SKIPPED = "skipped"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class TaskOutcome:
    task_id: str
    status: TaskStatus
    reason: str | None = None
    error: FireflyError | None = None
    duration_ms: float = 0.0


class CancellationToken:
    """Request, from outside a task, that the run stop and roll back.

    Cancellation is observed between tasks only; a running task is never
    interrupted.
    """

    def __init__(self) -> None:
        self._reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        self._reason = reason

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> str | None:
        return self._reason


@dataclass(frozen=True, slots=True)
class ExecutionReport:
    """Everything that happened during one run.

    Attributes:
        state: Final state of the run.
        order: Resolved execution order (empty when resolution failed).
        outcomes: Per-task outcomes in the order they were decided.
        error: The error that ended the run, or None on success.
        rollback: Rollback outcome, or None when no rollback ran.
        started_at: UTC start timestamp.
        finished_at: UTC end timestamp.
        aborted_by: Id of the task whose next step returned Abort.
        cancelled: True when a CancellationToken stopped the run.
        still_applied: Undoable tasks whose effects remain after a failed run,
            most recent first. Empty when rollback undid everything.
    """

    state: RunState
    command: str | None
    execution_id: str
    order: tuple[str, ...]
    outcomes: tuple[TaskOutcome, ...]
    error: FireflyError | None
    rollback: RollbackOutcome | None
    started_at: datetime
    finished_at: datetime
    aborted_by: str | None = None
    cancelled: bool = False
    still_applied: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.state is RunState.SUCCEEDED

    def _ids(self, status: TaskStatus) -> list[str]:
        return [o.task_id for o in self.outcomes if o.status is status]

    @property
    def executed(self) -> list[str]:
        return self._ids(TaskStatus.EXECUTED)

    @property
    def skipped(self) -> list[str]:
        return self._ids(TaskStatus.SKIPPED)

    @property
    def failed(self) -> list[str]:
        return self._ids(TaskStatus.FAILED)

    @property
    def not_run(self) -> list[str]:
        """Ids in the order that were never reached."""
        seen = {o.task_id for o in self.outcomes}
        return [tid for tid in self.order if tid not in seen]

    @property
    def skip_reasons(self) -> dict[str, str]:
        return {
            o.task_id: o.reason or ""
            for o in self.outcomes
            if o.status is TaskStatus.SKIPPED
        }

    def outcome(self, task_id: str) -> TaskOutcome | None:
        for o in self.outcomes:
            if o.task_id == task_id:
                return o
        return None

    @property
    def rollback_executed(self) -> bool:
        return self.rollback is not None

    @property
    def rollback_succeeded(self) -> bool:
        return self.rollback is not None and self.rollback.success

    @property
    def is_clean_failure(self) -> bool:
        """Failed, and nothing a task did is left applied."""
        return not self.success and not self.is_dirty_failure

    @property
    def is_dirty_failure(self) -> bool:
        """Failed with effects still applied; the operator must intervene.

        Covers a rollback that stopped early and a run with rollback disabled
        that had already executed undoable tasks.
        """
        return self.state is RunState.ROLLBACK_FAILED or (
            not self.success and bool(self.still_applied)
        )

    @property
    def duration(self) -> timedelta:
        return self.finished_at - self.started_at

    @property
    def duration_ms(self) -> float:
        return self.duration.total_seconds() * 1000.0

    def exit_code(self) -> ExitCode:
        if self.success:
            return ExitCode.OK
        if self.is_dirty_failure:
            return ExitCode.ROLLBACK_FAILED
        if not self.rollback_executed and not self.outcomes and self.error is not None:
            return exit_code_for(self.error.kind)
        return ExitCode.TASK_FAILED


@dataclass
class _RunRecord:
    """Mutable bookkeeping for one run; frozen into an ExecutionReport at the end."""

    context: ExecutionContext[Any]
    started_at: datetime
    state: RunState = RunState.PENDING
    order: list[str] = field(default_factory=list)
    outcomes: list[TaskOutcome] = field(default_factory=list)
    error: FireflyError | None = None
    rollback: RollbackOutcome | None = None
    aborted_by: str | None = None
    cancelled: bool = False
    applied: list[str] = field(default_factory=list)

    def transition(self, target: RunState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal run transition {self.state} -> {target}")
        self.state = target

    def skip(self, task_id: str, reason: str) -> None:
        self.outcomes.append(TaskOutcome(task_id, TaskStatus.SKIPPED, reason=reason))

    def still_applied(self) -> tuple[str, ...]:
        if self.state is RunState.SUCCEEDED:
            return ()
        if self.rollback is not None:
            return self.rollback.pending
        return tuple(reversed(self.applied))

    def report(self) -> ExecutionReport:
        return ExecutionReport(
            state=self.state,
            command=self.context.command,
            execution_id=self.context.execution_id,
            order=tuple(self.order),
            outcomes=tuple(self.outcomes),
            error=self.error,
            rollback=self.rollback,
            started_at=self.started_at,
            finished_at=datetime.now(UTC),
            aborted_by=self.aborted_by,
            cancelled=self.cancelled,
            still_applied=self.still_applied(),
        )


class TaskOrchestrator:
    """Runs a task set against a context, one task at a time.

    Attributes:
        console: Receives one line per run event.
        rollback_enabled: When False, failures are reported without undo.
    """

    def __init__(self, console: ConsoleProtocol, *, rollback_enabled: bool = True) -> None:
        self.console = console
        self.rollback_enabled = rollback_enabled

    def run(
        self,
        tasks: Sequence[Task],
        context: ExecutionContext[Any],
        *,
        cancellation: CancellationToken | None = None,
    ) -> ExecutionReport:
        record = _RunRecord(context=context, started_at=datetime.now(UTC))
        context.seal()

        resolved = resolve_tasks(tasks)
        if isinstance(resolved, Err):
            record.error = resolved.error
            record.transition(RunState.FAILED)
            self.console.error(resolved.error.pretty())
            for line in resolved.error.details:
                self.console.print(f"  {line}", Style.DIM)
            return record.report()

        ordered = resolved.value
        record.order = [t.id for t in ordered]
        position = {t.id: i for i, t in enumerate(ordered)}
        rollback = RollbackManager(self.console)
        record.transition(RunState.RUNNING)
        self.console.debug(f"execution order: {', '.join(record.order)}")

        i = 0
        while i < len(ordered):
            if self._observe_cancel(record, cancellation):
                break

            task = ordered[i]
            decision = self._decide(task, context)
            if isinstance(decision, Err):
                self._fail(record, task, decision.error)
                break

            match decision.value:
                case Skip(reason=reason, through=through):
                    record.skip(task.id, reason)
                    self.console.print(f"- skip {task.id} ({reason})", Style.DIM)
                    if through is None:
                        i += 1
                        continue
                    jump = self._jump_target(through, i, position)
                    if isinstance(jump, Err):
                        self._fail_recorded(record, task, jump.error)
                        break
                    self._skip_range(record, ordered, i + 1, jump.value, f"skipped through to {through}")
                    i = jump.value
                    continue
                case Run():
                    pass

            if task.undoable:
                record.applied.append(task.id)
                if self.rollback_enabled:
                    rollback.add_task(task)

            self.console.print(f"> {task.id}: {task.description}", Style.BOLD)
            started = time.perf_counter()
            result = capture(
                lambda: task.execute(context),
                source=_SOURCE,
                message=f"task '{task.id}' raised",
            )
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            if isinstance(result, Err):
                self._fail(record, task, result.error, elapsed_ms)
                break

            record.outcomes.append(TaskOutcome(task.id, TaskStatus.EXECUTED, duration_ms=elapsed_ms))
            self.console.success(task.id)

            instruction = self._next_step(task, context)
            if isinstance(instruction, Err):
                self._fail_recorded(record, task, instruction.error)
                break

            match instruction.value:
                case Continue():
                    i += 1
                case SkipTo(task_id=target, reason=reason):
                    jump = self._jump_target(target, i, position)
                    if isinstance(jump, Err):
                        self._fail_recorded(record, task, jump.error)
                        break
                    self._skip_range(record, ordered, i + 1, jump.value, reason)
                    i = jump.value
                case Abort(reason=reason):
                    record.aborted_by = task.id
                    self._fail_recorded(
                        record, task, failed_error(f"aborted by '{task.id}': {reason}", source=_SOURCE)
                    )
                    break

        # a token set while the last task ran is only seen here
        if record.error is None:
            self._observe_cancel(record, cancellation)

        if record.error is None:
            record.transition(RunState.SUCCEEDED)
            return record.report()

        record.transition(RunState.FAILED)
        if self.rollback_enabled:
            self._roll_back(record, rollback, context)
        elif record.applied:
            self.console.warning(
                f"rollback disabled; still applied: {', '.join(reversed(record.applied))}"
            )
        return record.report()

    # -- internals ------------------------------------------------------

    def _decide(self, task: Task, context: ExecutionContext[Any]) -> Result[Decision, FireflyError]:
        predicate = task.should_execute
        if predicate is None:
            return Ok(RUN)

        raw: object
        try:
            raw = predicate(context)
        except Exception as e:  # noqa: BLE001 - predicates are task-supplied
            return Err(
                unexpected_error(
                    f"skip predicate of '{task.id}' raised: {e}", source=_SOURCE, cause=e
                )
            )

        if isinstance(raw, Err):
            return raw
        if isinstance(raw, Ok):
            raw = raw.value

        match raw:
            case bool():
                return Ok(RUN if raw else Skip())
            case Run() | Skip():
                return Ok(raw)
            case _:
                return Err(
                    invalid_error(
                        f"skip predicate of '{task.id}' returned {type(raw).__name__}",
                        source=_SOURCE,
                    )
                )

    def _next_step(self, task: Task, context: ExecutionContext[Any]) -> Result[FlowInstruction, FireflyError]:
        hook = task.next_step
        if hook is None:
            return Ok(Continue())
        try:
            instruction = hook(context)
        except Exception as e:  # noqa: BLE001 - hooks are task-supplied
            return Err(
                unexpected_error(f"next step of '{task.id}' raised: {e}", source=_SOURCE, cause=e)
            )
        if not isinstance(instruction, (Continue, SkipTo, Abort)):
            return Err(
                invalid_error(
                    f"next step of '{task.id}' returned {type(instruction).__name__}",
                    source=_SOURCE,
                )
            )
        return Ok(instruction)

    @staticmethod
    def _jump_target(target: str, current: int, position: dict[str, int]) -> Result[int, FireflyError]:
        if target not in position:
            return Err(not_found_error(f"skip target '{target}' is not in this run", source=_SOURCE))
        index = position[target]
        if index <= current:
            return Err(
                invalid_error(
                    f"skip target '{target}' is not ahead of the current task", source=_SOURCE
                )
            )
        return Ok(index)

    def _skip_range(
        self,
        record: _RunRecord,
        ordered: list[Task],
        start: int,
        stop: int,
        reason: str,
    ) -> None:
        for skipped in ordered[start:stop]:
            record.skip(skipped.id, reason)
            self.console.print(f"- skip {skipped.id} ({reason})", Style.DIM)

    def _fail(
        self,
        record: _RunRecord,
        task: Task,
        error: FireflyError,
        elapsed_ms: float = 0.0,
    ) -> None:
        record.outcomes.append(
            TaskOutcome(task.id, TaskStatus.FAILED, error=error, duration_ms=elapsed_ms)
        )
        record.error = error
        self.console.error(f"{task.id} failed: {error.pretty()}")
        for line in error.details:
            self.console.print(f"  {line}", Style.DIM)

    def _fail_recorded(self, record: _RunRecord, task: Task, error: FireflyError) -> None:
        """Fail the run from a task whose outcome is already recorded.

        Used when the task itself finished but its skip target or next step
        ended the run; its outcome is turned into FAILED so the report names it.
        """
        previous = record.outcomes.pop()
        record.outcomes.append(
            TaskOutcome(
                task.id,
                TaskStatus.FAILED,
                reason=previous.reason,
                error=error,
                duration_ms=previous.duration_ms,
            )
        )
        record.error = error
        self.console.error(f"{task.id}: {error.pretty()}")

    def _observe_cancel(self, record: _RunRecord, cancellation: CancellationToken | None) -> bool:
        if cancellation is None or not cancellation.cancelled:
            return False
        record.cancelled = True
        record.error = failed_error(f"run cancelled: {cancellation.reason}", source=_SOURCE)
        self.console.warning(record.error.message)
        return True

    def _roll_back(
        self,
        record: _RunRecord,
        rollback: RollbackManager,
        context: ExecutionContext[Any],
    ) -> None:
        record.transition(RunState.ROLLING_BACK)
        count = rollback.task_count
        if count:
            self.console.warning(f"rolling back {count} task(s)")

        match rollback.execute_rollback(context):
            case Ok(outcome):
                pass
            case Err(error):
                outcome = RollbackOutcome(
                    failed_task="", error=error, pending=tuple(rollback.task_ids())
                )
        record.rollback = outcome

        if outcome.success:
            record.transition(RunState.ROLLED_BACK)
            if count:
                self.console.success(f"rolled back {len(outcome.rolled_back)} task(s)")
            return

        record.transition(RunState.ROLLBACK_FAILED)
        pending = ", ".join(outcome.pending) or "none"
        self.console.error(f"rollback incomplete; still applied: {pending}")
