"""Rendering of execution reports and dry-run actions.

Not re-exported from :mod:`firefly.output`: the orchestration layer imports
the console from that package, and this module imports the orchestration
report types.
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.table import Table
from rich.text import Text

from firefly.orchestration.runner import ExecutionReport, RunState, TaskStatus
from firefly.services.dry_run import DryRunAction

from .console import ConsoleProtocol, RichConsole, Style

__all__ = ["render_dry_run", "render_report", "report_table", "summary_line"]

_STATUS_STYLE = {
    TaskStatus.EXECUTED: "green",
    TaskStatus.SKIPPED: "dim",
    TaskStatus.FAILED: "red bold",
}


def summary_line(report: ExecutionReport) -> str:
    counts = (
        f"{len(report.executed)} executed, {len(report.skipped)} skipped, "
        f"{len(report.failed)} failed"
    )
    seconds = report.duration.total_seconds()
    match report.state:
        case RunState.SUCCEEDED:
            return f"succeeded in {seconds:.2f}s ({counts})"
        case RunState.ROLLED_BACK:
            undone = len(report.rollback.rolled_back) if report.rollback else 0
            return f"failed, rolled back {undone} task(s) ({counts})"
        case RunState.ROLLBACK_FAILED:
            return f"failed, rollback incomplete ({counts})"
        case RunState.FAILED if report.still_applied:
            return f"failed, not rolled back ({counts})"
        case _:
            return f"{report.state} ({counts})"


def report_table(report: ExecutionReport) -> Table:
    table = Table(title=f"{report.command or 'run'} {report.execution_id[:8]}", show_lines=False)
    table.add_column("task")
    table.add_column("status")
    table.add_column("detail", overflow="fold")
    table.add_column("ms", justify="right")

    for outcome in report.outcomes:
        detail = ""
        if outcome.status is TaskStatus.SKIPPED:
            detail = outcome.reason or ""
        elif outcome.error is not None:
            detail = outcome.error.pretty()
        table.add_row(
            outcome.task_id,
            Text(str(outcome.status), style=_STATUS_STYLE[outcome.status]),
            detail,
            f"{outcome.duration_ms:.0f}" if outcome.status is not TaskStatus.SKIPPED else "",
        )
    for task_id in report.not_run:
        table.add_row(task_id, Text("not run", style="dim"), "", "")
    return table


def render_report(report: ExecutionReport, console: ConsoleProtocol) -> None:
    """Print the outcome table (Rich consoles) or plain lines, then the summary."""
    console.newline()
    if isinstance(console, RichConsole):
        console.rich.print(report_table(report))
    else:
        for outcome in report.outcomes:
            reason = f" ({outcome.reason})" if outcome.reason else ""
            console.print(f"{outcome.task_id}: {outcome.status}{reason}")

    if report.rollback is not None and report.rollback.rolled_back:
        console.print(f"rolled back: {', '.join(report.rollback.rolled_back)}", Style.DIM)
    if report.rollback is not None and report.rollback.failed_task is not None:
        console.error(f"undo failed for {report.rollback.failed_task}")
        if report.rollback.pending:
            console.warning(f"still applied: {', '.join(report.rollback.pending)}")
    elif report.rollback is None and report.still_applied:
        console.warning(f"still applied: {', '.join(report.still_applied)}")

    line = summary_line(report)
    if report.success:
        console.success(line)
    else:
        if report.error is not None:
            console.error(report.error.pretty())
        console.error(line)


def render_dry_run(actions: Sequence[DryRunAction], console: ConsoleProtocol) -> None:
    if not actions:
        return
    console.header("Dry run: actions not performed")
    for action in actions:
        console.print(f"  {action.describe()}", Style.DIM)
