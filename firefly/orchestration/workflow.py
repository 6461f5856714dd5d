"""Run a registered command end to end.

Order of operations:

1. look the command up in the registry;
2. validate the raw configuration with the command's schema;
3. create the execution context;
4. build the task graph;
5. hand it to :class:`TaskOrchestrator`.

Steps 1 to 4 fail before any task runs; their errors are returned as ``Err``
so the caller can map them to an exit code without a report.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from firefly.core.errors import FireflyError
from firefly.core.result import Err, Ok, Result, capture
from firefly.output.console import ConsoleProtocol

from .context import ExecutionContext
from .registry import CommandRegistry
from .runner import CancellationToken, ExecutionReport, TaskOrchestrator

__all__ = ["run_command"]


def run_command(
    registry: CommandRegistry,
    name: str,
    raw_config: Mapping[str, object],
    services: Any,
    console: ConsoleProtocol,
    *,
    rollback_enabled: bool = True,
    cancellation: CancellationToken | None = None,
) -> Result[ExecutionReport, FireflyError]:
    command = registry.get(name)
    if isinstance(command, Err):
        return command

    config = command.value.config_schema.parse(raw_config)
    if isinstance(config, Err):
        return config

    context: ExecutionContext[Any] = ExecutionContext(config.value, command=name)
    tasks = capture(
        lambda: command.value.build_tasks(context, services),
        source="workflow",
        message=f"building tasks for '{name}' raised",
    )
    if isinstance(tasks, Err):
        return tasks

    orchestrator = TaskOrchestrator(console, rollback_enabled=rollback_enabled)
    console.header(f"{name} ({len(tasks.value)} tasks)")
    return Ok(orchestrator.run(tasks.value, context, cancellation=cancellation))
