"""``firefly commands`` and ``firefly graph``: inspect registered commands."""

from __future__ import annotations

from pathlib import Path

import typer

from firefly.cli.context import build_context
from firefly.core.result import Err
from firefly.orchestration.context import ExecutionContext
from firefly.orchestration.graph import depth_map, graph_statistics
from firefly.output.console import Style
from firefly.services.container import ServiceContainer

from ._helpers import exit_on_error


def commands(
    root: Path | None = typer.Option(None, "--root", help="Project root (default: cwd)"),
) -> None:
    """List registered commands."""
    ctx = build_context(root=root)
    console = ctx.console
    for command in ctx.registry.get_all():
        console.print(command.name, Style.BOLD)
        console.print(f"  {command.description}")
        for example in command.examples:
            console.print(f"  $ {example}", Style.DIM)


def graph(
    name: str = typer.Argument(..., help="Command name"),
    root: Path | None = typer.Option(None, "--root", help="Project root (default: cwd)"),
) -> None:
    """Show a command's resolved task order with the default configuration."""
    ctx = build_context(root=root)
    console = ctx.console

    command = ctx.registry.get(name)
    exit_on_error(command, console)
    if isinstance(command, Err):
        return

    config = command.value.config_schema.parse(ctx.config.section(name))
    exit_on_error(config, console)
    if isinstance(config, Err):
        return

    context = ExecutionContext(config.value, command=name)
    services = ServiceContainer.create(ctx.root, console, dry_run=True)
    tasks = command.value.build_tasks(context, services)
    exit_on_error(tasks, console)
    if isinstance(tasks, Err):
        return

    stats = graph_statistics(tasks.value)
    exit_on_error(stats, console)
    depths = depth_map(tasks.value)
    exit_on_error(depths, console)
    if isinstance(stats, Err) or isinstance(depths, Err):
        return

    by_id = {t.id: t for t in tasks.value}
    console.header(f"{name}: {stats.value.task_count} tasks")
    for position, task_id in enumerate(stats.value.order, start=1):
        task = by_id[task_id]
        indent = "  " * depths.value[task_id]
        undo = " [undo]" if task.undoable else ""
        console.print(f"{position:>2}. {indent}{task_id}{undo}")
        console.print(f"    {indent}{task.description}", Style.DIM)

    console.newline()
    console.print(f"roots: {', '.join(stats.value.roots)}")
    console.print(f"leaves: {', '.join(stats.value.leaves)}")
    console.print(f"edges: {stats.value.edges}, depth: {stats.value.depth}")
