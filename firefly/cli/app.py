from __future__ import annotations

import typer

from firefly import __version__
from firefly.cli.commands.info_cmd import commands, graph
from firefly.cli.commands.release_cmd import release

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Release automation driven by a task graph with rollback.",
)


app.command()(release)
app.command()(commands)
app.command()(graph)


def _show_version(value: bool) -> None:
    # eager, so it runs before the group asks for a subcommand
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    pass


def main() -> None:
    app()
