"""Shared helpers for CLI commands."""

from __future__ import annotations

import typer

from firefly.core.errors import ExitCode, FireflyError, exit_code_for
from firefly.core.result import Err, Result
from firefly.output.console import ConsoleProtocol, Style


def print_error(error: FireflyError, console: ConsoleProtocol) -> None:
    console.error(error.pretty())
    for line in error.details:
        console.print(f"  {line}", Style.DIM)


def exit_on_error[T](
    result: Result[T, FireflyError],
    console: ConsoleProtocol,
    code: ExitCode | None = None,
) -> None:
    """Print the error and exit when ``result`` is Err, otherwise return.

    The exit code defaults to the one mapped from the error kind.
    """
    if isinstance(result, Err):
        error = result.error
        print_error(error, console)
        raise typer.Exit(code=int(code if code is not None else exit_code_for(error.kind)))
