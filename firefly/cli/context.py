from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from firefly.commands import default_registry
from firefly.core.config import FileConfig, load_config, load_config_or_default
from firefly.core.errors import ExitCode, exit_code_for
from firefly.core.result import Err
from firefly.orchestration.registry import CommandRegistry
from firefly.output.console import ConsoleProtocol, RichConsole, Style


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: FileConfig
    console: ConsoleProtocol
    registry: CommandRegistry

    @property
    def verbose(self) -> bool:
        return self.config.verbose


def build_context(
    *,
    root: Path | None = None,
    config_path: Path | None = None,
    verbose: bool = False,
) -> CLIContext:
    """Resolve the project root, load its config and build the console.

    Exits with USER_ERROR for a missing root and with the mapped error code
    when the config file cannot be loaded.
    """
    try:
        resolved = (root or Path.cwd()).expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid project root: {e}", err=True)
        raise typer.Exit(code=int(ExitCode.USER_ERROR))
    if not resolved.is_dir():
        typer.echo(f"error: project root is not a directory: {resolved}", err=True)
        raise typer.Exit(code=int(ExitCode.USER_ERROR))

    config_result = load_config(config_path) if config_path is not None else load_config_or_default(resolved)
    if isinstance(config_result, Err):
        error = config_result.error
        typer.echo(f"error: {error.pretty()}", err=True)
        raise typer.Exit(code=int(exit_code_for(error.kind)))
    config = config_result.value

    console = RichConsole(verbose=verbose or config.verbose)
    if config.path is not None:
        console.print(f"config: {config.path}", Style.DEBUG)

    registry = default_registry()
    if isinstance(registry, Err):
        console.error(registry.error.pretty())
        raise typer.Exit(code=int(ExitCode.ENV_ERROR))

    return CLIContext(root=resolved, config=config, console=console, registry=registry.value)
