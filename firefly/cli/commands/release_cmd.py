"""``firefly release``: run the release task graph."""

from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import FrameType

import typer

from firefly.cli.context import build_context
from firefly.core.errors import ExitCode
from firefly.core.result import Err
from firefly.core.structured import StrDict, merge_tables
from firefly.orchestration.runner import CancellationToken
from firefly.orchestration.workflow import run_command
from firefly.output.console import ConsoleProtocol
from firefly.output.report import render_dry_run, render_report
from firefly.services.container import ServiceContainer

from ._helpers import exit_on_error

COMMAND_NAME = "release"


def _flag(value: bool) -> bool | None:
    """CLI switches only override the config file when they are set."""
    return True if value else None


@contextmanager
def _cancel_on_interrupt(token: CancellationToken, console: ConsoleProtocol) -> Iterator[None]:
    """First Ctrl-C cancels between tasks (with rollback); the second one aborts."""
    previous = signal.getsignal(signal.SIGINT)

    def handler(signum: int, frame: FrameType | None) -> None:
        if token.cancelled:
            signal.signal(signal.SIGINT, previous)
            raise KeyboardInterrupt
        token.cancel("interrupted by user")
        console.warning("interrupt received; stopping after the current task")

    signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def release(
    bump: str | None = typer.Option(None, "--bump", help="auto|patch|minor|major"),
    version: str | None = typer.Option(None, "--version", help="Explicit next version"),
    release_type: str | None = typer.Option(None, "--release-type", help="release|prerelease"),
    pre_id: str | None = typer.Option(None, "--pre-id", help="Pre-release identifier (beta, rc...)"),
    branch: str | None = typer.Option(None, "--branch", help="Require this branch"),
    remote: str | None = typer.Option(None, "--remote", help="Remote to push to"),
    allow_dirty: bool = typer.Option(False, "--allow-dirty", help="Allow uncommitted changes"),
    skip_bump: bool = typer.Option(False, "--skip-bump", help="Keep the current version"),
    skip_changelog: bool = typer.Option(False, "--skip-changelog", help="Do not touch the changelog"),
    skip_git: bool = typer.Option(False, "--skip-git", help="No commit, tag or push"),
    skip_push: bool = typer.Option(False, "--skip-push", help="Commit and tag locally only"),
    skip_release: bool = typer.Option(False, "--skip-release", help="No hosting release"),
    platform: str | None = typer.Option(None, "--platform", help="github|gitlab"),
    repo: str | None = typer.Option(None, "--repo", help="owner/name for the hosting CLI"),
    draft: bool = typer.Option(False, "--draft", help="Create the hosting release as a draft"),
    prerelease: bool = typer.Option(False, "--prerelease", help="Mark the hosting release as a pre-release"),
    no_cliff: bool = typer.Option(False, "--no-cliff", help="Use the built-in changelog renderer"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Record changes instead of making them"),
    no_rollback: bool = typer.Option(False, "--no-rollback", help="Leave changes in place on failure"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
    config: Path | None = typer.Option(None, "--config", help="Config file (default: firefly.toml)"),
    root: Path | None = typer.Option(None, "--root", help="Project root (default: cwd)"),
) -> None:
    """Bump, changelog, commit, tag, push and publish a release."""
    ctx = build_context(root=root, config_path=config, verbose=verbose)
    console = ctx.console

    overrides: StrDict = {
        "bump": bump,
        "version": version,
        "release_type": release_type,
        "pre_id": pre_id,
        "branch": branch,
        "remote": remote,
        "allow_dirty": _flag(allow_dirty),
        "skip_bump": _flag(skip_bump),
        "skip_changelog": _flag(skip_changelog),
        "skip_git": _flag(skip_git),
        "skip_push": _flag(skip_push),
        "skip_release": _flag(skip_release),
        "platform": platform,
        "repo": repo,
        "draft": _flag(draft),
        "prerelease": _flag(prerelease),
        "use_cliff": False if no_cliff else None,
        "dry_run": _flag(dry_run or ctx.config.dry_run),
    }
    raw = merge_tables(ctx.config.section(COMMAND_NAME), overrides)
    is_dry_run = raw.get("dry_run") is True

    services = ServiceContainer.create(ctx.root, console, dry_run=is_dry_run)
    if is_dry_run:
        console.warning("dry run: no files, commits, tags or releases will be changed")

    token = CancellationToken()
    with _cancel_on_interrupt(token, console):
        result = run_command(
            ctx.registry,
            COMMAND_NAME,
            raw,
            services,
            console,
            rollback_enabled=not no_rollback,
            cancellation=token,
        )
    exit_on_error(result, console)
    if isinstance(result, Err):
        return

    report = result.value
    render_report(report, console)
    render_dry_run(services.dry_run.actions, console)

    code = report.exit_code()
    if code is not ExitCode.OK:
        raise typer.Exit(code=int(code))
