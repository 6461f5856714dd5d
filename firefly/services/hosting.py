"""Hosting-provider releases through the ``gh`` and ``glab`` CLIs.

Both clients share one shape (:class:`HostingClient`): create, look up and
delete a release by tag. Read-only calls retry transient network failures;
mutating calls run once and are recorded instead of run in dry-run mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from time import sleep
from typing import Literal, Protocol

from firefly.core.errors import FireflyError, not_found_error, validation_error
from firefly.core.result import Err, Ok, Result
from firefly.platform.process import ProcessError
from firefly.platform.process import run as run_process
from firefly.platform.process import which

from .dry_run import DryRunLog

Platform = Literal["github", "gitlab"]
PLATFORMS: tuple[Platform, ...] = ("github", "gitlab")

HOSTING_TIMEOUT_SECONDS = 60.0
READ_RETRY_ATTEMPTS = 3
READ_RETRY_DELAY_SECONDS = 2.0

_SOURCE = "hosting"

__all__ = [
    "GitHubCli",
    "GitLabCli",
    "HostingClient",
    "Platform",
    "PLATFORMS",
    "ReleaseRequest",
    "hosting_client",
    "require_cli",
]


@dataclass(frozen=True, slots=True)
class ReleaseRequest:
    tag: str
    title: str
    notes: str
    draft: bool = False
    prerelease: bool = False
    latest: bool = True


class HostingClient(Protocol):
    @property
    def executable(self) -> str: ...

    def available(self) -> bool: ...

    def create_release(self, request: ReleaseRequest) -> Result[str, FireflyError]: ...

    def release_exists(self, tag: str) -> Result[bool, FireflyError]: ...

    def delete_release(self, tag: str) -> Result[None, FireflyError]: ...


def is_transient(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "http 429",
        "http 502",
        "http 503",
        "http 504",
    )
    return error.timed_out or any(marker in text for marker in markers)


def _is_missing_release(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    return "release not found" in text or "not found" in text or "404" in text


class _CliClient:
    """Shared plumbing for the ``gh`` and ``glab`` clients."""

    executable = ""

    def __init__(self, root: Path, *, dry_run: DryRunLog | None = None, repo: str | None = None) -> None:
        self.root = root
        self.dry_run = dry_run
        self.repo = repo

    def available(self) -> bool:
        return which(self.executable) is not None

    def _repo_args(self) -> list[str]:
        return ["--repo", self.repo] if self.repo else []

    def _read(self, args: list[str]) -> Result[str, ProcessError]:
        cmd = [self.executable, *args, *self._repo_args()]
        result: Result[str, ProcessError] = Err(
            ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr="not run")
        )
        for attempt in range(READ_RETRY_ATTEMPTS):
            result = run_process(cmd, cwd=self.root, timeout=HOSTING_TIMEOUT_SECONDS)
            if isinstance(result, Ok):
                return result
            if attempt < READ_RETRY_ATTEMPTS - 1 and is_transient(result.error):
                sleep(READ_RETRY_DELAY_SECONDS * (attempt + 1))
                continue
            return result
        return result

    def _mutate(self, args: list[str], what: str, target: str) -> Result[str, FireflyError]:
        cmd = [self.executable, *args, *self._repo_args()]
        if self.dry_run is not None and self.dry_run.enabled:
            self.dry_run.record("hosting", f"{self.executable} {what}", target)
            return Ok("")
        result = run_process(cmd, cwd=self.root, timeout=HOSTING_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(result.error.to_error(f"{self.executable}: {what} {target} failed", source=_SOURCE))
        return Ok(result.value.strip())

    def release_exists(self, tag: str) -> Result[bool, FireflyError]:
        result = self._read(["release", "view", tag])
        if isinstance(result, Ok):
            return Ok(True)
        if _is_missing_release(result.error):
            return Ok(False)
        return Err(result.error.to_error(f"{self.executable}: cannot look up release {tag}", source=_SOURCE))

    def delete_release(self, tag: str) -> Result[None, FireflyError]:
        return self._mutate(["release", "delete", tag, "--yes"], "release delete", tag).map(lambda _: None)


class GitHubCli(_CliClient):
    executable = "gh"

    def create_release(self, request: ReleaseRequest) -> Result[str, FireflyError]:
        """Create the release; returns its URL (empty in dry-run mode)."""
        args = [
            "release",
            "create",
            request.tag,
            "--title",
            request.title,
            "--notes",
            request.notes,
        ]
        if request.draft:
            args.append("--draft")
        if request.prerelease:
            args.append("--prerelease")
        if not request.latest:
            args.append("--latest=false")
        return self._mutate(args, "release create", request.tag)


class GitLabCli(_CliClient):
    executable = "glab"

    def create_release(self, request: ReleaseRequest) -> Result[str, FireflyError]:
        # draft and prerelease have no glab equivalent
        args = [
            "release",
            "create",
            request.tag,
            "--name",
            request.title,
            "--notes",
            request.notes,
        ]
        return self._mutate(args, "release create", request.tag)


def hosting_client(
    platform: str,
    root: Path,
    *,
    dry_run: DryRunLog | None = None,
    repo: str | None = None,
) -> Result[HostingClient, FireflyError]:
    match platform:
        case "github":
            return Ok(GitHubCli(root, dry_run=dry_run, repo=repo))
        case "gitlab":
            return Ok(GitLabCli(root, dry_run=dry_run, repo=repo))
        case _:
            return Err(
                validation_error(
                    f"unknown hosting platform: {platform}",
                    source=_SOURCE,
                    details=[f"expected one of: {', '.join(PLATFORMS)}"],
                )
            )


def require_cli(client: HostingClient) -> Result[None, FireflyError]:
    if not client.available():
        return Err(
            not_found_error(
                f"{client.executable}: missing",
                source=_SOURCE,
                details=[f"install {client.executable} and authenticate before releasing"],
            )
        )
    return Ok(None)
