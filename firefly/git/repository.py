"""Git repository operations used by release tasks.

All methods return Result values carrying :class:`FireflyError` with
``source="git"``. Mutating methods honor a :class:`DryRunLog`: when it is
enabled they record the intended command and succeed without running it.

Usage:
    repo = Repository(Path("."))
    match repo.status():
        case Ok(status) if status.is_clean:
            ...
        case Ok(status):
            console.warning(f"{len(status.entries)} uncommitted changes")
        case Err(e):
            console.error(e.pretty())
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from firefly.core.errors import FireflyError, not_found_error
from firefly.core.result import Err, Ok, Result
from firefly.platform.process import ProcessError
from firefly.platform.process import run as run_process
from firefly.services.dry_run import DryRunLog

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "ls-remote"})

_SOURCE = "git"

__all__ = [
    "GitStatus",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """One ``git status --porcelain`` line.

    Attributes:
        xy: Two-character status code (``"M "``, ``" M"``, ``"??"``).
        path: File path relative to the repository root.
    """

    xy: str
    path: str

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"

    @property
    def is_staged(self) -> bool:
        return not self.is_untracked and self.xy[0] != " "


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed ``git status --porcelain=v1 -b``."""

    branch: str
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return len(self.entries) == 0

    @property
    def staged(self) -> list[StatusEntry]:
        return [e for e in self.entries if e.is_staged]


class Repository:
    """A single git working tree.

    Attributes:
        path: Repository root.
        dry_run: Recorder for mutating commands (None means always execute).
    """

    def __init__(self, path: Path, *, dry_run: DryRunLog | None = None) -> None:
        self.path = path
        self.dry_run = dry_run

    # -- queries --------------------------------------------------------

    def is_repository(self) -> bool:
        return isinstance(self._run(["rev-parse", "--git-dir"]), Ok)

    def status(self) -> Result[GitStatus, FireflyError]:
        result = self._run(["status", "--porcelain=v1", "-b"])
        if isinstance(result, Err):
            return Err(result.error.to_error("git status failed", source=_SOURCE))
        return Ok(parse_status(result.value))

    def is_clean(self) -> Result[bool, FireflyError]:
        return self.status().map(lambda s: s.is_clean)

    def current_branch(self) -> Result[str, FireflyError]:
        """Current branch name; NOT_FOUND on a detached HEAD."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        if isinstance(result, Err):
            return Err(result.error.to_error("cannot determine current branch", source=_SOURCE))
        branch = result.value.strip()
        if branch == "HEAD":
            return Err(not_found_error("detached HEAD has no branch", source=_SOURCE))
        return Ok(branch)

    def remote_url(self, remote: str) -> Result[str, FireflyError]:
        result = self._run(["remote", "get-url", remote])
        if isinstance(result, Err):
            return Err(not_found_error(f"remote not configured: {remote}", source=_SOURCE))
        return Ok(result.value.strip())

    def head_sha(self) -> Result[str, FireflyError]:
        result = self._run(["rev-parse", "HEAD"])
        if isinstance(result, Err):
            return Err(result.error.to_error("cannot resolve HEAD", source=_SOURCE))
        return Ok(result.value.strip())

    def latest_tag(self) -> Result[str | None, FireflyError]:
        """Most recent reachable tag, or None for a repository without tags."""
        result = self._run(["describe", "--tags", "--abbrev=0"])
        if isinstance(result, Err):
            stderr = result.error.stderr.lower()
            if "no names found" in stderr or "no tags can describe" in stderr:
                return Ok(None)
            return Err(result.error.to_error("cannot find latest tag", source=_SOURCE))
        return Ok(result.value.strip() or None)

    def tag_exists(self, name: str) -> bool:
        return isinstance(self._run(["rev-parse", "-q", "--verify", f"refs/tags/{name}"]), Ok)

    def commits_since(self, ref: str | None) -> Result[list[str], FireflyError]:
        """Full commit messages after ``ref`` (all history when None), newest first."""
        rev = f"{ref}..HEAD" if ref else "HEAD"
        result = self._run(["log", rev, "--format=%B%x00"])
        if isinstance(result, Err):
            return Err(result.error.to_error(f"git log {rev} failed", source=_SOURCE))
        messages = [m.strip() for m in result.value.split("\x00")]
        return Ok([m for m in messages if m])

    # -- mutations ------------------------------------------------------

    def stage(self, paths: list[str]) -> Result[None, FireflyError]:
        return self._mutate(["add", "--", *paths], "stage files")

    def unstage(self, paths: list[str]) -> Result[None, FireflyError]:
        return self._mutate(["reset", "-q", "HEAD", "--", *paths], "unstage files")

    def commit(self, message: str) -> Result[None, FireflyError]:
        return self._mutate(["commit", "-m", message], "commit")

    def reset_last_commit(self) -> Result[None, FireflyError]:
        """Undo the last commit, keeping its changes staged."""
        return self._mutate(["reset", "--soft", "HEAD~1"], "reset last commit")

    def tag(self, name: str, message: str) -> Result[None, FireflyError]:
        return self._mutate(["tag", "-a", name, "-m", message], f"create tag {name}")

    def delete_tag(self, name: str) -> Result[None, FireflyError]:
        return self._mutate(["tag", "-d", name], f"delete tag {name}")

    def push(self, remote: str, branch: str) -> Result[None, FireflyError]:
        return self._mutate(["push", remote, branch], f"push {branch} to {remote}")

    def push_tag(self, remote: str, name: str) -> Result[None, FireflyError]:
        return self._mutate(["push", remote, f"refs/tags/{name}"], f"push tag {name}")

    def delete_remote_tag(self, remote: str, name: str) -> Result[None, FireflyError]:
        return self._mutate(
            ["push", remote, "--delete", f"refs/tags/{name}"], f"delete remote tag {name}"
        )

    # -- internals ------------------------------------------------------

    def _mutate(self, args: list[str], what: str) -> Result[None, FireflyError]:
        if self.dry_run is not None and self.dry_run.enabled:
            self.dry_run.record("git", " ".join(args), str(self.path))
            return Ok(None)
        result = self._run(args)
        if isinstance(result, Err):
            return Err(result.error.to_error(f"git: {what} failed", source=_SOURCE))
        return Ok(None)

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS if command in _NETWORK_COMMANDS else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)


def parse_status(output: str) -> GitStatus:
    """Parse ``git status --porcelain=v1 -b`` output."""
    lines = [ln for ln in output.splitlines() if ln.strip()]
    if not lines:
        return GitStatus(branch="")

    branch, upstream = _parse_branch_line(lines[0])
    ahead, behind = _parse_ahead_behind(lines[0])

    entries: list[StatusEntry] = []
    for line in lines[1:]:
        if len(line) < 4:
            continue
        entries.append(StatusEntry(xy=line[:2], path=line[3:]))

    return GitStatus(
        branch=branch,
        upstream=upstream,
        ahead=ahead,
        behind=behind,
        entries=tuple(entries),
    )


def _parse_branch_line(line: str) -> tuple[str, str | None]:
    s = line.strip()
    if s.startswith("##"):
        s = s[2:].lstrip()
    s = s.split(" [", 1)[0].strip()
    if "..." in s:
        left, right = s.split("...", 1)
        return (left.strip(), right.strip())
    return (s, None)


def _parse_ahead_behind(line: str) -> tuple[int, int]:
    match = re.search(r"\[([^\]]+)\]", line)
    if not match:
        return (0, 0)
    inside = match.group(1)
    ahead_match = re.search(r"ahead\s+(\d+)", inside)
    behind_match = re.search(r"behind\s+(\d+)", inside)
    ahead = int(ahead_match.group(1)) if ahead_match else 0
    behind = int(behind_match.group(1)) if behind_match else 0
    return (ahead, behind)
