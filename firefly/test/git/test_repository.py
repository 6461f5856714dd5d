"""Tests for git/repository.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from firefly.core.errors import ErrorKind
from firefly.core.result import Err, Ok, Result
from firefly.git import repository as repository_module
from firefly.git.repository import GitStatus, Repository, StatusEntry, parse_status
from firefly.platform.process import ProcessError
from firefly.services.dry_run import DryRunLog


class FakeGit:
    """Scripted replacement for ``run_process`` keyed by git subcommand args."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.responses: dict[tuple[str, ...], Result[str, ProcessError]] = {}

    def on(self, *args: str, stdout: str = "", returncode: int = 0, stderr: str = "") -> None:
        if returncode == 0:
            self.responses[args] = Ok(stdout)
        else:
            self.responses[args] = Err(
                ProcessError(("git", *args), returncode, stdout, stderr)
            )

    def __call__(
        self, cmd: list[str], cwd: Path, env: object = None, *, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        args = cmd[3:]
        self.calls.append(args)
        return self.responses.get(tuple(args), Ok(""))


@pytest.fixture
def fake_git(monkeypatch: pytest.MonkeyPatch) -> FakeGit:
    fake = FakeGit()
    monkeypatch.setattr(repository_module, "run_process", fake)
    return fake


# =============================================================================
# Status parsing
# =============================================================================


class TestStatusEntry:
    def test_staged(self) -> None:
        assert StatusEntry(xy="M ", path="f").is_staged is True

    def test_unstaged(self) -> None:
        assert StatusEntry(xy=" M", path="f").is_staged is False

    def test_untracked(self) -> None:
        entry = StatusEntry(xy="??", path="f")
        assert entry.is_untracked is True
        assert entry.is_staged is False


class TestParseStatus:
    def test_empty_output(self) -> None:
        assert parse_status("") == GitStatus(branch="")

    def test_branch_with_upstream_and_divergence(self) -> None:
        status = parse_status("## main...origin/main [ahead 2, behind 1]\n")
        assert status.branch == "main"
        assert status.upstream == "origin/main"
        assert (status.ahead, status.behind) == (2, 1)
        assert status.is_clean

    def test_entries(self) -> None:
        status = parse_status("## main\n M pyproject.toml\n?? notes.txt\nA  CHANGELOG.md\n")
        assert status.upstream is None
        assert [e.path for e in status.entries] == ["pyproject.toml", "notes.txt", "CHANGELOG.md"]
        assert [e.path for e in status.staged] == ["CHANGELOG.md"]
        assert not status.is_clean


# =============================================================================
# Repository queries
# =============================================================================


class TestRepositoryQueries:
    def test_commands_run_in_repo(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Every call targets the repository with ``git -C``."""
        seen: list[list[str]] = []

        def capture_run(cmd: list[str], cwd: Path, env: object = None, *, timeout: float | None = None) -> Result[str, ProcessError]:
            seen.append(cmd)
            return Ok("main\n")

        monkeypatch.setattr(repository_module, "run_process", capture_run)
        assert Repository(tmp_path).current_branch() == Ok("main")
        assert seen[0][:3] == ["git", "-C", str(tmp_path)]

    def test_is_repository(self, tmp_path: Path, fake_git: FakeGit) -> None:
        fake_git.on("rev-parse", "--git-dir", returncode=128, stderr="not a git repository")
        assert Repository(tmp_path).is_repository() is False

    def test_status(self, tmp_path: Path, fake_git: FakeGit) -> None:
        fake_git.on("status", "--porcelain=v1", "-b", stdout="## main\n M x.py\n")
        assert Repository(tmp_path).is_clean() == Ok(False)

    def test_detached_head(self, tmp_path: Path, fake_git: FakeGit) -> None:
        fake_git.on("rev-parse", "--abbrev-ref", "HEAD", stdout="HEAD\n")
        result = Repository(tmp_path).current_branch()
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.NOT_FOUND

    def test_latest_tag(self, tmp_path: Path, fake_git: FakeGit) -> None:
        fake_git.on("describe", "--tags", "--abbrev=0", stdout="v1.2.0\n")
        assert Repository(tmp_path).latest_tag() == Ok("v1.2.0")

    def test_latest_tag_none_without_tags(self, tmp_path: Path, fake_git: FakeGit) -> None:
        fake_git.on(
            "describe",
            "--tags",
            "--abbrev=0",
            returncode=128,
            stderr="fatal: No names found, cannot describe anything.",
        )
        assert Repository(tmp_path).latest_tag() == Ok(None)

    def test_latest_tag_other_failure(self, tmp_path: Path, fake_git: FakeGit) -> None:
        fake_git.on("describe", "--tags", "--abbrev=0", returncode=128, stderr="fatal: bad object")
        result = Repository(tmp_path).latest_tag()
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.FAILED
        assert result.error.source == "git"

    def test_tag_exists(self, tmp_path: Path, fake_git: FakeGit) -> None:
        fake_git.on("rev-parse", "-q", "--verify", "refs/tags/v9.9.9", returncode=1)
        repo = Repository(tmp_path)
        assert repo.tag_exists("v9.9.9") is False
        assert repo.tag_exists("v1.0.0") is True

    def test_commits_since_splits_messages(self, tmp_path: Path, fake_git: FakeGit) -> None:
        fake_git.on(
            "log",
            "v1.0.0..HEAD",
            "--format=%B%x00",
            stdout="feat: add x\n\nbody\n\x00\nfix: y\n\x00\n",
        )
        assert Repository(tmp_path).commits_since("v1.0.0") == Ok(["feat: add x\n\nbody", "fix: y"])

    def test_commits_since_without_ref_reads_all_history(self, tmp_path: Path, fake_git: FakeGit) -> None:
        Repository(tmp_path).commits_since(None)
        assert fake_git.calls == [["log", "HEAD", "--format=%B%x00"]]


# =============================================================================
# Repository mutations
# =============================================================================


class TestRepositoryMutations:
    def test_commit_runs_git(self, tmp_path: Path, fake_git: FakeGit) -> None:
        assert Repository(tmp_path).commit("chore(release): v1.0.0") == Ok(None)
        assert fake_git.calls == [["commit", "-m", "chore(release): v1.0.0"]]

    def test_failure_maps_to_error(self, tmp_path: Path, fake_git: FakeGit) -> None:
        fake_git.on("tag", "-a", "v1.0.0", "-m", "Release 1.0.0", returncode=128, stderr="already exists")
        result = Repository(tmp_path).tag("v1.0.0", "Release 1.0.0")
        assert isinstance(result, Err)
        assert result.error.message == "git: create tag v1.0.0 failed"
        assert result.error.details == ("already exists",)

    def test_dry_run_records_instead_of_running(self, tmp_path: Path, fake_git: FakeGit) -> None:
        log = DryRunLog(enabled=True)
        repo = Repository(tmp_path, dry_run=log)
        assert repo.push_tag("origin", "v1.0.0") == Ok(None)
        assert fake_git.calls == []
        assert [a.action for a in log.by_kind("git")] == ["push origin refs/tags/v1.0.0"]
        assert log.actions[0].target == str(tmp_path)

    def test_dry_run_still_runs_queries(self, tmp_path: Path, fake_git: FakeGit) -> None:
        fake_git.on("rev-parse", "--abbrev-ref", "HEAD", stdout="main\n")
        repo = Repository(tmp_path, dry_run=DryRunLog(enabled=True))
        assert repo.current_branch() == Ok("main")

    def test_disabled_log_executes(self, tmp_path: Path, fake_git: FakeGit) -> None:
        log = DryRunLog(enabled=False)
        Repository(tmp_path, dry_run=log).delete_tag("v1.0.0")
        assert fake_git.calls == [["tag", "-d", "v1.0.0"]]
        assert log.actions == []
