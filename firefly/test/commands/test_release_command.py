"""End-to-end tests for the release command against a scripted git and gh."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from firefly.commands import default_registry
from firefly.commands.release.command import (
    BUMP_VERSION,
    CREATE_RELEASE,
    CREATE_TAG,
    DETERMINE_VERSION,
    GENERATE_CHANGELOG,
    PREFLIGHT,
    PUSH_CHANGES,
)
from firefly.core.errors import ErrorKind, ExitCode
from firefly.core.result import Err, Ok, Result
from firefly.git import repository as repository_module
from firefly.orchestration.runner import ExecutionReport, RunState
from firefly.orchestration.workflow import run_command
from firefly.output.console import MockConsole
from firefly.platform.process import ProcessError
from firefly.services import hosting as hosting_module
from firefly.services.container import ServiceContainer

PYPROJECT = '[project]\nname = "demo"\nversion = "1.2.3"\n'


class FakeGit:
    """In-memory stand-in for the git CLI, enough for a release run."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.dirty = False
        self.branch = "main"
        self.tags: set[str] = {"v1.2.3"}
        self.messages = ["feat: add graph command", "fix: handle empty notes"]
        self.fail_on: set[str] = set()

    def __call__(self, cmd: list[str], cwd: Path, env: object = None, *, timeout: float | None = None) -> Result[str, ProcessError]:
        args = cmd[3:]
        line = " ".join(args)
        self.calls.append(line)
        if any(line.startswith(prefix) for prefix in self.fail_on):
            return Err(ProcessError(tuple(cmd), 1, "", f"{args[0]} rejected"))

        match args:
            case ["rev-parse", "--git-dir"]:
                return Ok(".git\n")
            case ["status", *_]:
                body = " M src/app.py\n" if self.dirty else ""
                return Ok(f"## {self.branch}...origin/{self.branch}\n{body}")
            case ["rev-parse", "--abbrev-ref", "HEAD"]:
                return Ok(f"{self.branch}\n")
            case ["describe", "--tags", "--abbrev=0"]:
                return Ok("v1.2.3\n")
            case ["log", *_]:
                return Ok("".join(f"{m}\n\x00" for m in self.messages))
            case ["rev-parse", "-q", "--verify", ref]:
                name = ref.removeprefix("refs/tags/")
                if name in self.tags:
                    return Ok("abc123\n")
                return Err(ProcessError(tuple(cmd), 1, "", ""))
            case ["tag", "-a", name, *_]:
                self.tags.add(name)
                return Ok("")
            case ["tag", "-d", name]:
                self.tags.discard(name)
                return Ok("")
            case _:
                return Ok("")


class FakeGh:
    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.existing: set[str] = set()
        self.fail_create = False

    def __call__(self, cmd: list[str], cwd: Path, env: object = None, *, timeout: float | None = None) -> Result[str, ProcessError]:
        self.calls.append(cmd)
        match cmd[1:]:
            case ["release", "view", tag, *_]:
                if tag in self.existing:
                    return Ok(f"title: {tag}")
                return Err(ProcessError(tuple(cmd), 1, "", "release not found"))
            case ["release", "create", tag, *_]:
                if self.fail_create:
                    return Err(ProcessError(tuple(cmd), 1, "", "HTTP 422: Validation Failed"))
                self.existing.add(tag)
                return Ok(f"https://github.com/acme/demo/releases/tag/{tag}\n")
            case _:
                return Ok("")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "pyproject.toml").write_text(PYPROJECT)
    return tmp_path


@pytest.fixture
def git(monkeypatch: pytest.MonkeyPatch) -> FakeGit:
    fake = FakeGit()
    monkeypatch.setattr(repository_module, "run_process", fake)
    return fake


@pytest.fixture
def gh(monkeypatch: pytest.MonkeyPatch) -> FakeGh:
    fake = FakeGh()
    monkeypatch.setattr(hosting_module, "run_process", fake)
    monkeypatch.setattr(hosting_module, "which", lambda name: f"/usr/bin/{name}")
    return fake


def release(root: Path, *, dry_run: bool = False, **raw: Any) -> tuple[ExecutionReport, ServiceContainer, MockConsole]:
    console = MockConsole()
    services = ServiceContainer.create(root, console, dry_run=dry_run)
    registry = default_registry().unwrap()
    assert registry is not None
    raw.setdefault("use_cliff", False)
    result = run_command(registry, "release", raw, services, console)
    assert isinstance(result, Ok), result
    return result.value, services, console


# =============================================================================
# Successful releases
# =============================================================================


class TestSuccessfulRelease:
    def test_full_release(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        report, _, console = release(project)

        assert report.state is RunState.SUCCEEDED, console.text
        assert report.executed == [
            "preflight",
            "initialize-version",
            "determine-version",
            "bump-version",
            "generate-changelog",
            "commit-changes",
            "create-tag",
            "push-changes",
            "create-release",
        ]
        assert 'version = "1.3.0"' in (project / "pyproject.toml").read_text()
        changelog = (project / "CHANGELOG.md").read_text()
        assert changelog.startswith("# Changelog\n\n## [1.3.0]")
        assert "- add graph command" in changelog

        assert "add -- pyproject.toml CHANGELOG.md" in git.calls
        assert "commit -m chore(release): release demo@1.3.0" in git.calls
        assert "tag -a v1.3.0 -m Release 1.3.0" in git.calls
        assert "push origin main" in git.calls
        assert "push origin refs/tags/v1.3.0" in git.calls

        create = [c for c in gh.calls if c[1:3] == ["release", "create"]][0]
        assert create[3] == "v1.3.0"
        notes = create[create.index("--notes") + 1]
        assert "### Features" in notes
        assert not notes.startswith("## ")
        assert report.exit_code() is ExitCode.OK

    def test_explicit_version_and_name(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        report, _, _ = release(project, version="2.0.0", name="acme-demo")
        assert report.success
        assert "commit -m chore(release): release acme-demo@2.0.0" in git.calls
        assert "v2.0.0" in git.tags

    def test_prerelease(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        report, _, _ = release(project, release_type="prerelease", pre_id="rc")
        assert report.success
        assert 'version = "1.3.0-rc.0"' in (project / "pyproject.toml").read_text()
        create = [c for c in gh.calls if c[1:3] == ["release", "create"]][0]
        assert "--prerelease" in create

    def test_skip_bump_skips_through_to_changelog(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        """Without a bump the current version is tagged and released."""
        report, _, _ = release(project, skip_bump=True)
        assert report.success
        assert report.skip_reasons == {
            DETERMINE_VERSION: "version bump disabled",
            BUMP_VERSION: "skipped through to generate-changelog",
        }
        assert (project / "pyproject.toml").read_text() == PYPROJECT
        assert "## [1.2.3]" in (project / "CHANGELOG.md").read_text()
        assert "add -- CHANGELOG.md" in git.calls
        assert "tag -a v1.2.3 -m Release 1.2.3" in git.calls

    def test_local_only_release(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        report, _, _ = release(project, skip_push=True, skip_release=True)
        assert report.success
        assert report.skipped == [PUSH_CHANGES, CREATE_RELEASE]
        assert not any(c.startswith("push") for c in git.calls)
        assert gh.calls == []

    def test_skip_git(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        report, _, _ = release(project, skip_git=True, skip_release=True)
        assert report.success
        assert report.skip_reasons["commit-changes"] == "nothing to commit"
        assert report.skip_reasons[CREATE_TAG] == "git disabled"
        assert not any(c.startswith(("commit", "tag", "push")) for c in git.calls)
        assert 'version = "1.3.0"' in (project / "pyproject.toml").read_text()

    def test_dry_run_changes_nothing(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        report, services, _ = release(project, dry_run=True)
        assert report.success
        assert (project / "pyproject.toml").read_text() == PYPROJECT
        assert not (project / "CHANGELOG.md").exists()
        assert not any(c.startswith(("add", "commit", "tag", "push")) for c in git.calls)
        assert not any(c[1:3] == ["release", "create"] for c in gh.calls)

        described = [a.describe() for a in services.dry_run.actions]
        assert f"file: write {project / 'pyproject.toml'}" in described
        assert f"file: write {project / 'CHANGELOG.md'}" in described
        assert "git: tag -a v1.3.0 -m Release 1.3.0" in [f"{a.kind}: {a.action}" for a in services.dry_run.actions]
        assert services.dry_run.by_kind("hosting")[0].action == "gh release create"


# =============================================================================
# Failures before anything changes
# =============================================================================


class TestPreflightFailures:
    def test_dirty_tree(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        git.dirty = True
        report, _, _ = release(project)
        assert report.failed == [PREFLIGHT]
        assert report.error is not None
        assert report.error.kind is ErrorKind.CONFLICT
        assert report.exit_code() is ExitCode.TASK_FAILED

    def test_allow_dirty(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        git.dirty = True
        report, _, _ = release(project, allow_dirty=True)
        assert report.success

    def test_wrong_branch(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        git.branch = "feature/x"
        report, _, _ = release(project, branch="main")
        assert report.failed == [PREFLIGHT]
        assert report.error is not None
        assert "feature/x" in report.error.message

    def test_missing_hosting_cli(self, project: Path, git: FakeGit, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(hosting_module, "which", lambda name: None)
        report, _, _ = release(project)
        assert report.error is not None
        assert report.error.message == "gh: missing"

    def test_existing_tag_aborts(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        git.tags.add("v1.3.0")
        report, _, _ = release(project)
        assert report.aborted_by == DETERMINE_VERSION
        assert report.error is not None
        assert "tag v1.3.0 already exists" in report.error.message
        assert report.failed == [DETERMINE_VERSION]
        assert (project / "pyproject.toml").read_text() == PYPROJECT
        assert report.not_run[0] == BUMP_VERSION

    def test_version_must_increase(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        report, _, _ = release(project, version="1.0.0")
        assert report.failed == [DETERMINE_VERSION]
        assert report.error is not None
        assert report.error.kind is ErrorKind.INVALID

    def test_invalid_config_is_rejected_before_running(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        services = ServiceContainer.create(project, MockConsole())
        registry = default_registry().unwrap()
        assert registry is not None
        result = run_command(registry, "release", {"bump": "huge"}, services, MockConsole())
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.VALIDATION
        assert git.calls == []


# =============================================================================
# Rollback
# =============================================================================


class TestRollback:
    def test_push_failure_restores_everything(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        git.fail_on.add("push origin main")
        report, _, _ = release(project)

        assert report.state is RunState.ROLLED_BACK
        assert report.failed == [PUSH_CHANGES]
        assert report.rollback is not None
        assert report.rollback.rolled_back == (
            PUSH_CHANGES,
            CREATE_TAG,
            "commit-changes",
            GENERATE_CHANGELOG,
            BUMP_VERSION,
        )
        assert "tag -d v1.3.0" in git.calls
        assert "reset --soft HEAD~1" in git.calls
        assert "v1.3.0" not in git.tags
        assert not any(c.startswith("push origin --delete") for c in git.calls)
        assert (project / "pyproject.toml").read_text() == PYPROJECT
        assert not (project / "CHANGELOG.md").exists()
        assert report.exit_code() is ExitCode.TASK_FAILED

    def test_existing_changelog_is_restored(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        original = "# Changelog\n\n## [1.2.3] - 2026-01-01\n\n- older\n"
        (project / "CHANGELOG.md").write_text(original)
        git.fail_on.add("tag -a")
        report, _, _ = release(project)
        assert report.state is RunState.ROLLED_BACK
        assert (project / "CHANGELOG.md").read_text() == original

    def test_release_failure_deletes_remote_tag(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        gh.fail_create = True
        report, _, console = release(project)
        assert report.failed == [CREATE_RELEASE]
        assert report.state is RunState.ROLLED_BACK
        assert "push origin --delete refs/tags/v1.3.0" in git.calls
        assert console.has_warning()

    def test_existing_hosting_release_conflicts(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        gh.existing.add("v1.3.0")
        report, _, _ = release(project)
        assert report.error is not None
        assert report.error.kind is ErrorKind.CONFLICT
        assert report.failed == [CREATE_RELEASE]

    def test_failed_undo_is_reported(self, project: Path, git: FakeGit, gh: FakeGh) -> None:
        git.fail_on.update({"push origin main", "tag -d"})
        report, _, _ = release(project)
        assert report.state is RunState.ROLLBACK_FAILED
        assert report.rollback is not None
        assert report.rollback.failed_task == CREATE_TAG
        assert report.rollback.pending[0] == CREATE_TAG
        assert report.exit_code() is ExitCode.ROLLBACK_FAILED
