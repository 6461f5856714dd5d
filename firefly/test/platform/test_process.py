"""Tests for firefly.platform.process module."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest

from firefly.core.errors import ErrorKind
from firefly.core.result import Err, Ok
from firefly.platform.process import ProcessError, run, which


class TestProcessError:
    """Test ProcessError dataclass."""

    def test_str_short_command(self) -> None:
        error = ProcessError(command=("git", "status"), returncode=1, stdout="", stderr="")
        assert str(error) == "git status failed (exit 1)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("gh", "release", "create", "v1.0.0", "--draft"),
            returncode=1,
            stdout="",
            stderr="",
        )
        assert str(error) == "gh release create ... failed (exit 1)"

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]

    def test_to_error_failed_carries_stderr(self) -> None:
        error = ProcessError(("git", "push"), 128, "", "rejected\n").to_error("push failed", source="git")
        assert error.kind is ErrorKind.FAILED
        assert error.details == ("rejected",)
        assert error.source == "git"

    def test_to_error_timeout(self) -> None:
        error = ProcessError(("gh",), -1, "", "timed out", timed_out=True).to_error("slow", source="hosting")
        assert error.kind is ErrorKind.TIMEOUT
        assert error.retryable is True

    def test_to_error_spawn_failure_is_io(self) -> None:
        error = ProcessError(("nope",), -1, "", "No such file").to_error("spawn", source="x")
        assert error.kind is ErrorKind.IO


class TestRun:
    """Test run function."""

    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)
        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "import sys; sys.exit(42)"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == 42

    def test_captures_stderr(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; sys.stderr.write('error msg'); sys.exit(1)"],
            cwd=tmp_path,
        )
        assert isinstance(result, Err)
        assert "error msg" in result.error.stderr

    def test_stdin(self, tmp_path: Path) -> None:
        result = run(
            [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
            cwd=tmp_path,
            stdin="notes",
        )
        assert isinstance(result, Ok)
        assert "NOTES" in result.value

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert len(result.error.stderr) > 0

    def test_timeout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_run(*args: object, **kwargs: object) -> subprocess.CompletedProcess[str]:
            raise subprocess.TimeoutExpired(cmd="git", timeout=1.0)

        monkeypatch.setattr(subprocess, "run", fake_run)
        result = run(["git", "fetch"], cwd=tmp_path, timeout=1.0)
        assert isinstance(result, Err)
        assert result.error.timed_out is True
        assert "timed out" in result.error.stderr


class TestWhich:
    def test_finds_python(self) -> None:
        assert which(Path(sys.executable).name) is not None or which("python3") is not None

    def test_missing(self) -> None:
        assert which("nonexistent_command_12345") is None
