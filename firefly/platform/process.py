"""Subprocess execution returning Results.

Every external tool firefly drives (git, gh, glab, git-cliff) goes through
:func:`run`, which captures output and converts timeouts and OS failures into
:class:`ProcessError` values. This module is the only place that calls
``subprocess`` directly.

Usage:
    match run(["git", "rev-parse", "HEAD"], cwd=root, timeout=30.0):
        case Ok(stdout):
            sha = stdout.strip()
        case Err(e):
            console.error(str(e))
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from firefly.core.errors import FireflyError, failed_error, io_error, timeout_error
from firefly.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "which"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A failed subprocess invocation.

    Attributes:
        command: Executed argv.
        returncode: Exit status (-1 for timeout or spawn failure).
        stdout: Captured standard output.
        stderr: Captured standard error, or the failure reason.
        timed_out: True when the process was killed after ``timeout``.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    def __str__(self) -> str:
        shown = " ".join(self.command[:3]) + (" ..." if len(self.command) > 3 else "")
        return f"{shown} failed (exit {self.returncode})"

    def to_error(self, message: str, *, source: str) -> FireflyError:
        """Convert to a FireflyError of the matching kind."""
        detail = self.stderr.strip() or self.stdout.strip()
        details = (detail,) if detail else ()
        if self.timed_out:
            return timeout_error(message, source=source, details=details)
        if self.returncode == -1:
            return io_error(message, source=source, details=details)
        return failed_error(message, source=source, details=details)


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
    stdin: str | None = None,
) -> Result[str, ProcessError]:
    """Execute ``cmd`` in ``cwd`` and return its stdout.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        env: Environment (inherits the current one when None).
        timeout: Seconds before the process is killed.
        stdin: Text fed to standard input.

    Returns:
        Ok(stdout) when the exit status is 0, Err(ProcessError) otherwise.
    """
    argv = tuple(cmd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            input=stdin,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return Err(ProcessError(argv, -1, partial, f"command timed out after {timeout}s", timed_out=True))
    except OSError as e:
        return Err(ProcessError(argv, -1, "", str(e)))

    if proc.returncode:
        return Err(ProcessError(argv, proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)


def which(name: str) -> str | None:
    """Locate an executable on PATH."""
    return shutil.which(name)
