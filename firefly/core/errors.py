"""Error values and exit codes.

Every fallible firefly operation reports failure with a :class:`FireflyError`.
The ``kind`` is drawn from a closed set so callers (and the CLI exit-code
mapping) can branch on it without parsing messages.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Sequence

__all__ = [
    "ErrorKind",
    "FireflyError",
    "ExitCode",
    "exit_code_for",
    "validation_error",
    "not_found_error",
    "conflict_error",
    "io_error",
    "timeout_error",
    "unexpected_error",
    "failed_error",
    "invalid_error",
]


class ErrorKind(Enum):
    """Classification of a :class:`FireflyError`."""

    VALIDATION = "VALIDATION"  # bad input or configuration
    NOT_FOUND = "NOT_FOUND"  # lookup failed (context key, task id, command)
    CONFLICT = "CONFLICT"  # state conflict (duplicate, cycle, sealed config)
    IO = "IO"  # filesystem or network failure
    TIMEOUT = "TIMEOUT"
    UNEXPECTED = "UNEXPECTED"  # exception escaped a callable
    FAILED = "FAILED"  # an external command reported failure
    INVALID = "INVALID"  # invalid state or arguments

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class FireflyError:
    """Canonical error payload.

    Attributes:
        kind: Error classification.
        message: Human-readable description.
        cause: Lower-level error or exception that triggered this one.
        source: Component that emitted the error (``"graph"``, ``"git"``...).
        retryable: Hint for callers; firefly itself never retries.
        details: Extra lines shown under the message (cycle members, stderr).
    """

    kind: ErrorKind
    message: str
    cause: FireflyError | BaseException | None = None
    source: str | None = None
    retryable: bool = False
    details: tuple[str, ...] = ()

    def pretty(self) -> str:
        prefix = f"[{self.source}] " if self.source else ""
        return f"{prefix}{self.message}"

    def with_context(self, message: str) -> FireflyError:
        """Wrap this error in a new one of the same kind with ``message``."""
        return replace(self, message=f"{message}: {self.message}", cause=self)

    def chain(self) -> list[str]:
        """Messages from this error down through its causes."""
        out: list[str] = []
        current: FireflyError | BaseException | None = self
        while current is not None:
            if isinstance(current, FireflyError):
                out.append(current.message)
                current = current.cause
            else:
                out.append(f"{type(current).__name__}: {current}")
                current = None
        return out


Cause = FireflyError | BaseException | None


class ExitCode(IntEnum):
    """Process exit codes for the firefly CLI.

    These values are part of the CLI contract and must stay stable.
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    TASK_FAILED = 3  # run failed, rollback undid everything
    ROLLBACK_FAILED = 4  # run failed and effects are still applied
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ExitCode.OK


def exit_code_for(kind: ErrorKind) -> ExitCode:
    """Map an error kind raised before any task ran to an exit code."""
    match kind:
        case ErrorKind.VALIDATION | ErrorKind.INVALID | ErrorKind.NOT_FOUND:
            return ExitCode.USER_ERROR
        case ErrorKind.CONFLICT:
            return ExitCode.USER_ERROR
        case ErrorKind.IO | ErrorKind.TIMEOUT:
            return ExitCode.IO_ERROR
        case ErrorKind.FAILED | ErrorKind.UNEXPECTED:
            return ExitCode.ENV_ERROR


def validation_error(
    message: str,
    *,
    source: str | None = None,
    cause: Cause = None,
    retryable: bool = False,
    details: Sequence[str] = (),
) -> FireflyError:
    return _make(ErrorKind.VALIDATION, message, source, cause, retryable, details)


def not_found_error(
    message: str,
    *,
    source: str | None = None,
    cause: Cause = None,
    retryable: bool = False,
    details: Sequence[str] = (),
) -> FireflyError:
    return _make(ErrorKind.NOT_FOUND, message, source, cause, retryable, details)


def conflict_error(
    message: str,
    *,
    source: str | None = None,
    cause: Cause = None,
    retryable: bool = False,
    details: Sequence[str] = (),
) -> FireflyError:
    return _make(ErrorKind.CONFLICT, message, source, cause, retryable, details)


def io_error(
    message: str,
    *,
    source: str | None = None,
    cause: Cause = None,
    retryable: bool = False,
    details: Sequence[str] = (),
) -> FireflyError:
    return _make(ErrorKind.IO, message, source, cause, retryable, details)


def timeout_error(
    message: str,
    *,
    source: str | None = None,
    cause: Cause = None,
    retryable: bool = True,
    details: Sequence[str] = (),
) -> FireflyError:
    return _make(ErrorKind.TIMEOUT, message, source, cause, retryable, details)


def unexpected_error(
    message: str,
    *,
    source: str | None = None,
    cause: Cause = None,
    retryable: bool = False,
    details: Sequence[str] = (),
) -> FireflyError:
    return _make(ErrorKind.UNEXPECTED, message, source, cause, retryable, details)


def failed_error(
    message: str,
    *,
    source: str | None = None,
    cause: Cause = None,
    retryable: bool = False,
    details: Sequence[str] = (),
) -> FireflyError:
    return _make(ErrorKind.FAILED, message, source, cause, retryable, details)


def invalid_error(
    message: str,
    *,
    source: str | None = None,
    cause: Cause = None,
    retryable: bool = False,
    details: Sequence[str] = (),
) -> FireflyError:
    return _make(ErrorKind.INVALID, message, source, cause, retryable, details)


def _make(
    kind: ErrorKind,
    message: str,
    source: str | None,
    cause: Cause,
    retryable: bool,
    details: Sequence[str],
) -> FireflyError:
    return FireflyError(
        kind=kind,
        message=message,
        cause=cause,
        source=source,
        retryable=retryable,
        details=tuple(str(d) for d in details),
    )
