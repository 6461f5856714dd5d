"""Result type used across every firefly boundary.

Operations that can fail return ``Ok(value)`` or ``Err(error)`` instead of
raising. Callers branch with ``isinstance`` or structural pattern matching:

    match context.get("next_version"):
        case Ok(version):
            console.info(f"releasing {version}")
        case Err(error):
            console.error(error.pretty())

Exceptions raised by user-supplied callables (task bodies, predicates, undo
hooks) are converted at the seam with :func:`capture`, so they never cross a
component boundary as exceptions.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeGuard, TypeVar

if TYPE_CHECKING:
    from firefly.core.errors import FireflyError

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")

__all__ = ["Ok", "Err", "Result", "is_ok", "is_err", "capture"]


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful outcome carrying ``value``."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_err(self) -> None:
        """Raise, because an Ok holds no error.

        Raises:
            ValueError: Always.
        """
        raise ValueError(f"called unwrap_err on Ok: {self.value!r}")

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        return Ok(f(self.value))

    def map_err(self, f: Callable[[E], F]) -> Ok[T]:
        return self

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Chain another fallible step on the contained value."""
        return f(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed outcome carrying ``error``."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> None:
        """Raise with the contained error.

        Raises:
            ValueError: Always.
        """
        raise ValueError(f"called unwrap on Err: {self.error!r}")

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> E:
        return self.error

    def map(self, f: Callable[[T], U]) -> Err[E]:
        return self

    def map_err(self, f: Callable[[E], F]) -> Err[F]:
        return Err(f(self.error))

    def and_then(self, f: Callable[[T], Result[U, E]]) -> Err[E]:
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]


def is_ok[T, E](result: Result[T, E]) -> TypeGuard[Ok[T]]:
    """Narrow ``result`` to ``Ok`` for type checkers."""
    return isinstance(result, Ok)


def is_err[T, E](result: Result[T, E]) -> TypeGuard[Err[E]]:
    """Narrow ``result`` to ``Err`` for type checkers."""
    return isinstance(result, Err)


def capture[T](
    f: Callable[[], Result[T, FireflyError]],
    *,
    source: str,
    message: str,
) -> Result[T, FireflyError]:
    """Call ``f`` and turn any exception it raises into an UNEXPECTED error.

    Non-Result return values are treated as a programming error in the callee
    and reported the same way.

    Args:
        f: Zero-argument callable returning a Result.
        source: Component name recorded on the error.
        message: Prefix for the error message.

    Returns:
        Whatever ``f`` returned, or ``Err(FireflyError)`` when it raised.
    """
    from firefly.core.errors import unexpected_error

    try:
        result = f()
    except Exception as e:  # noqa: BLE001 - user callables may raise anything
        return Err(unexpected_error(f"{message}: {e}", source=source, cause=e))

    if not isinstance(result, (Ok, Err)):
        return Err(
            unexpected_error(
                f"{message}: expected Ok/Err, got {type(result).__name__}",
                source=source,
            )
        )
    return result
