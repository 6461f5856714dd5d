"""Combinators for boolean skip predicates used with ``TaskBuilder.skip_when``."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .context import ExecutionContext

type Predicate = Callable[[ExecutionContext[Any]], bool]

__all__ = ["Predicate", "all_of", "any_of", "negate"]


def all_of(*predicates: Predicate) -> Predicate:
    """True when every predicate is true (and for an empty list)."""

    def check(ctx: ExecutionContext[Any]) -> bool:
        return all(p(ctx) for p in predicates)

    return check


def any_of(*predicates: Predicate) -> Predicate:
    """True when at least one predicate is true."""

    def check(ctx: ExecutionContext[Any]) -> bool:
        return any(p(ctx) for p in predicates)

    return check


def negate(predicate: Predicate) -> Predicate:
    def check(ctx: ExecutionContext[Any]) -> bool:
        return not predicate(ctx)

    return check
