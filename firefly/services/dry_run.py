"""Dry-run bookkeeping.

When a run is started with ``--dry-run`` every capability that would mutate
the outside world (files, git, hosting) records what it would have done in a
shared :class:`DryRunLog` and returns success without side effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ActionKind = Literal["file", "git", "hosting", "command"]

__all__ = ["ActionKind", "DryRunAction", "DryRunLog"]


@dataclass(frozen=True, slots=True)
class DryRunAction:
    kind: ActionKind
    action: str
    target: str

    def describe(self) -> str:
        return f"{self.kind}: {self.action} {self.target}"


def _empty_actions() -> list[DryRunAction]:
    return []


@dataclass
class DryRunLog:
    """Recorder shared by all services of one run."""

    enabled: bool = False
    actions: list[DryRunAction] = field(default_factory=_empty_actions)

    def record(self, kind: ActionKind, action: str, target: str) -> None:
        if self.enabled:
            self.actions.append(DryRunAction(kind=kind, action=action, target=target))

    def by_kind(self, kind: ActionKind) -> list[DryRunAction]:
        return [a for a in self.actions if a.kind == kind]

    def clear(self) -> None:
        self.actions.clear()
