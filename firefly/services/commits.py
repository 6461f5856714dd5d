"""Conventional commit parsing and bump recommendation.

Only the header (first line) is parsed for type, scope and ``!``; a
``BREAKING CHANGE:`` or ``BREAKING-CHANGE:`` footer anywhere in the message
also marks the commit as breaking.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from .semver import BumpKind, SemVer

_HEADER_RE = re.compile(r"^(\w+)(?:\(([^)]+)\))?(!)?: (.+)$")
_BREAKING_RE = re.compile(r"^BREAKING[ -]CHANGE: ", re.MULTILINE)

_MINOR_TYPES = frozenset({"feat"})


@dataclass(frozen=True, slots=True)
class ConventionalCommit:
    type: str
    scope: str | None
    description: str
    breaking: bool = False
    body: str = ""


def parse_commit(message: str) -> ConventionalCommit | None:
    """Parse a full commit message; None when the header is not conventional."""
    lines = message.strip().splitlines()
    if not lines:
        return None
    m = _HEADER_RE.match(lines[0].strip())
    if m is None:
        return None
    body = "\n".join(lines[1:]).strip()
    return ConventionalCommit(
        type=m.group(1).lower(),
        scope=m.group(2),
        description=m.group(4).strip(),
        breaking=m.group(3) == "!" or _BREAKING_RE.search(body) is not None,
        body=body,
    )


def parse_commits(messages: Iterable[str]) -> list[ConventionalCommit]:
    """Parse messages, dropping the ones that are not conventional commits."""
    out: list[ConventionalCommit] = []
    for message in messages:
        commit = parse_commit(message)
        if commit is not None:
            out.append(commit)
    return out


def recommend_bump(commits: Iterable[ConventionalCommit], current: SemVer) -> BumpKind:
    """Bump level implied by ``commits``.

    Breaking changes mean major, except below 1.0.0 where they mean minor.
    A ``feat`` means minor; anything else (``fix``, ``perf``, or nothing
    conventional at all) means patch.
    """
    level: BumpKind = "patch"
    for commit in commits:
        if commit.breaking:
            return "minor" if current.major == 0 else "major"
        if commit.type in _MINOR_TYPES:
            level = "minor"
    return level
