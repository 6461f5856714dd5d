from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

BumpKind = Literal["major", "minor", "patch"]
ReleaseType = Literal["release", "prerelease"]

_VERSION_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z.-]+)?$"
)
_PRE_RE = re.compile(r"^([0-9A-Za-z-]+)\.(0|[1-9]\d*)$")

BUMP_KINDS: tuple[BumpKind, ...] = ("major", "minor", "patch")


@dataclass(frozen=True, slots=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: str | None = None

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.prerelease}" if self.prerelease else base

    def to_tag(self, prefix: str = "v") -> str:
        return f"{prefix}{self}"

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    @property
    def stable(self) -> SemVer:
        return SemVer(self.major, self.minor, self.patch)

    def bump(self, kind: BumpKind) -> SemVer:
        """Next stable version.

        A pre-release that already sits on the target line is released
        as-is (``1.3.0-beta.2`` bumped by minor is ``1.3.0``).
        """
        match kind:
            case "major":
                if self.is_prerelease and self.minor == 0 and self.patch == 0:
                    return self.stable
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                if self.is_prerelease and self.patch == 0:
                    return self.stable
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                if self.is_prerelease:
                    return self.stable
                return SemVer(self.major, self.minor, self.patch + 1)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")

    def bump_prerelease(self, pre_id: str, kind: BumpKind = "patch") -> SemVer:
        """Next ``<pre_id>.N`` pre-release.

        ``1.2.0-beta.1`` becomes ``1.2.0-beta.2``; a stable version, or a
        pre-release with another identifier, moves to ``bump(kind)-<pre_id>.0``.
        """
        current = parse_prerelease(self.prerelease) if self.prerelease else None
        if current is not None and current[0] == pre_id:
            return SemVer(self.major, self.minor, self.patch, f"{pre_id}.{current[1] + 1}")
        base = self.stable.bump(kind) if not self.is_prerelease else self.stable
        return SemVer(base.major, base.minor, base.patch, f"{pre_id}.0")

    def sort_key(self) -> tuple[int, int, int, int, tuple[tuple[int, int | str], ...]]:
        if self.prerelease is None:
            return (self.major, self.minor, self.patch, 1, ())
        parts: list[tuple[int, int | str]] = []
        for part in self.prerelease.split("."):
            parts.append((0, int(part)) if part.isdigit() else (1, part))
        return (self.major, self.minor, self.patch, 0, tuple(parts))

    def __lt__(self, other: SemVer) -> bool:
        return self.sort_key() < other.sort_key()


def parse_version(text: str) -> SemVer | None:
    """Parse ``1.2.3``, ``v1.2.3`` or ``1.2.3-beta.0``; build metadata is dropped."""
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)), m.group(4))


def parse_prerelease(prerelease: str) -> tuple[str, int] | None:
    m = _PRE_RE.match(prerelease)
    if m is None:
        return None
    return (m.group(1), int(m.group(2)))
