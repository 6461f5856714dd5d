"""Changelog generation.

git-cliff renders the unreleased section when it is installed; otherwise a
built-in renderer groups conventional commits by type. Either way the new
section is prepended to the changelog file through :class:`FileSystem`, so
dry runs and undo behave the same for both.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from firefly.core.errors import FireflyError
from firefly.core.result import Err, Ok, Result
from firefly.platform.process import run as run_process
from firefly.platform.process import which

from .commits import ConventionalCommit, parse_commits
from .filesystem import FileSystem

_SOURCE = "changelog"
_CLIFF_TIMEOUT_SECONDS = 60.0

CHANGELOG_HEADER = "# Changelog"

_GROUPS: tuple[tuple[str, str], ...] = (
    ("feat", "Features"),
    ("fix", "Bug Fixes"),
    ("perf", "Performance"),
    ("refactor", "Refactoring"),
    ("docs", "Documentation"),
)

__all__ = ["CHANGELOG_HEADER", "ChangelogGenerator", "ChangelogSection", "prepend_section", "render_section"]


@dataclass(frozen=True, slots=True)
class ChangelogSection:
    """A rendered release section and the tool that produced it."""

    text: str
    generator: str

    @property
    def body(self) -> str:
        """Section without its ``## ...`` heading, for hosting release notes."""
        lines = self.text.strip().splitlines()
        if lines and lines[0].startswith("## "):
            lines = lines[1:]
        return "\n".join(lines).strip()


def render_section(version: str, commits: Sequence[ConventionalCommit], *, today: date | None = None) -> str:
    day = (today or date.today()).isoformat()
    out = [f"## [{version}] - {day}", ""]

    breaking = [c for c in commits if c.breaking]
    if breaking:
        out.append("### Breaking Changes")
        out.extend(_entry(c) for c in breaking)
        out.append("")

    known = {t for t, _ in _GROUPS}
    for commit_type, title in _GROUPS:
        group = [c for c in commits if c.type == commit_type and not c.breaking]
        if group:
            out.append(f"### {title}")
            out.extend(_entry(c) for c in group)
            out.append("")

    other = [
        c for c in commits
        if c.type not in known and not c.breaking and not _is_release_commit(c)
    ]
    if other:
        out.append("### Other")
        out.extend(_entry(c) for c in other)
        out.append("")

    if len(out) == 2:
        out.extend(["No notable changes.", ""])
    return "\n".join(out)


def prepend_section(existing: str, section: str) -> str:
    """Insert ``section`` below the changelog title, creating it if missing."""
    section = section.strip() + "\n"
    if not existing.strip():
        return f"{CHANGELOG_HEADER}\n\n{section}"
    lines = existing.splitlines(keepends=True)
    if lines[0].startswith("# "):
        rest = "".join(lines[1:]).lstrip("\n")
        return f"{lines[0].rstrip()}\n\n{section}\n{rest}" if rest else f"{lines[0].rstrip()}\n\n{section}"
    return f"{CHANGELOG_HEADER}\n\n{section}\n{existing}"


def _entry(commit: ConventionalCommit) -> str:
    scope = f"**{commit.scope}:** " if commit.scope else ""
    return f"- {scope}{commit.description}"


def _is_release_commit(commit: ConventionalCommit) -> bool:
    return commit.type == "chore" and commit.scope == "release"


class ChangelogGenerator:
    """Renders and writes the release section.

    Attributes:
        fs: File access (honors dry-run).
        path: Changelog path relative to the repository root.
        use_cliff: Try git-cliff first when installed.
    """

    def __init__(self, fs: FileSystem, *, path: str = "CHANGELOG.md", use_cliff: bool = True) -> None:
        self.fs = fs
        self.path = path
        self.use_cliff = use_cliff

    def cliff_available(self) -> bool:
        return self.use_cliff and which("git-cliff") is not None

    def render(self, version: str, tag: str, messages: Sequence[str]) -> Result[ChangelogSection, FireflyError]:
        """Render the section for ``version`` from commit ``messages``."""
        if self.cliff_available():
            result = run_process(
                ["git-cliff", "--tag", tag, "--unreleased", "--strip", "all"],
                cwd=self.fs.root,
                timeout=_CLIFF_TIMEOUT_SECONDS,
            )
            if isinstance(result, Err):
                return Err(result.error.to_error("git-cliff failed", source=_SOURCE))
            return Ok(ChangelogSection(text=result.value, generator="git-cliff"))

        section = render_section(version, parse_commits(messages))
        return Ok(ChangelogSection(text=section, generator="builtin"))

    def read_existing(self) -> Result[str | None, FireflyError]:
        """Current changelog text, or None when the file does not exist yet."""
        if not self.fs.exists(self.path):
            return Ok(None)
        return self.fs.read_text(self.path)

    def write(self, section: ChangelogSection, existing: str | None) -> Result[Path, FireflyError]:
        updated = prepend_section(existing or "", section.text)
        return self.fs.write_text(self.path, updated).map(lambda _: self.fs.resolve(self.path))
