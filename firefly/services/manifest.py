"""Project manifest access (``pyproject.toml`` or ``package.json``).

Reads go through ``tomllib`` / ``json``. Writes replace only the version
value in the original text so formatting and comments survive.
"""

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from firefly.core.errors import FireflyError, not_found_error, validation_error
from firefly.core.result import Err, Ok, Result
from firefly.core.structured import as_str_dict, get_str, get_table

from .filesystem import FileSystem
from .semver import SemVer, parse_version

_SOURCE = "manifest"

ManifestKind = Literal["pyproject", "package.json"]

MANIFEST_FILES: tuple[tuple[str, ManifestKind], ...] = (
    ("pyproject.toml", "pyproject"),
    ("package.json", "package.json"),
)

_TOML_SECTION_RE = re.compile(r"^\s*\[([^\]]+)\]\s*$")
_TOML_VERSION_RE = re.compile(r'^(\s*version\s*=\s*)(["\'])([^"\']*)(["\'])')
_JSON_VERSION_RE = re.compile(r'("version"\s*:\s*")([^"]*)(")')

__all__ = ["Manifest", "ManifestInfo", "ManifestKind"]


@dataclass(frozen=True, slots=True)
class ManifestInfo:
    path: Path
    kind: ManifestKind
    name: str
    version: SemVer


class Manifest:
    """Version reader/writer for the manifest found under ``fs.root``."""

    def __init__(self, fs: FileSystem, path: Path | None = None) -> None:
        self.fs = fs
        self._path = path

    def locate(self) -> Result[tuple[Path, ManifestKind], FireflyError]:
        if self._path is not None:
            kind: ManifestKind = "package.json" if self._path.name == "package.json" else "pyproject"
            return Ok((self.fs.resolve(self._path), kind))
        for filename, kind in MANIFEST_FILES:
            if self.fs.exists(filename):
                return Ok((self.fs.resolve(filename), kind))
        return Err(
            not_found_error(
                f"no pyproject.toml or package.json in {self.fs.root}", source=_SOURCE
            )
        )

    def read(self) -> Result[ManifestInfo, FireflyError]:
        located = self.locate()
        if isinstance(located, Err):
            return located
        path, kind = located.value

        text = self.fs.read_text(path)
        if isinstance(text, Err):
            return text

        fields = _read_fields(text.value, kind, path)
        if isinstance(fields, Err):
            return fields
        name, raw_version = fields.value

        version = parse_version(raw_version)
        if version is None:
            return Err(validation_error(f"{path.name}: invalid version '{raw_version}'", source=_SOURCE))
        return Ok(ManifestInfo(path=path, kind=kind, name=name, version=version))

    def read_version(self) -> Result[SemVer, FireflyError]:
        return self.read().map(lambda info: info.version)

    def write_version(self, version: SemVer) -> Result[None, FireflyError]:
        located = self.locate()
        if isinstance(located, Err):
            return located
        path, kind = located.value

        text = self.fs.read_text(path)
        if isinstance(text, Err):
            return text

        updated = (
            _replace_json_version(text.value, str(version))
            if kind == "package.json"
            else _replace_toml_version(text.value, str(version))
        )
        if updated is None:
            return Err(validation_error(f"{path.name}: no version field to update", source=_SOURCE))
        return self.fs.write_text(path, updated)


def _read_fields(text: str, kind: ManifestKind, path: Path) -> Result[tuple[str, str], FireflyError]:
    if kind == "package.json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            return Err(validation_error(f"invalid JSON in {path}", source=_SOURCE, cause=e))
        table = as_str_dict(data) or {}
    else:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            return Err(validation_error(f"invalid TOML in {path}", source=_SOURCE, cause=e))
        tool = get_table(data, "tool") or {}
        table = get_table(data, "project") or get_table(tool, "poetry") or {}

    version = get_str(table, "version")
    if version is None:
        return Err(not_found_error(f"{path.name} has no version", source=_SOURCE))
    return Ok((get_str(table, "name") or path.parent.name, version))


def _replace_toml_version(text: str, version: str) -> str | None:
    """Rewrite ``version`` under ``[project]`` or ``[tool.poetry]``."""
    lines = text.splitlines(keepends=True)
    section: str | None = None
    for i, line in enumerate(lines):
        header = _TOML_SECTION_RE.match(line)
        if header:
            section = header.group(1).strip()
            continue
        if section not in ("project", "tool.poetry"):
            continue
        m = _TOML_VERSION_RE.match(line)
        if m:
            lines[i] = f"{m.group(1)}{m.group(2)}{version}{m.group(4)}{line[m.end():]}"
            return "".join(lines)
    return None


def _replace_json_version(text: str, version: str) -> str | None:
    updated, count = _JSON_VERSION_RE.subn(rf"\g<1>{version}\g<3>", text, count=1)
    return updated if count else None
