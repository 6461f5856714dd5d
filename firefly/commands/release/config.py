"""Release command configuration.

Raw values come from the ``[release]`` table of ``firefly.toml`` (or
``[tool.firefly.release]``) merged with CLI flags. :class:`ReleaseConfigSchema`
validates that mapping into a frozen :class:`ReleaseConfig` before any task
runs.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Literal

from firefly.core.errors import FireflyError, validation_error
from firefly.core.result import Err, Ok, Result
from firefly.services.hosting import PLATFORMS, Platform
from firefly.services.semver import BUMP_KINDS, BumpKind, parse_version

BumpStrategy = Literal["auto", "major", "minor", "patch"]
ReleaseType = Literal["release", "prerelease"]

BUMP_STRATEGIES: tuple[BumpStrategy, ...] = ("auto", *BUMP_KINDS)
RELEASE_TYPES: tuple[ReleaseType, ...] = ("release", "prerelease")

DEFAULT_PRE_ID = "beta"
DEFAULT_TAG_TEMPLATE = "v{version}"
DEFAULT_COMMIT_TEMPLATE = "chore(release): release {name}@{version}"

_PRE_ID_RE = re.compile(r"^[0-9A-Za-z-]+$")
_SOURCE = "config"


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Validated release settings.

    Attributes:
        name: Package name override (defaults to the manifest name).
        bump: ``auto`` analyzes conventional commits; otherwise the level.
        version: Explicit next version; overrides ``bump``.
        release_type: ``prerelease`` produces ``<pre_id>.N`` versions.
        pre_id: Pre-release identifier.
        branch: Branch the release must run from (None disables the check).
        remote: Remote to push to.
        allow_dirty: Skip the clean-tree check.
        platform: Hosting provider for the release.
        repo: ``owner/name`` passed to the hosting CLI (None uses the cwd remote).
        draft: Create the hosting release as a draft.
        prerelease: Mark the hosting release as a pre-release.
        latest: Mark the hosting release as latest.
    """

    name: str | None = None
    bump: BumpStrategy = "auto"
    version: str | None = None
    release_type: ReleaseType = "release"
    pre_id: str | None = None
    branch: str | None = None
    remote: str = "origin"
    allow_dirty: bool = False
    skip_bump: bool = False
    skip_changelog: bool = False
    skip_git: bool = False
    skip_push: bool = False
    skip_release: bool = False
    platform: Platform = "github"
    repo: str | None = None
    draft: bool = False
    prerelease: bool = False
    latest: bool = True
    changelog_path: str = "CHANGELOG.md"
    use_cliff: bool = True
    tag_template: str = DEFAULT_TAG_TEMPLATE
    commit_template: str = DEFAULT_COMMIT_TEMPLATE
    dry_run: bool = False

    @property
    def effective_pre_id(self) -> str | None:
        """Pre-release id to apply, or None for a stable release."""
        if self.pre_id:
            return self.pre_id
        return DEFAULT_PRE_ID if self.release_type == "prerelease" else None

    def tag_for(self, version: str) -> str:
        return self.tag_template.format(version=version)

    def commit_message(self, name: str, version: str) -> str:
        return self.commit_template.format(name=name, version=version)


_BOOL_FIELDS = frozenset(f.name for f in fields(ReleaseConfig) if f.type in ("bool", bool))
_STR_FIELDS = frozenset(f.name for f in fields(ReleaseConfig)) - _BOOL_FIELDS


class ReleaseConfigSchema:
    """Parses a raw mapping into :class:`ReleaseConfig`.

    Keys may use ``snake_case`` or ``kebab-case``. Unknown keys and values of
    the wrong type are VALIDATION errors, all reported at once in ``details``.
    """

    def parse(self, raw: Mapping[str, object]) -> Result[ReleaseConfig, FireflyError]:
        values: dict[str, object] = {}
        problems: list[str] = []

        for key, value in raw.items():
            name = key.replace("-", "_")
            if value is None:
                continue
            if name in _BOOL_FIELDS:
                if not isinstance(value, bool):
                    problems.append(f"{key}: expected true/false")
                    continue
            elif name in _STR_FIELDS:
                if not isinstance(value, str):
                    problems.append(f"{key}: expected a string")
                    continue
            else:
                problems.append(f"{key}: unknown setting")
                continue
            values[name] = value

        problems.extend(_check_values(values))
        if problems:
            return Err(
                validation_error(
                    "invalid release configuration",
                    source=_SOURCE,
                    details=problems,
                )
            )
        return Ok(ReleaseConfig(**values))  # type: ignore[arg-type]


def _check_values(values: Mapping[str, object]) -> list[str]:
    problems: list[str] = []

    bump = values.get("bump", "auto")
    if bump not in BUMP_STRATEGIES:
        problems.append(f"bump: expected one of {', '.join(BUMP_STRATEGIES)}, got '{bump}'")

    release_type = values.get("release_type", "release")
    if release_type not in RELEASE_TYPES:
        problems.append(f"release_type: expected one of {', '.join(RELEASE_TYPES)}")

    platform = values.get("platform", "github")
    if platform not in PLATFORMS:
        problems.append(f"platform: expected one of {', '.join(PLATFORMS)}, got '{platform}'")

    version = values.get("version")
    if isinstance(version, str) and parse_version(version) is None:
        problems.append(f"version: '{version}' is not a semantic version")

    pre_id = values.get("pre_id")
    if isinstance(pre_id, str) and not _PRE_ID_RE.match(pre_id):
        problems.append(f"pre_id: '{pre_id}' must be alphanumeric")

    for key in ("tag_template", "commit_template"):
        template = values.get(key)
        if isinstance(template, str) and "{version}" not in template:
            problems.append(f"{key}: must contain '{{version}}'")

    releasing = not values.get("skip_release", False)
    no_tag_push = values.get("skip_git", False) or values.get("skip_push", False)
    if releasing and no_tag_push:
        problems.append("skip_release: a hosting release needs a pushed tag; also pass --skip-release")

    return problems


def bump_kind(config: ReleaseConfig) -> BumpKind | None:
    """Explicit bump level, or None for ``auto``."""
    return None if config.bump == "auto" else config.bump
