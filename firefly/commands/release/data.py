"""Context keys written and read by release tasks."""

from __future__ import annotations

from dataclasses import dataclass

PACKAGE_NAME = "package_name"
CURRENT_VERSION = "current_version"
NEXT_VERSION = "next_version"
LATEST_TAG = "latest_tag"
BUMP_REASON = "bump_reason"
MANIFEST_BACKUP = "manifest_backup"
CHANGELOG_BACKUP = "changelog_backup"
RELEASE_NOTES = "release_notes"
CHANGED_FILES = "changed_files"
COMMIT_CREATED = "commit_created"
TAG_NAME = "tag_name"
TAG_CREATED = "tag_created"
TAG_PUSHED = "tag_pushed"
RELEASE_URL = "release_url"
RELEASE_CREATED = "release_created"


@dataclass(frozen=True, slots=True)
class FileBackup:
    """Content of a file before a task changed it; ``text`` is None for a new file."""

    path: str
    text: str | None
