"""Capabilities handed to command task builders.

One container is built per run. Every service in it shares the same
:class:`DryRunLog`, so a single flag switches the whole run to dry-run mode.
Tests build a container around ``tmp_path`` and monkeypatch ``run_process``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from firefly.core.errors import FireflyError
from firefly.core.result import Result
from firefly.git.repository import Repository
from firefly.output.console import ConsoleProtocol

from .changelog import ChangelogGenerator
from .dry_run import DryRunLog
from .filesystem import FileSystem
from .hosting import HostingClient, hosting_client
from .manifest import Manifest

__all__ = ["ServiceContainer"]


@dataclass(slots=True)
class ServiceContainer:
    root: Path
    console: ConsoleProtocol
    dry_run: DryRunLog
    fs: FileSystem
    git: Repository
    manifest: Manifest

    @classmethod
    def create(
        cls,
        root: Path,
        console: ConsoleProtocol,
        *,
        dry_run: bool = False,
        manifest_path: Path | None = None,
    ) -> ServiceContainer:
        log = DryRunLog(enabled=dry_run)
        fs = FileSystem(root, dry_run=log)
        return cls(
            root=root,
            console=console,
            dry_run=log,
            fs=fs,
            git=Repository(root, dry_run=log),
            manifest=Manifest(fs, manifest_path),
        )

    def changelog(self, path: str = "CHANGELOG.md", *, use_cliff: bool = True) -> ChangelogGenerator:
        return ChangelogGenerator(self.fs, path=path, use_cliff=use_cliff)

    def hosting(self, platform: str, *, repo: str | None = None) -> Result[HostingClient, FireflyError]:
        return hosting_client(platform, self.root, dry_run=self.dry_run, repo=repo)
