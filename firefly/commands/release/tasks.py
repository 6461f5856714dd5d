"""Release task bodies.

Each ``execute`` method reads what earlier tasks wrote to the context and
records what it did, so its ``undo`` only compensates for changes that
actually happened. Undo hooks are registered before ``execute`` runs; a
half-finished step must therefore be safe to undo.
"""

from __future__ import annotations

from pathlib import Path

from firefly.core.errors import (
    FireflyError,
    conflict_error,
    invalid_error,
    not_found_error,
    validation_error,
)
from firefly.core.result import Err, Ok, Result
from firefly.orchestration.context import ExecutionContext
from firefly.orchestration.task import CONTINUE, Abort, FlowInstruction
from firefly.services.changelog import ChangelogGenerator
from firefly.services.commits import parse_commits, recommend_bump
from firefly.services.container import ServiceContainer
from firefly.services.hosting import HostingClient, ReleaseRequest, require_cli
from firefly.services.semver import SemVer, parse_version

from . import data
from .config import ReleaseConfig, bump_kind

type Context = ExecutionContext[ReleaseConfig]

_SOURCE = "release"


class ReleaseSteps:
    """Execute/undo pairs for the release command, bound to one service container."""

    def __init__(self, services: ServiceContainer) -> None:
        self.services = services
        self.console = services.console

    # -- preflight ------------------------------------------------------

    def preflight(self, ctx: Context) -> Result[None, FireflyError]:
        cfg = ctx.config
        git = self.services.git

        if not cfg.skip_git:
            if not git.is_repository():
                return Err(not_found_error(f"not a git repository: {self.services.root}", source=_SOURCE))

            if not cfg.allow_dirty:
                clean = git.is_clean()
                if isinstance(clean, Err):
                    return clean
                if not clean.value:
                    return Err(
                        conflict_error(
                            "working tree has uncommitted changes",
                            source=_SOURCE,
                            details=["commit or stash them, or set allow_dirty"],
                        )
                    )

            if cfg.branch:
                branch = git.current_branch()
                if isinstance(branch, Err):
                    return branch
                if branch.value != cfg.branch:
                    return Err(
                        conflict_error(
                            f"on branch '{branch.value}', releases run from '{cfg.branch}'",
                            source=_SOURCE,
                        )
                    )

        if not cfg.skip_release:
            client = self._hosting(cfg)
            if isinstance(client, Err):
                return client
            available = require_cli(client.value)
            if isinstance(available, Err):
                return available

        self.console.debug("preflight checks passed")
        return Ok(None)

    # -- version --------------------------------------------------------

    def initialize_version(self, ctx: Context) -> Result[None, FireflyError]:
        info = self.services.manifest.read()
        if isinstance(info, Err):
            return info
        name = ctx.config.name or info.value.name
        ctx.set(data.PACKAGE_NAME, name)
        ctx.set(data.CURRENT_VERSION, str(info.value.version))
        self.console.info(f"{name} is at {info.value.version} ({info.value.path.name})")
        return Ok(None)

    def determine_version(self, ctx: Context) -> Result[None, FireflyError]:
        cfg = ctx.config
        current = self._current_version(ctx)
        if isinstance(current, Err):
            return current

        if cfg.version:
            explicit = parse_version(cfg.version)
            if explicit is None:
                return Err(validation_error(f"invalid version: {cfg.version}", source=_SOURCE))
            nxt, reason = explicit, "explicit version"
        else:
            kind = bump_kind(cfg)
            if kind is None:
                history = self._history()
                if isinstance(history, Err):
                    return history
                latest, messages = history.value
                ctx.set(data.LATEST_TAG, latest)
                commits = parse_commits(messages)
                kind = recommend_bump(commits, current.value)
                since = latest or "the first commit"
                reason = f"{len(commits)} conventional commit(s) since {since}"
            else:
                reason = f"{kind} bump requested"
            pre_id = cfg.effective_pre_id
            nxt = current.value.bump_prerelease(pre_id, kind) if pre_id else current.value.bump(kind)

        if not current.value < nxt:
            return Err(
                invalid_error(
                    f"next version {nxt} is not greater than current version {current.value}",
                    source=_SOURCE,
                )
            )

        ctx.set(data.NEXT_VERSION, str(nxt))
        ctx.set(data.TAG_NAME, cfg.tag_for(str(nxt)))
        ctx.set(data.BUMP_REASON, reason)
        self.console.info(f"next version: {nxt} ({reason})")
        return Ok(None)

    def check_tag_free(self, ctx: Context) -> FlowInstruction:
        """Abort before touching files when the release tag already exists."""
        if ctx.config.skip_git:
            return CONTINUE
        tag = self._tag_name(ctx)
        if self.services.git.tag_exists(tag):
            return Abort(f"tag {tag} already exists")
        return CONTINUE

    def bump_version(self, ctx: Context) -> Result[None, FireflyError]:
        nxt = ctx.get_as(data.NEXT_VERSION, str)
        if isinstance(nxt, Err):
            return nxt
        version = parse_version(nxt.value)
        if version is None:
            return Err(invalid_error(f"invalid next version in context: {nxt.value}", source=_SOURCE))

        located = self.services.manifest.locate()
        if isinstance(located, Err):
            return located
        path = located.value[0]

        original = self.services.fs.read_text(path)
        if isinstance(original, Err):
            return original
        ctx.set(data.MANIFEST_BACKUP, data.FileBackup(str(path), original.value))

        written = self.services.manifest.write_version(version)
        if isinstance(written, Err):
            return written
        self._track_changed(ctx, path)
        self.console.success(f"{path.name}: version {version}")
        return Ok(None)

    def undo_bump_version(self, ctx: Context) -> Result[None, FireflyError]:
        return self._restore(ctx.get_or(data.MANIFEST_BACKUP, None))

    # -- changelog ------------------------------------------------------

    def generate_changelog(self, ctx: Context) -> Result[None, FireflyError]:
        version = self._release_version(ctx)
        if isinstance(version, Err):
            return version
        tag = self._tag_name(ctx)

        history = self._history()
        if isinstance(history, Err):
            return history
        _, messages = history.value

        generator = self._changelog(ctx.config)
        section = generator.render(version.value, tag, messages)
        if isinstance(section, Err):
            return section

        existing = generator.read_existing()
        if isinstance(existing, Err):
            return existing
        path = self.services.fs.resolve(generator.path)
        ctx.set(data.CHANGELOG_BACKUP, data.FileBackup(str(path), existing.value))

        written = generator.write(section.value, existing.value)
        if isinstance(written, Err):
            return written
        ctx.set(data.RELEASE_NOTES, section.value.body)
        self._track_changed(ctx, written.value)
        self.console.success(f"{generator.path} updated ({section.value.generator})")
        return Ok(None)

    def undo_changelog(self, ctx: Context) -> Result[None, FireflyError]:
        return self._restore(ctx.get_or(data.CHANGELOG_BACKUP, None))

    # -- git ------------------------------------------------------------

    def commit_changes(self, ctx: Context) -> Result[None, FireflyError]:
        files = self._changed_files(ctx)
        if not files:
            self.console.info("nothing to commit")
            return Ok(None)

        name = ctx.get_or(data.PACKAGE_NAME, None)
        version = self._release_version(ctx)
        if isinstance(version, Err):
            return version
        message = ctx.config.commit_message(str(name or self.services.root.name), version.value)

        staged = self.services.git.stage(files)
        if isinstance(staged, Err):
            return staged
        committed = self.services.git.commit(message)
        if isinstance(committed, Err):
            return committed
        ctx.set(data.COMMIT_CREATED, True)
        self.console.success(f"committed: {message}")
        return Ok(None)

    def undo_commit(self, ctx: Context) -> Result[None, FireflyError]:
        git = self.services.git
        if ctx.has(data.COMMIT_CREATED):
            reset = git.reset_last_commit()
            if isinstance(reset, Err):
                return reset
        files = self._changed_files(ctx)
        if files:
            return git.unstage(files)
        return Ok(None)

    def create_tag(self, ctx: Context) -> Result[None, FireflyError]:
        version = self._release_version(ctx)
        if isinstance(version, Err):
            return version
        tag = self._tag_name(ctx)
        created = self.services.git.tag(tag, f"Release {version.value}")
        if isinstance(created, Err):
            return created
        ctx.set(data.TAG_NAME, tag)
        ctx.set(data.TAG_CREATED, True)
        self.console.success(f"tagged {tag}")
        return Ok(None)

    def undo_tag(self, ctx: Context) -> Result[None, FireflyError]:
        if not ctx.has(data.TAG_CREATED):
            return Ok(None)
        return self.services.git.delete_tag(self._tag_name(ctx))

    def push_changes(self, ctx: Context) -> Result[None, FireflyError]:
        git = self.services.git
        remote = ctx.config.remote
        tag = self._tag_name(ctx)

        branch = git.current_branch()
        if isinstance(branch, Err):
            return branch
        pushed = git.push(remote, branch.value)
        if isinstance(pushed, Err):
            return pushed
        pushed_tag = git.push_tag(remote, tag)
        if isinstance(pushed_tag, Err):
            return pushed_tag
        ctx.set(data.TAG_PUSHED, True)
        self.console.success(f"pushed {branch.value} and {tag} to {remote}")
        return Ok(None)

    def undo_push(self, ctx: Context) -> Result[None, FireflyError]:
        """Delete the pushed tag; the pushed branch commit stays on the remote."""
        if not ctx.has(data.TAG_PUSHED):
            return Ok(None)
        self.console.warning("the release commit stays on the remote branch; revert it manually")
        return self.services.git.delete_remote_tag(ctx.config.remote, self._tag_name(ctx))

    # -- hosting --------------------------------------------------------

    def create_release(self, ctx: Context) -> Result[None, FireflyError]:
        cfg = ctx.config
        client = self._hosting(cfg)
        if isinstance(client, Err):
            return client
        tag = self._tag_name(ctx)

        exists = client.value.release_exists(tag)
        if isinstance(exists, Err):
            return exists
        if exists.value:
            return Err(conflict_error(f"{cfg.platform} release {tag} already exists", source=_SOURCE))

        notes = ctx.get_or(data.RELEASE_NOTES, None)
        request = ReleaseRequest(
            tag=tag,
            title=tag,
            notes=str(notes) if notes else f"Release {tag}",
            draft=cfg.draft,
            prerelease=cfg.prerelease or cfg.release_type == "prerelease",
            latest=cfg.latest,
        )
        created = client.value.create_release(request)
        if isinstance(created, Err):
            return created
        ctx.set(data.RELEASE_CREATED, True)
        ctx.set(data.RELEASE_URL, created.value)
        self.console.success(f"{cfg.platform} release {tag} {created.value}".rstrip())
        return Ok(None)

    def undo_release(self, ctx: Context) -> Result[None, FireflyError]:
        if not ctx.has(data.RELEASE_CREATED):
            return Ok(None)
        client = self._hosting(ctx.config)
        if isinstance(client, Err):
            return client
        return client.value.delete_release(self._tag_name(ctx))

    # -- helpers --------------------------------------------------------

    def _hosting(self, cfg: ReleaseConfig) -> Result[HostingClient, FireflyError]:
        return self.services.hosting(cfg.platform, repo=cfg.repo)

    def _changelog(self, cfg: ReleaseConfig) -> ChangelogGenerator:
        return self.services.changelog(cfg.changelog_path, use_cliff=cfg.use_cliff)

    def _history(self) -> Result[tuple[str | None, list[str]], FireflyError]:
        """Latest tag and commit messages after it; empty outside a repository."""
        git = self.services.git
        if not git.is_repository():
            return Ok((None, []))
        latest = git.latest_tag()
        if isinstance(latest, Err):
            return latest
        messages = git.commits_since(latest.value)
        if isinstance(messages, Err):
            return messages
        return Ok((latest.value, messages.value))

    def _current_version(self, ctx: Context) -> Result[SemVer, FireflyError]:
        raw = ctx.get_as(data.CURRENT_VERSION, str)
        if isinstance(raw, Err):
            return raw
        version = parse_version(raw.value)
        if version is None:
            return Err(invalid_error(f"invalid current version: {raw.value}", source=_SOURCE))
        return Ok(version)

    def _release_version(self, ctx: Context) -> Result[str, FireflyError]:
        """Version being released; the current one when the bump was skipped."""
        nxt = ctx.get_or(data.NEXT_VERSION, None)
        if isinstance(nxt, str):
            return Ok(nxt)
        return ctx.get_as(data.CURRENT_VERSION, str)

    def _tag_name(self, ctx: Context) -> str:
        tag = ctx.get_or(data.TAG_NAME, None)
        if isinstance(tag, str):
            return tag
        version = self._release_version(ctx)
        return ctx.config.tag_for(version.unwrap_or("0.0.0"))

    def _track_changed(self, ctx: Context, path: Path) -> None:
        try:
            rel = str(path.relative_to(self.services.root))
        except ValueError:
            rel = str(path)

        def add(current: object) -> list[str]:
            files = [str(f) for f in current] if isinstance(current, list) else []
            if rel not in files:
                files.append(rel)
            return files

        ctx.update(data.CHANGED_FILES, add)

    def _changed_files(self, ctx: Context) -> list[str]:
        files = ctx.get_or(data.CHANGED_FILES, None)
        return [str(f) for f in files] if isinstance(files, list) else []

    def _restore(self, backup: object) -> Result[None, FireflyError]:
        if not isinstance(backup, data.FileBackup):
            return Ok(None)
        if backup.text is None:
            return self.services.fs.remove(backup.path)
        return self.services.fs.write_text(backup.path, backup.text)
