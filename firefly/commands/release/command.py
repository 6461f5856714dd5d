"""The ``release`` command and its task graph.

::

    preflight
      -> initialize-version
      -> determine-version     (skip_bump: skip through to generate-changelog)
      -> bump-version          [undo: restore manifest]
      -> generate-changelog    (skip_changelog)      [undo: restore changelog]
      -> commit-changes        (skip_git, or nothing to commit) [undo: reset]
      -> create-tag            (skip_git)            [undo: delete tag]
      -> push-changes          (skip_git, skip_push) [undo: delete remote tag]
      -> create-release        (skip_release)        [undo: delete release]
"""

from __future__ import annotations

from typing import Any

from firefly.core.errors import FireflyError
from firefly.core.result import Ok, Result
from firefly.orchestration.context import ExecutionContext
from firefly.orchestration.predicates import all_of, any_of
from firefly.orchestration.registry import Command
from firefly.orchestration.task import Task, TaskBuilder
from firefly.services.container import ServiceContainer

from .config import ReleaseConfig, ReleaseConfigSchema
from .tasks import ReleaseSteps

type Context = ExecutionContext[Any]

PREFLIGHT = "preflight"
INITIALIZE_VERSION = "initialize-version"
DETERMINE_VERSION = "determine-version"
BUMP_VERSION = "bump-version"
GENERATE_CHANGELOG = "generate-changelog"
COMMIT_CHANGES = "commit-changes"
CREATE_TAG = "create-tag"
PUSH_CHANGES = "push-changes"
CREATE_RELEASE = "create-release"


def _cfg(ctx: Context) -> ReleaseConfig:
    return ctx.config


def skip_bump(ctx: Context) -> bool:
    return _cfg(ctx).skip_bump


def skip_changelog(ctx: Context) -> bool:
    return _cfg(ctx).skip_changelog


def skip_git(ctx: Context) -> bool:
    return _cfg(ctx).skip_git


def skip_push(ctx: Context) -> bool:
    return _cfg(ctx).skip_push


def skip_release(ctx: Context) -> bool:
    return _cfg(ctx).skip_release


def build_release_tasks(ctx: ExecutionContext[ReleaseConfig], services: ServiceContainer) -> Result[list[Task], FireflyError]:
    steps = ReleaseSteps(services)
    tasks = [
        TaskBuilder(PREFLIGHT)
        .description("Check repository state and required tools")
        .execute(steps.preflight)
        .build(),
        TaskBuilder(INITIALIZE_VERSION)
        .description("Read the current version from the manifest")
        .depends_on(PREFLIGHT)
        .execute(steps.initialize_version)
        .build(),
        TaskBuilder(DETERMINE_VERSION)
        .description("Decide the next version")
        .depends_on(INITIALIZE_VERSION)
        .skip_through_when(skip_bump, GENERATE_CHANGELOG, "version bump disabled")
        .execute(steps.determine_version)
        .then(steps.check_tag_free)
        .build(),
        TaskBuilder(BUMP_VERSION)
        .description("Write the next version to the manifest")
        .depends_on(DETERMINE_VERSION)
        .execute(steps.bump_version)
        .with_undo(steps.undo_bump_version)
        .build(),
        TaskBuilder(GENERATE_CHANGELOG)
        .description("Prepend the release section to the changelog")
        .depends_on(BUMP_VERSION)
        .skip_when(skip_changelog, "changelog disabled")
        .execute(steps.generate_changelog)
        .with_undo(steps.undo_changelog)
        .build(),
        TaskBuilder(COMMIT_CHANGES)
        .description("Commit the release changes")
        .depends_on(GENERATE_CHANGELOG)
        .skip_when(any_of(skip_git, all_of(skip_bump, skip_changelog)), "nothing to commit")
        .execute(steps.commit_changes)
        .with_undo(steps.undo_commit)
        .build(),
        TaskBuilder(CREATE_TAG)
        .description("Create the release tag")
        .depends_on(COMMIT_CHANGES)
        .skip_when(skip_git, "git disabled")
        .execute(steps.create_tag)
        .with_undo(steps.undo_tag)
        .build(),
        TaskBuilder(PUSH_CHANGES)
        .description("Push the release commit and tag")
        .depends_on(CREATE_TAG)
        .skip_when(any_of(skip_git, skip_push), "push disabled")
        .execute(steps.push_changes)
        .with_undo(steps.undo_push)
        .build(),
        TaskBuilder(CREATE_RELEASE)
        .description("Publish the hosting-provider release")
        .depends_on(PUSH_CHANGES)
        .skip_when(skip_release, "hosting release disabled")
        .execute(steps.create_release)
        .with_undo(steps.undo_release)
        .build(),
    ]
    return Ok(tasks)


RELEASE_COMMAND: Command[ReleaseConfig, ServiceContainer] = Command(
    name="release",
    description="Bump the version, update the changelog, tag, push and publish a release",
    config_schema=ReleaseConfigSchema(),
    build_tasks=build_release_tasks,
    examples=(
        "firefly release",
        "firefly release --bump minor --dry-run",
        "firefly release --version 2.0.0 --skip-release",
        "firefly release --release-type prerelease --pre-id rc",
    ),
)
