"""Task dependency resolution.

:func:`resolve` turns a task list into an execution order. The sort is a
Kahn topological sort that always picks the earliest-declared ready task, so
the same input always yields the same order and independent tasks keep the
order they were declared in.

Nothing here executes a task.
"""

from __future__ import annotations

import heapq
from collections.abc import Sequence
from dataclasses import dataclass

from firefly.core.errors import (
    FireflyError,
    conflict_error,
    not_found_error,
    validation_error,
)
from firefly.core.result import Err, Ok, Result

from .task import Task

_SOURCE = "graph"

__all__ = [
    "GraphStatistics",
    "depth_map",
    "graph_statistics",
    "resolve",
    "resolve_tasks",
]


def _validate(tasks: Sequence[Task]) -> Result[dict[str, int], FireflyError]:
    """Check ids and references; return the declaration index of each id."""
    index: dict[str, int] = {}
    for position, task in enumerate(tasks):
        if not task.id:
            return Err(validation_error(f"task at position {position} has an empty id", source=_SOURCE))
        if task.id in index:
            return Err(conflict_error(f"duplicate task id: {task.id}", source=_SOURCE))
        index[task.id] = position

    missing = [
        f"{task.id} -> {dep}"
        for task in tasks
        for dep in sorted(task.dependencies)
        if dep not in index
    ]
    if missing:
        return Err(
            not_found_error(
                f"{len(missing)} unknown task dependenc{'y' if len(missing) == 1 else 'ies'}",
                source=_SOURCE,
                details=missing,
            )
        )
    return Ok(index)


def resolve(tasks: Sequence[Task]) -> Result[list[str], FireflyError]:
    """Order ``tasks`` so that every task follows its dependencies.

    Returns:
        Ok(task ids in execution order), or Err with kind VALIDATION (empty
        id), CONFLICT (duplicate id or cycle) or NOT_FOUND (unknown
        dependency, every offender listed in ``details``).
    """
    validated = _validate(tasks)
    if isinstance(validated, Err):
        return validated
    index = validated.value

    in_degree = {task.id: len(task.dependencies) for task in tasks}
    dependents: dict[str, list[str]] = {task.id: [] for task in tasks}
    for task in tasks:
        for dep in task.dependencies:
            dependents[dep].append(task.id)

    ready = [index[tid] for tid, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        current = tasks[heapq.heappop(ready)].id
        order.append(current)
        for child in dependents[current]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                heapq.heappush(ready, index[child])

    if len(order) != len(tasks):
        stuck = [task.id for task in tasks if in_degree[task.id] > 0]
        path = _find_cycle(tasks, set(stuck))
        return Err(
            conflict_error(
                f"dependency cycle among tasks: {', '.join(stuck)}",
                source=_SOURCE,
                details=[" -> ".join(path)] if path else [],
            )
        )

    return Ok(order)


def resolve_tasks(tasks: Sequence[Task]) -> Result[list[Task], FireflyError]:
    """Like :func:`resolve` but returns the task objects."""
    by_id = {task.id: task for task in tasks}
    return resolve(tasks).map(lambda order: [by_id[tid] for tid in order])


def _find_cycle(tasks: Sequence[Task], candidates: set[str]) -> list[str]:
    """One concrete cycle among ``candidates``, first node repeated at the end."""
    deps = {task.id: sorted(task.dependencies & candidates) for task in tasks if task.id in candidates}
    visiting: list[str] = []
    on_path: set[str] = set()
    done: set[str] = set()

    def visit(node: str) -> list[str]:
        visiting.append(node)
        on_path.add(node)
        for dep in deps[node]:
            if dep in on_path:
                start = visiting.index(dep)
                return [*visiting[start:], dep]
            if dep not in done:
                found = visit(dep)
                if found:
                    return found
        on_path.discard(node)
        visiting.pop()
        done.add(node)
        return []

    for task in tasks:
        if task.id in candidates and task.id not in done:
            found = visit(task.id)
            if found:
                return found
    return []


def depth_map(tasks: Sequence[Task]) -> Result[dict[str, int], FireflyError]:
    """Longest dependency chain above each task (roots have depth 0)."""
    by_id = {task.id: task for task in tasks}
    order = resolve(tasks)
    if isinstance(order, Err):
        return order
    depth: dict[str, int] = {}
    for tid in order.value:
        deps = by_id[tid].dependencies
        depth[tid] = max((depth[d] + 1 for d in deps), default=0)
    return Ok(depth)


@dataclass(frozen=True, slots=True)
class GraphStatistics:
    """Shape of a resolved task graph."""

    order: tuple[str, ...]
    roots: tuple[str, ...]
    leaves: tuple[str, ...]
    edges: int
    depth: int

    @property
    def task_count(self) -> int:
        return len(self.order)


def graph_statistics(tasks: Sequence[Task]) -> Result[GraphStatistics, FireflyError]:
    depths = depth_map(tasks)
    if isinstance(depths, Err):
        return depths
    order = resolve(tasks).unwrap_or([])
    depended_on = {dep for task in tasks for dep in task.dependencies}
    return Ok(
        GraphStatistics(
            order=tuple(order),
            roots=tuple(t.id for t in tasks if not t.dependencies),
            leaves=tuple(t.id for t in tasks if t.id not in depended_on),
            edges=sum(len(t.dependencies) for t in tasks),
            depth=max(depths.value.values(), default=-1) + 1,
        )
    )
