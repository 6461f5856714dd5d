"""Tests for firefly.orchestration.graph module."""

from __future__ import annotations

from firefly.core.errors import ErrorKind
from firefly.core.result import Err, Ok
from firefly.orchestration.graph import depth_map, graph_statistics, resolve, resolve_tasks
from firefly.orchestration.task import Task, TaskBuilder


def task(task_id: str, *deps: str) -> Task:
    return TaskBuilder(task_id).description(task_id).depends_on(*deps).build()


class TestResolve:
    def test_empty(self) -> None:
        assert resolve([]) == Ok([])

    def test_independent_tasks_keep_declaration_order(self) -> None:
        assert resolve([task("c"), task("a"), task("b")]) == Ok(["c", "a", "b"])

    def test_dependencies_come_first(self) -> None:
        result = resolve([task("tag", "commit"), task("commit", "bump"), task("bump")])
        assert result == Ok(["bump", "commit", "tag"])

    def test_every_task_follows_its_dependencies(self) -> None:
        tasks = [
            task("release", "push", "notes"),
            task("notes", "version"),
            task("push", "tag"),
            task("tag", "version"),
            task("version"),
        ]
        order = resolve(tasks).unwrap()
        assert order is not None
        for t in tasks:
            for dep in t.dependencies:
                assert order.index(dep) < order.index(t.id)

    def test_deterministic(self) -> None:
        tasks = [task("b"), task("d", "a"), task("a"), task("c", "b")]
        assert resolve(tasks) == resolve(list(tasks))
        assert resolve(tasks) == Ok(["b", "a", "d", "c"])

    def test_duplicate_id_conflicts(self) -> None:
        result = resolve([task("a"), task("a")])
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.CONFLICT
        assert "duplicate" in result.error.message

    def test_missing_dependency_lists_every_offender(self) -> None:
        result = resolve([task("a", "x"), task("b", "y", "a")])
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.NOT_FOUND
        assert result.error.details == ("a -> x", "b -> y")

    def test_self_dependency_is_a_cycle(self) -> None:
        result = resolve([task("a", "a")])
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.CONFLICT
        assert result.error.details == ("a -> a",)

    def test_cycle_reports_members_and_path(self) -> None:
        result = resolve([task("root"), task("a", "c"), task("b", "a"), task("c", "b")])
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.CONFLICT
        assert "a, b, c" in result.error.message
        assert "root" not in result.error.message
        assert len(result.error.details) == 1
        path = result.error.details[0].split(" -> ")
        assert path[0] == path[-1]
        assert set(path) == {"a", "b", "c"}

    def test_resolve_tasks_returns_objects(self) -> None:
        a, b = task("a"), task("b", "a")
        assert resolve_tasks([b, a]) == Ok([a, b])


class TestStatistics:
    def test_depth_map(self) -> None:
        tasks = [task("a"), task("b", "a"), task("c", "a"), task("d", "b", "c")]
        assert depth_map(tasks) == Ok({"a": 0, "b": 1, "c": 1, "d": 2})

    def test_graph_statistics(self) -> None:
        tasks = [task("a"), task("b", "a"), task("c", "a"), task("d", "b", "c")]
        stats = graph_statistics(tasks).unwrap()
        assert stats is not None
        assert stats.order == ("a", "b", "c", "d")
        assert stats.roots == ("a",)
        assert stats.leaves == ("d",)
        assert stats.edges == 4
        assert stats.depth == 3
        assert stats.task_count == 4

    def test_statistics_of_empty_graph(self) -> None:
        stats = graph_statistics([]).unwrap()
        assert stats is not None
        assert stats.depth == 0

    def test_statistics_propagate_errors(self) -> None:
        assert isinstance(graph_statistics([task("a", "b"), task("b", "a")]), Err)
