"""Tests for contentpilot/orchestrator/graph.py: declaration and ordering."""

import pytest

from contentpilot.core.exceptions import CyclicDependencyError, DuplicateTaskError, UnknownDependencyError
from contentpilot.core.models import Task
from contentpilot.orchestrator.graph import TaskGraph


def task(task_id: str, *deps: str) -> Task:
    return Task(id=task_id, handler_name="h", depends_on=list(deps))


class TestDeclare:
    def test_unknown_dependency(self):
        graph = TaskGraph()
        with pytest.raises(UnknownDependencyError) as exc_info:
            graph.declare(task("generate", "analyze"))
        assert exc_info.value.dependency == "analyze"
        assert len(graph) == 0

    def test_duplicate(self):
        graph = TaskGraph()
        graph.declare(task("a"))
        with pytest.raises(DuplicateTaskError):
            graph.declare(task("a"))

    def test_dependents(self):
        graph = TaskGraph()
        graph.declare(task("a"))
        graph.declare(task("b", "a"))
        graph.declare(task("c", "a"))
        assert graph.dependents("a") == ["b", "c"]
        assert "b" in graph
        assert graph.get("c").depends_on == ["a"]

    def test_declare_many_allows_forward_references(self):
        graph = TaskGraph()
        graph.declare_many([task("b", "a"), task("a")])
        assert [t.id for t in graph.topological_order()] == ["a", "b"]

    def test_declare_many_is_atomic(self):
        graph = TaskGraph()
        with pytest.raises(UnknownDependencyError):
            graph.declare_many([task("a"), task("b", "ghost")])
        assert len(graph) == 0

    def test_declare_many_duplicate_in_batch(self):
        with pytest.raises(DuplicateTaskError):
            TaskGraph().declare_many([task("a"), task("a")])


class TestTopologicalOrder:
    def test_chain(self):
        graph = TaskGraph()
        for t in (task("analyze"), task("strategy", "analyze"), task("generate", "analyze", "strategy")):
            graph.declare(t)
        assert [t.id for t in graph.topological_order()] == ["analyze", "strategy", "generate"]

    def test_ties_follow_declaration_order(self):
        graph = TaskGraph()
        for t in (task("z"), task("m"), task("a"), task("join", "a", "z"), task("b", "z")):
            graph.declare(t)
        assert [t.id for t in graph.topological_order()] == ["z", "m", "a", "join", "b"]

    def test_cycle(self):
        graph = TaskGraph()
        graph.declare_many([task("a", "b"), task("b", "a"), task("free")])
        with pytest.raises(CyclicDependencyError) as exc_info:
            graph.topological_order()
        assert sorted(exc_info.value.remaining) == ["a", "b"]

    def test_duplicate_dependency_entries(self):
        graph = TaskGraph()
        graph.declare(task("a"))
        graph.declare(task("b", "a", "a"))
        assert [t.id for t in graph.topological_order()] == ["a", "b"]


class TestReady:
    def test_ready_set(self):
        graph = TaskGraph()
        for t in (task("a"), task("b"), task("c", "a", "b")):
            graph.declare(t)
        assert [t.id for t in graph.ready(set())] == ["a", "b"]
        assert [t.id for t in graph.ready({"a"}, started={"a", "b"})] == []
        assert [t.id for t in graph.ready({"a", "b"}, started={"a", "b"})] == ["c"]
