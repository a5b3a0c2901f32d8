"""Tests for contentpilot/orchestrator/state.py: write-once run state."""

import pytest

from contentpilot.core.exceptions import OrchestrationError
from contentpilot.core.models import TaskResult
from contentpilot.orchestrator.state import ExecutionState
from contentpilot.orchestrator.template import NOT_FOUND, Found, StateRef, TaskResultRef


class TestResults:
    def test_store_and_get(self):
        state = ExecutionState()
        state.store_result(TaskResult(task_id="a", success=True, payload=1))
        assert state.has_result("a")
        assert state.get_result("a").payload == 1
        assert state.get_result("b") is None

    def test_write_once(self):
        state = ExecutionState()
        state.store_result(TaskResult(task_id="a", success=True))
        with pytest.raises(OrchestrationError):
            state.store_result(TaskResult(task_id="a", success=False))
        assert state.get_result("a").success

    def test_results_is_a_copy(self):
        state = ExecutionState()
        state.results["x"] = TaskResult(task_id="x", success=True)
        assert not state.has_result("x")


class TestLookup:
    def test_successful_payload(self):
        state = ExecutionState()
        state.store_result(TaskResult(task_id="a", success=True, payload={"k": 1}))
        assert state.lookup(TaskResultRef("a")) == Found({"k": 1})

    def test_failed_or_missing_result_not_found(self):
        state = ExecutionState()
        state.store_result(TaskResult(task_id="a", success=False, error="boom"))
        assert state.lookup(TaskResultRef("a")) is NOT_FOUND
        assert state.lookup(TaskResultRef("missing")) is NOT_FOUND

    def test_shared_vars_with_dotted_keys(self):
        state = ExecutionState({"content_type": "faq", "project": {"name": "Lumen"}, "a.b": 5})
        assert state.lookup(StateRef("content_type")) == Found("faq")
        assert state.lookup(StateRef("project.name")) == Found("Lumen")
        assert state.lookup(StateRef("a.b")) == Found(5)
        assert state.lookup(StateRef("project.missing")) is NOT_FOUND

    def test_none_value_is_found(self):
        state = ExecutionState({"max_retries": None})
        assert state.lookup(StateRef("max_retries")) == Found(None)


class TestStateView:
    def test_read_only_window(self):
        state = ExecutionState({"x": 1})
        state.store_result(TaskResult(task_id="ok", success=True, payload="p"))
        state.store_result(TaskResult(task_id="bad", success=False))
        view = state.view()
        assert view.var("x") == 1
        assert view.var("y", "d") == "d"
        assert view.payload("ok") == "p"
        assert view.payload("bad", "fallback") == "fallback"
        assert view.result("bad").success is False
        assert set(view.results) == {"ok", "bad"}
        assert not hasattr(view, "store_result")

    def test_initial_state_is_copied(self):
        initial = {"x": 1}
        state = ExecutionState(initial)
        state.set_var("x", 2)
        assert initial == {"x": 1}
        assert state.shared_vars == {"x": 2}
