"""Run-scoped execution state shared by the tasks of one orchestrator run."""

from __future__ import annotations

import threading
from typing import Any, Optional

from contentpilot.core.exceptions import OrchestrationError
from contentpilot.core.models import TaskResult
from contentpilot.orchestrator.template import NOT_FOUND, Found, NotFound, Reference, TaskResultRef


class ExecutionState:
    """Results map and shared variables for exactly one run.

    Results are write-once per task id. All access goes through one lock so
    a worker resolving a template never observes a half-written result.
    """

    def __init__(self, shared_vars: Optional[dict[str, Any]] = None):
        self._lock = threading.RLock()
        self._results: dict[str, TaskResult] = {}
        self._shared: dict[str, Any] = dict(shared_vars or {})

    def store_result(self, result: TaskResult) -> None:
        with self._lock:
            if result.task_id in self._results:
                raise OrchestrationError(f"Result for task '{result.task_id}' was already stored")
            self._results[result.task_id] = result

    def get_result(self, task_id: str) -> Optional[TaskResult]:
        with self._lock:
            return self._results.get(task_id)

    def has_result(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._results

    @property
    def results(self) -> dict[str, TaskResult]:
        with self._lock:
            return dict(self._results)

    def set_var(self, key: str, value: Any) -> None:
        with self._lock:
            self._shared[key] = value

    def get_var(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._shared.get(key, default)

    @property
    def shared_vars(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._shared)

    def lookup(self, reference: Reference) -> Found | NotFound:
        """Template lookup: successful task payloads and shared variables."""
        with self._lock:
            if isinstance(reference, TaskResultRef):
                result = self._results.get(reference.task_id)
                if result is None or not result.success:
                    return NOT_FOUND
                return Found(result.payload)
            return _lookup_var(self._shared, reference.key)

    def view(self) -> "StateView":
        return StateView(self)


def _lookup_var(shared: dict[str, Any], key: str) -> Found | NotFound:
    if key in shared:
        return Found(shared[key])
    current: Any = shared
    for part in key.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return NOT_FOUND
    return Found(current)


class StateView:
    """Read-only window onto an ExecutionState, handed to task handlers."""

    def __init__(self, state: ExecutionState):
        self._state = state

    def result(self, task_id: str) -> Optional[TaskResult]:
        return self._state.get_result(task_id)

    def payload(self, task_id: str, default: Any = None) -> Any:
        """Payload of a successful result, else default."""
        result = self._state.get_result(task_id)
        if result is None or not result.success:
            return default
        return result.payload

    def var(self, key: str, default: Any = None) -> Any:
        return self._state.get_var(key, default)

    @property
    def results(self) -> dict[str, TaskResult]:
        return self._state.results

    @property
    def shared_vars(self) -> dict[str, Any]:
        return self._state.shared_vars
