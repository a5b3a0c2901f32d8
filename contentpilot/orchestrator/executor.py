"""Task orchestrator: runs a declared task graph in dependency order.

The scheduling core is the same in both modes: take the tasks whose
dependencies all have a result, resolve their input templates against the
run's ExecutionState, invoke their handlers and store the results.
With max_concurrency == 1 ready tasks run one at a time on the calling
thread; otherwise a bounded ThreadPoolExecutor runs them.

A run-level deadline stops dispatching new tasks once it expires. Tasks
already running are allowed to finish and the report lists the rest as
skipped.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Union

from contentpilot.core.config import OrchestratorConfig
from contentpilot.core.exceptions import HandlerNotFoundError
from contentpilot.core.models import Task, TaskResult
from contentpilot.llm.token_tracker import TokenTracker
from contentpilot.orchestrator.events import RUN_COMPLETED, TASK_COMPLETED, TASK_STARTED, EventBus
from contentpilot.orchestrator.graph import TaskGraph
from contentpilot.orchestrator.handlers import FunctionHandler, TaskHandler
from contentpilot.orchestrator.state import ExecutionState, StateView
from contentpilot.orchestrator.template import TaskResultRef, references, resolve

logger = logging.getLogger("contentpilot.orchestrator.executor")

HandlerLike = Union[TaskHandler, Callable[[Any, StateView], Any]]


@dataclass
class RunReport:
    """Outcome of one orchestrator run."""
    results: dict[str, TaskResult]
    state: ExecutionState
    order: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    timed_out: bool = False
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return not self.skipped and all(r.success for r in self.results.values())

    @property
    def failed(self) -> list[str]:
        return [tid for tid, r in self.results.items() if not r.success]

    def payload(self, task_id: str, default: Any = None) -> Any:
        result = self.results.get(task_id)
        if result is None or not result.success:
            return default
        return result.payload


class TaskOrchestrator:
    """Declares tasks, resolves their order and runs them.

    Usage:
        orchestrator = TaskOrchestrator()
        orchestrator.register_handler("analysis", analysis_handler)
        orchestrator.declare_task(Task(id="analyze", handler_name="analysis"))
        orchestrator.declare_task(Task(id="generate", handler_name="generation",
                                       input_template="features: {taskResult:analyze}",
                                       depends_on=["analyze"]))
        report = orchestrator.run({"content_type": "homepage"})
    """

    def __init__(
        self,
        handlers: Optional[dict[str, HandlerLike]] = None,
        config: Optional[OrchestratorConfig] = None,
        events: Optional[EventBus] = None,
        token_tracker: Optional[TokenTracker] = None,
    ):
        self.config = config or OrchestratorConfig()
        self.events = events or EventBus()
        self.token_tracker = token_tracker
        self.graph = TaskGraph()
        self._handlers: dict[str, TaskHandler] = {}
        for name, handler in (handlers or {}).items():
            self.register_handler(name, handler)

    def register_handler(self, name: str, handler: HandlerLike) -> None:
        if not isinstance(handler, TaskHandler):
            if not callable(handler):
                raise TypeError(f"Handler '{name}' must be a TaskHandler or a callable")
            handler = FunctionHandler(name, handler)
        self._handlers[name] = handler

    @property
    def handlers(self) -> dict[str, TaskHandler]:
        return dict(self._handlers)

    def declare_task(self, task: Task) -> None:
        """Declare one task. Its dependencies must already be declared."""
        self.graph.declare(task)
        self._warn_on_undeclared_refs(task)

    def declare_tasks(self, tasks: Iterable[Task]) -> None:
        """Declare a batch of tasks that may reference each other."""
        batch = list(tasks)
        self.graph.declare_many(batch)
        for task in batch:
            self._warn_on_undeclared_refs(task)

    def _warn_on_undeclared_refs(self, task: Task) -> None:
        for ref in references(task.input_template):
            if isinstance(ref, TaskResultRef) and ref.task_id not in task.depends_on:
                logger.warning(
                    "Task '%s' references {taskResult:%s} without depending on it; "
                    "the placeholder may stay unresolved",
                    task.id, ref.task_id,
                )

    # -- running ---------------------------------------------------------------

    def run(
        self,
        initial_state: Optional[dict[str, Any]] = None,
        deadline_seconds: Optional[float] = None,
    ) -> RunReport:
        """Execute every declared task once.

        Raises:
            CyclicDependencyError: If the graph has no topological order.
            HandlerNotFoundError: If a task names an unregistered handler.
            Both are raised before any task executes.
            ConfigError: If a handler hits a configuration error (for example
                an unknown task type). The run stops; tasks already in flight
                finish first.
        """
        order = self.graph.topological_order()
        for task in order:
            if task.handler_name not in self._handlers:
                raise HandlerNotFoundError(task.id, task.handler_name)

        if deadline_seconds is None:
            deadline_seconds = self.config.run_deadline_seconds
        start = time.monotonic()
        deadline = start + deadline_seconds if deadline_seconds is not None else None
        state = ExecutionState(initial_state)
        workers = max(1, self.config.max_concurrency)

        logger.info(
            "Running %d tasks (concurrency=%d, deadline=%s)",
            len(order), workers, f"{deadline_seconds}s" if deadline_seconds is not None else "none",
        )
        if workers == 1:
            timed_out = self._run_sequential(order, state, deadline)
        else:
            timed_out = self._run_parallel(workers, state, deadline)

        results = state.results
        skipped = [t.id for t in order if t.id not in results]
        if timed_out:
            logger.warning("Run deadline expired; skipped %d task(s): %s", len(skipped), ", ".join(skipped))
        self.events.emit(RUN_COMPLETED, results=results)

        report = RunReport(
            results=results,
            state=state,
            order=[t.id for t in order],
            skipped=skipped,
            timed_out=timed_out,
            duration_seconds=time.monotonic() - start,
        )
        logger.info(
            "Run complete: %d succeeded, %d failed, %d skipped (%.2fs)",
            len(results) - len(report.failed), len(report.failed), len(skipped), report.duration_seconds,
        )
        return report

    @staticmethod
    def _expired(deadline: Optional[float]) -> bool:
        return deadline is not None and time.monotonic() >= deadline

    def _run_sequential(self, order: list[Task], state: ExecutionState, deadline: Optional[float]) -> bool:
        for task in order:
            if self._expired(deadline):
                return True
            self._execute(task, state)
        return False

    def _run_parallel(self, workers: int, state: ExecutionState, deadline: Optional[float]) -> bool:
        completed: set[str] = set()
        started: set[str] = set()
        in_flight: dict[Future[TaskResult], Task] = {}
        timed_out = False

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="contentpilot-task") as pool:
            while True:
                if not timed_out and self._expired(deadline):
                    timed_out = True
                if not timed_out:
                    for task in self.graph.ready(completed, started):
                        if len(in_flight) >= workers:
                            break
                        started.add(task.id)
                        in_flight[pool.submit(self._execute, task, state)] = task
                if not in_flight:
                    break
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    task = in_flight.pop(future)
                    future.result()
                    completed.add(task.id)
        return timed_out and len(completed) < len(self.graph)

    def _execute(self, task: Task, state: ExecutionState) -> TaskResult:
        self.events.emit(TASK_STARTED, task=task)
        task_input = resolve(task.input_template, state.lookup)
        if self.token_tracker is not None:
            self.token_tracker.set_context(task_id=task.id)
        try:
            result = self._handlers[task.handler_name].run(task, task_input, state.view())
        finally:
            if self.token_tracker is not None:
                self.token_tracker.set_context(task_id=None)
        state.store_result(result)
        self.events.emit(TASK_COMPLETED, task=task, result=result)
        return result
