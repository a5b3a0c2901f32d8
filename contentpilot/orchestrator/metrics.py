"""Run metrics collected from orchestrator events.

Records one entry per task:
  {task_id, handler_name, started_at, completed_at, duration_seconds, tokens_used, success, error}

Enables: per-task timing in the CLI summary, bottleneck identification, token totals.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional

from contentpilot.core.models import Task, TaskResult
from contentpilot.orchestrator.events import RUN_COMPLETED, TASK_COMPLETED, TASK_STARTED, EventBus

logger = logging.getLogger("contentpilot.orchestrator.metrics")


@dataclass
class TaskMetric:
    """Single task execution record within a run."""
    task_id: str
    handler_name: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    tokens_used: int = 0
    success: Optional[bool] = None
    error: Optional[str] = None


@dataclass
class RunMetrics:
    """Aggregated metrics for one orchestrator run.

    Call attach(bus) before the run; the metrics fill in from events.
    """
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: Optional[datetime] = None
    tasks: dict[str, TaskMetric] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def attach(self, bus: EventBus) -> "RunMetrics":
        bus.subscribe(TASK_STARTED, self.on_task_started)
        bus.subscribe(TASK_COMPLETED, self.on_task_completed)
        bus.subscribe(RUN_COMPLETED, self.on_run_completed)
        return self

    def on_task_started(self, task: Task) -> None:
        with self._lock:
            self.tasks[task.id] = TaskMetric(
                task_id=task.id,
                handler_name=task.handler_name,
                started_at=datetime.now(UTC),
            )

    def on_task_completed(self, task: Task, result: TaskResult) -> None:
        now = datetime.now(UTC)
        with self._lock:
            metric = self.tasks.setdefault(
                task.id, TaskMetric(task_id=task.id, handler_name=task.handler_name, started_at=now)
            )
            metric.completed_at = now
            metric.duration_seconds = result.metadata.latency_ms / 1000.0
            metric.tokens_used = result.metadata.tokens_used
            metric.success = result.success
            metric.error = result.error
        logger.debug(
            "Task '%s': success=%s duration=%.2fs tokens=%d",
            task.id, result.success, metric.duration_seconds, metric.tokens_used,
        )

    def on_run_completed(self, results: dict[str, TaskResult]) -> None:
        self.completed_at = datetime.now(UTC)

    @property
    def total_duration(self) -> float:
        end = self.completed_at or datetime.now(UTC)
        return (end - self.started_at).total_seconds()

    @property
    def total_tokens(self) -> int:
        return sum(m.tokens_used for m in self.tasks.values())

    @property
    def succeeded(self) -> int:
        return sum(1 for m in self.tasks.values() if m.success)

    @property
    def failed(self) -> int:
        return sum(1 for m in self.tasks.values() if m.success is False)

    @property
    def bottleneck_task(self) -> Optional[str]:
        finished = [m for m in self.tasks.values() if m.completed_at is not None]
        if not finished:
            return None
        return max(finished, key=lambda m: m.duration_seconds).task_id

    def summary(self) -> dict[str, Any]:
        return {
            "total_duration_seconds": round(self.total_duration, 3),
            "tasks": len(self.tasks),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "total_tokens": self.total_tokens,
            "bottleneck_task": self.bottleneck_task,
            "per_task": {
                tid: {
                    "duration_seconds": round(m.duration_seconds, 3),
                    "tokens_used": m.tokens_used,
                    "success": m.success,
                }
                for tid, m in self.tasks.items()
            },
        }
