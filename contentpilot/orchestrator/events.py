"""Synchronous event bus for orchestrator lifecycle events."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger("contentpilot.orchestrator.events")

TASK_STARTED = "task_started"
TASK_COMPLETED = "task_completed"
RUN_COMPLETED = "run_completed"
EVENTS = (TASK_STARTED, TASK_COMPLETED, RUN_COMPLETED)

Listener = Callable[..., None]


class EventBus:
    """Delivers events to subscribers in subscription order.

    Payloads by event:
        task_started:   task (Task)
        task_completed: task (Task), result (TaskResult)
        run_completed:  results (dict[str, TaskResult])

    A listener that raises is logged and skipped; it never fails the run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = {event: [] for event in EVENTS}

    def subscribe(self, event: str, listener: Listener) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown event '{event}'. Expected one of: {', '.join(EVENTS)}")
        with self._lock:
            self._listeners[event].append(listener)

    def unsubscribe(self, event: str, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners.get(event, []):
                self._listeners[event].remove(listener)

    def emit(self, event: str, **payload: Any) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                listener(**payload)
            except Exception as e:
                logger.error("Listener %r failed on %s: %s", listener, event, e, exc_info=True)
