"""Task dependency graph with Kahn's-algorithm ordering."""

from __future__ import annotations

from collections import deque
from typing import Iterable

from contentpilot.core.exceptions import CyclicDependencyError, DuplicateTaskError, UnknownDependencyError
from contentpilot.core.models import Task


class TaskGraph:
    """Declared tasks and their dependency edges.

    Declaration order is remembered and used to break ties, so the same
    graph always yields the same order.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._dependents: dict[str, list[str]] = {}

    def declare(self, task: Task) -> None:
        """Add a task whose dependencies were all declared before it.

        Raises:
            DuplicateTaskError: If the id is already declared.
            UnknownDependencyError: If a dependency id is not declared yet.
        """
        if task.id in self._tasks:
            raise DuplicateTaskError(task.id)
        for dependency in task.depends_on:
            if dependency not in self._tasks:
                raise UnknownDependencyError(task.id, dependency)
        self._tasks[task.id] = task
        self._dependents[task.id] = []
        for dependency in dict.fromkeys(task.depends_on):
            self._dependents[dependency].append(task.id)

    def declare_many(self, tasks: Iterable[Task]) -> None:
        """Declare a batch whose members may reference each other in any order.

        Dependencies must be declared already or be part of the batch. A
        batch can therefore form a cycle, which topological_order() reports.
        Nothing is declared when validation fails.
        """
        batch = list(tasks)
        ids: set[str] = set()
        for task in batch:
            if task.id in self._tasks or task.id in ids:
                raise DuplicateTaskError(task.id)
            ids.add(task.id)
        for task in batch:
            for dependency in task.depends_on:
                if dependency not in self._tasks and dependency not in ids:
                    raise UnknownDependencyError(task.id, dependency)

        for task in batch:
            self._tasks[task.id] = task
            self._dependents[task.id] = []
        for task in batch:
            for dependency in dict.fromkeys(task.depends_on):
                self._dependents[dependency].append(task.id)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def get(self, task_id: str) -> Task:
        return self._tasks[task_id]

    def dependents(self, task_id: str) -> list[str]:
        return list(self._dependents.get(task_id, []))

    def topological_order(self) -> list[Task]:
        """Kahn's algorithm.

        Raises:
            CyclicDependencyError: If any task keeps a positive in-degree.
        """
        in_degree = {tid: len(set(t.depends_on)) for tid, t in self._tasks.items()}
        position = {tid: i for i, tid in enumerate(self._tasks)}
        queue = deque(tid for tid, degree in in_degree.items() if degree == 0)
        order: list[Task] = []

        while queue:
            tid = queue.popleft()
            order.append(self._tasks[tid])
            released = []
            for dependent in self._dependents[tid]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    released.append(dependent)
            queue.extend(sorted(released, key=position.__getitem__))

        if len(order) != len(self._tasks):
            remaining = [tid for tid, degree in in_degree.items() if degree > 0]
            raise CyclicDependencyError(remaining)
        return order

    def ready(self, completed: Iterable[str], started: Iterable[str] = ()) -> list[Task]:
        """Tasks not yet started whose dependencies have all completed."""
        done = set(completed)
        skip = done | set(started)
        return [
            task for tid, task in self._tasks.items()
            if tid not in skip and all(d in done for d in task.depends_on)
        ]
