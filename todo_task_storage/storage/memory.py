"""
In-memory remote task storage.

Simulates a backend service: reads take ``config.remote_latency``
seconds, writes land immediately. Useful for development and tests
where no real backend is available.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable

from ..exceptions import TaskNotFoundError
from ..tasks.types import Task, task_id_of
from .base import StorageConfig, TasksDataSource

logger = logging.getLogger(__name__)


class InMemoryRemoteDataSource(TasksDataSource):
    """Remote store held in process memory.

    get_tasks() yields exactly one snapshot, after the simulated
    latency, and then ends.
    """

    def __init__(self, config: StorageConfig, tasks: Iterable[Task] | None = None) -> None:
        """Initialize the simulated service.

        Args:
            config: Storage configuration (remote_latency is used)
            tasks: Optional tasks the service starts with
        """
        self.config = config
        self.latency = max(config.remote_latency, 0.0)
        self._tasks: dict[str, Task] = {task.task_id: task for task in tasks or ()}

    async def get_tasks(self) -> AsyncIterator[list[Task]]:
        await asyncio.sleep(self.latency)
        yield list(self._tasks.values())

    async def get_task(self, task_id: str) -> Task:
        await asyncio.sleep(self.latency)
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id, store="remote")
        return task

    async def save_task(self, task: Task) -> None:
        self._tasks[task.task_id] = task

    async def save_tasks(self, tasks: list[Task]) -> None:
        for task in tasks:
            self._tasks[task.task_id] = task

    def complete_task(self, task: Task | str) -> None:
        self._set_completed(task_id_of(task), True)

    def activate_task(self, task: Task | str) -> None:
        self._set_completed(task_id_of(task), False)

    def clear_completed_tasks(self) -> None:
        self._tasks = {tid: task for tid, task in self._tasks.items() if not task.completed}

    def delete_all_tasks(self) -> None:
        self._tasks.clear()

    def delete_task(self, task_id: str) -> None:
        self._tasks.pop(task_id, None)

    async def close(self) -> None:
        """Close storage (no-op for the in-memory service)."""
        pass

    def _set_completed(self, task_id: str, completed: bool) -> None:
        task = self._tasks.get(task_id)
        if task is None:
            logger.debug(f"Ignoring completion change for unknown task {task_id}")
            return
        self._tasks[task_id] = task.with_completed(completed)
