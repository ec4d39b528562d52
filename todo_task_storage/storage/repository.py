"""
Task repository combining a remote and a local store.

Implements a deliberately simple synchronisation policy:
- Reads are served by the local store only
- Saves go to the local store, then to the remote store
- complete/activate/clear/delete are sent to the remote store, then
  to the local store, without waiting for either
- refresh_tasks() pulls the remote task list into the local store
  in the background

There is no conflict resolution, retry or rollback. A save whose
remote half fails leaves the local write in place.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable

from ..exceptions import require
from ..scheduling import SchedulerProvider
from ..tasks.types import Task
from .base import ErrorCallback, TasksDataSource

logger = logging.getLogger(__name__)


class TasksRepository(TasksDataSource):
    """Single entry point to tasks held by a remote and a local store.

    The repository keeps no task state of its own; it only routes calls
    to its two collaborators.

    Error reporting:
    - Argument validation raises ValidationError before any store is called
    - get_task() and the save operations propagate store errors
    - Fire-and-forget operations and refresh_tasks() never raise store
      errors to the caller. Each store call is guarded on its own; a
      failure is logged and passed to ``on_error``, and the other store
      is still called.
    """

    def __init__(
        self,
        remote: TasksDataSource,
        local: TasksDataSource,
        scheduler_provider: SchedulerProvider,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            remote: The backend store
            local: The on-device store
            scheduler_provider: Supplies the context refresh work runs on
            on_error: Receives errors of fire-and-forget operations

        Raises:
            ValidationError: If a collaborator is None
        """
        require(remote, "remote")
        require(local, "local")
        require(scheduler_provider, "scheduler_provider")
        self._remote = remote
        self._local = local
        self._scheduler_provider = scheduler_provider
        self.on_error = on_error

    @property
    def remote(self) -> TasksDataSource:
        return self._remote

    @property
    def local(self) -> TasksDataSource:
        return self._local

    def get_tasks(self) -> AsyncIterator[list[Task]]:
        """Return the local store's task snapshots.

        The remote store is only consulted through refresh_tasks().
        """
        return self._local.get_tasks()

    async def get_task(self, task_id: str) -> Task:
        """Look up a task in the local store.

        Raises:
            ValidationError: If task_id is None
            TaskNotFoundError: If the local store has no such task
        """
        require(task_id, "task_id")
        return await self._local.get_task(task_id)

    async def save_task(self, task: Task) -> None:
        """Save a task locally, then remotely.

        The remote save is not attempted if the local save fails, and the
        local save is not undone if the remote save fails.
        """
        require(task, "task")
        await self._local.save_task(task)
        await self._remote.save_task(task)

    async def save_tasks(self, tasks: list[Task]) -> None:
        """Save tasks locally, then remotely. Same policy as save_task()."""
        require(tasks, "tasks")
        await self._local.save_tasks(tasks)
        await self._remote.save_tasks(tasks)

    def complete_task(self, task: Task | str) -> None:
        require(task, "task")
        self._forward("complete_task", lambda store: store.complete_task(task))

    def activate_task(self, task: Task | str) -> None:
        require(task, "task")
        self._forward("activate_task", lambda store: store.activate_task(task))

    def clear_completed_tasks(self) -> None:
        self._forward("clear_completed_tasks", lambda store: store.clear_completed_tasks())

    def delete_all_tasks(self) -> None:
        self._forward("delete_all_tasks", lambda store: store.delete_all_tasks())

    def delete_task(self, task_id: str) -> None:
        require(task_id, "task_id")
        self._forward("delete_task", lambda store: store.delete_task(task_id))

    def refresh_tasks(self) -> None:
        """Copy the remote task list into the local store in the background.

        Runs on the scheduler provider's I/O context. Failures are absorbed
        by the background job and never reach the caller.
        """
        self._scheduler_provider.io_context().spawn(self._pull_remote_tasks())

    async def close(self) -> None:
        """Close both stores."""
        await self._local.close()
        await self._remote.close()

    async def _pull_remote_tasks(self) -> None:
        try:
            async for tasks in self._remote.get_tasks():
                await self._local.save_tasks(tasks)
                logger.debug(f"Refreshed local store with {len(tasks)} remote tasks")
        except Exception as e:
            # Refresh has no caller to report to
            logger.warning(f"Failed to refresh tasks from remote: {e}")
            self._report(e)

    def _forward(self, operation: str, call: Callable[[TasksDataSource], None]) -> None:
        """Call the remote store, then the local store, guarding each call."""
        for label, store in (("remote", self._remote), ("local", self._local)):
            try:
                call(store)
            except Exception as e:
                logger.warning(f"{operation} failed on {label} store: {e}")
                self._report(e)

    def _report(self, error: Exception) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception as e:
            logger.error(f"on_error callback raised: {e}")
