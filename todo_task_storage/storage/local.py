"""
Local file-based task storage.

Stores a user's tasks as a single JSON document on disk and
notifies live readers after every committed change.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import aiofiles
import aiofiles.os

from ..exceptions import StoreError, TaskNotFoundError
from ..logging_utils import StorageLoggerAdapter, get_storage_logger
from ..tasks.types import Task, task_id_of
from .base import BackgroundWriteMixin, ErrorCallback, StorageConfig, TasksDataSource

# Receives the working copy of the task map; returns True if it changed.
Mutation = Callable[[dict[str, Task]], bool]


class LocalTasksDataSource(BackgroundWriteMixin, TasksDataSource):
    """Local file-based task storage.

    Directory structure:
    {base_path}/
      {user_id}/
        tasks.json

    The file is loaded on first use. Operations run one at a time in the
    order they were called, whether awaited or fire-and-forget, so a
    save issued after delete_task() lands after the delete. Every
    mutation runs under one lock, is applied to a copy of the task map,
    written to disk and only then committed and published to readers
    of get_tasks().
    """

    def __init__(self, config: StorageConfig, on_error: ErrorCallback | None = None) -> None:
        """Initialize local storage.

        Args:
            config: Storage configuration
            on_error: Receives failures of fire-and-forget operations
        """
        BackgroundWriteMixin.__init__(self, on_error)
        self.config = config
        self.user_id = config.user_id

        # Default to ~/.todo/tasks
        if config.local_path:
            self.base_path = Path(config.local_path)
        else:
            self.base_path = Path.home() / ".todo" / "tasks"

        self._tasks: dict[str, Task] | None = None
        self._lock = asyncio.Lock()
        self._subscribers: set[asyncio.Queue[list[Task]]] = set()
        self._log = StorageLoggerAdapter(
            get_storage_logger("local"), {"user_id": self.user_id, "store": "local"}
        )

    @property
    def tasks_file(self) -> Path:
        """Path of the JSON document holding this user's tasks."""
        return self.base_path / self.user_id / "tasks.json"

    async def get_tasks(self) -> AsyncIterator[list[Task]]:
        """Yield the current tasks, then a new snapshot after every change.

        The first snapshot reflects every operation called before iteration
        started. The sequence never ends on its own; stop iterating to
        unsubscribe.
        """
        queue: asyncio.Queue[list[Task]] = asyncio.Queue()
        try:
            await self._serialized("get_tasks", self._subscribe(queue))
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)

    async def get_task(self, task_id: str) -> Task:
        tasks = await self._serialized("get_task", self._load_current())
        task = tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id, store="local")
        return task

    async def save_task(self, task: Task) -> None:
        await self.save_tasks([task])

    async def save_tasks(self, tasks: list[Task]) -> None:
        """Insert or replace tasks by id.

        Tasks that are not part of the batch are left untouched.
        """
        batch = list(tasks)

        def upsert(current: dict[str, Task]) -> bool:
            for task in batch:
                current[task.task_id] = task
            return bool(batch)

        await self._serialized("save_tasks", self._mutate("save_tasks", upsert))

    def complete_task(self, task: Task | str) -> None:
        self._dispatch("complete_task", self._set_completed(task_id_of(task), True))

    def activate_task(self, task: Task | str) -> None:
        self._dispatch("activate_task", self._set_completed(task_id_of(task), False))

    def clear_completed_tasks(self) -> None:
        def clear_completed(current: dict[str, Task]) -> bool:
            completed = [tid for tid, task in current.items() if task.completed]
            for tid in completed:
                del current[tid]
            return bool(completed)

        self._dispatch("clear_completed_tasks", self._mutate("clear_completed_tasks", clear_completed))

    def delete_all_tasks(self) -> None:
        def delete_all(current: dict[str, Task]) -> bool:
            changed = bool(current)
            current.clear()
            return changed

        self._dispatch("delete_all_tasks", self._mutate("delete_all_tasks", delete_all))

    def delete_task(self, task_id: str) -> None:
        def delete_one(current: dict[str, Task]) -> bool:
            return current.pop(task_id, None) is not None

        self._dispatch("delete_task", self._mutate("delete_task", delete_one))

    async def close(self) -> None:
        """Wait for outstanding writes (no connections to close)."""
        await self.flush()

    async def _set_completed(self, task_id: str, completed: bool) -> None:
        def set_flag(current: dict[str, Task]) -> bool:
            task = current.get(task_id)
            if task is None or task.completed == completed:
                return False
            current[task_id] = task.with_completed(completed)
            return True

        await self._mutate("complete_task" if completed else "activate_task", set_flag)

    async def _mutate(self, operation: str, mutation: Mutation) -> None:
        """Apply a mutation, persist it and publish the new snapshot."""
        async with self._lock:
            working = dict(await self._ensure_loaded())
            if not mutation(working):
                return
            await self._write(working, operation)
            self._tasks = working
            self._publish(list(working.values()))

    async def _subscribe(self, queue: asyncio.Queue[list[Task]]) -> None:
        async with self._lock:
            tasks = await self._ensure_loaded()
            queue.put_nowait(list(tasks.values()))
            self._subscribers.add(queue)

    async def _load_current(self) -> dict[str, Task]:
        async with self._lock:
            return await self._ensure_loaded()

    def _publish(self, snapshot: list[Task]) -> None:
        for queue in self._subscribers:
            queue.put_nowait(list(snapshot))

    async def _ensure_loaded(self) -> dict[str, Task]:
        """Load tasks from disk on first use. Caller holds the lock."""
        if self._tasks is None:
            self._tasks = await self._read()
            self._log.debug(f"Loaded {len(self._tasks)} tasks from {self.tasks_file}")
        return self._tasks

    async def _read(self) -> dict[str, Task]:
        path = self.tasks_file
        if not path.exists():
            return {}
        try:
            async with aiofiles.open(path) as f:
                content = await f.read()
            data = json.loads(content) if content.strip() else {"tasks": []}
            tasks = [Task.from_dict(item) for item in data.get("tasks", [])]
        except (OSError, ValueError, AttributeError, TypeError) as e:
            raise StoreError("read", cause=e, path=str(path)) from e
        return {task.task_id: task for task in tasks}

    async def _write(self, tasks: dict[str, Task], operation: str) -> None:
        path = self.tasks_file
        tmp_path = path.with_suffix(".json.tmp")
        document = {"tasks": [task.to_dict() for task in tasks.values()]}
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, "w") as f:
                await f.write(json.dumps(document, indent=2))
            await aiofiles.os.replace(tmp_path, path)
        except OSError as e:
            self._log.warning(f"Failed to write {path} during {operation}: {e}")
            raise StoreError(operation, cause=e, path=str(path)) from e
