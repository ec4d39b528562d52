"""
Scheduling providers for background work.

The repository never picks a thread or loop itself. Work that has to
run in the background (refreshing local storage from the remote store)
is handed to the WorkContext that a SchedulerProvider supplies.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Coroutine
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkContext(ABC):
    """A place where coroutines can be run in the background."""

    @abstractmethod
    def spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Future[T]:
        """Start running a coroutine without waiting for it.

        Args:
            coro: The coroutine to run

        Returns:
            A future for the coroutine's result
        """
        ...


class SchedulerProvider(ABC):
    """Supplies work contexts to the repository."""

    @abstractmethod
    def io_context(self) -> WorkContext:
        """Return a context suitable for I/O-bound background work."""
        ...


class EventLoopWorkContext(WorkContext):
    """Runs work as tasks on the running event loop.

    Spawned tasks are referenced until they finish so the loop cannot
    garbage-collect them mid-flight. A task that fails is logged and its
    exception is marked as retrieved.
    """

    def __init__(self, name: str = "io") -> None:
        self.name = name
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Future[T]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    @property
    def pending(self) -> int:
        """Number of spawned tasks that have not finished yet."""
        return len(self._tasks)

    async def join(self) -> None:
        """Wait until every spawned task, including ones spawned meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                f"Background work on '{self.name}' context failed: {exc}",
                exc_info=exc,
            )


class AsyncioSchedulerProvider(SchedulerProvider):
    """Scheduler provider backed by the running asyncio event loop."""

    def __init__(self) -> None:
        self._io = EventLoopWorkContext("io")

    def io_context(self) -> EventLoopWorkContext:
        return self._io

    async def join(self) -> None:
        """Wait for all background work spawned through this provider."""
        await self._io.join()
