"""
Lifecycle handle for the task repository.

An application creates one RepositoryProvider at start-up and passes it
to everything that needs tasks. The first get_instance() call builds
the repository; later calls return that same repository whatever
arguments they pass. destroy_instance() forgets it so the next call
builds a new one (used between tests).

The module-level get_instance()/destroy_instance() functions share one
default provider for applications that want a process-wide handle.
"""

from __future__ import annotations

import logging

from .scheduling import SchedulerProvider
from .storage.base import ErrorCallback, TasksDataSource
from .storage.repository import TasksRepository

logger = logging.getLogger(__name__)


class RepositoryProvider:
    """Creates the task repository once and hands out the same object."""

    def __init__(self) -> None:
        self._instance: TasksRepository | None = None

    @property
    def instance(self) -> TasksRepository | None:
        """The current repository, or None before the first get_instance()."""
        return self._instance

    def get_instance(
        self,
        remote: TasksDataSource,
        local: TasksDataSource,
        scheduler_provider: SchedulerProvider,
        on_error: ErrorCallback | None = None,
    ) -> TasksRepository:
        """Return the repository, creating it if necessary.

        Args:
            remote: The backend store
            local: The on-device store
            scheduler_provider: Supplies the context refresh work runs on
            on_error: Receives errors of fire-and-forget operations

        Returns:
            The repository instance
        """
        if self._instance is None:
            self._instance = TasksRepository(remote, local, scheduler_provider, on_error)
            logger.debug("Created task repository")
        return self._instance

    def destroy_instance(self) -> None:
        """Forget the repository so the next get_instance() builds a new one.

        Does not close the stores; callers own them.
        """
        self._instance = None


_default_provider = RepositoryProvider()


def get_instance(
    remote: TasksDataSource,
    local: TasksDataSource,
    scheduler_provider: SchedulerProvider,
    on_error: ErrorCallback | None = None,
) -> TasksRepository:
    """Return the process-wide repository, creating it if necessary."""
    return _default_provider.get_instance(remote, local, scheduler_provider, on_error)


def destroy_instance() -> None:
    """Forget the process-wide repository."""
    _default_provider.destroy_instance()


def default_provider() -> RepositoryProvider:
    """Return the provider behind get_instance()/destroy_instance()."""
    return _default_provider
