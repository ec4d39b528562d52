"""
Task stores.

Provides a local file store, an in-memory remote, a Cosmos DB remote
and the repository that combines a remote and a local store behind
one interface.

Example:
    >>> from todo_task_storage.storage import (
    ...     StorageConfig, InMemoryRemoteDataSource, LocalTasksDataSource, TasksRepository
    ... )
    >>> from todo_task_storage.scheduling import AsyncioSchedulerProvider
    >>> config = StorageConfig(user_id="user-123", local_path="/tmp/tasks")
    >>> repository = TasksRepository(
    ...     remote=InMemoryRemoteDataSource(config),
    ...     local=LocalTasksDataSource(config),
    ...     scheduler_provider=AsyncioSchedulerProvider(),
    ... )
"""

from .base import (
    BackgroundWriteMixin,
    CosmosAuthMethod,
    ErrorCallback,
    StorageConfig,
    TasksDataSource,
)
from .cosmos import CosmosTasksDataSource
from .local import LocalTasksDataSource
from .memory import InMemoryRemoteDataSource
from .repository import TasksRepository

__all__ = [
    # Configuration
    "StorageConfig",
    "CosmosAuthMethod",
    # Interface
    "TasksDataSource",
    "BackgroundWriteMixin",
    "ErrorCallback",
    # Stores
    "LocalTasksDataSource",
    "InMemoryRemoteDataSource",
    "CosmosTasksDataSource",
    "TasksRepository",
]
