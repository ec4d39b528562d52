"""
Todo Task Storage

Task storage library that puts a remote backend and a local store
behind one repository.

Provides:
- A repository: local reads, write-through saves, background refresh
- A local JSON-file store with live task-list snapshots
- Remote stores: Azure Cosmos DB and an in-memory simulated service
- A scheduling-provider abstraction for background work

Usage:

    >>> from todo_task_storage import (
    ...     AsyncioSchedulerProvider, InMemoryRemoteDataSource,
    ...     LocalTasksDataSource, RepositoryProvider, StorageConfig, Task,
    ... )
    >>> config = StorageConfig.from_environment(user_id="user-123")
    >>> provider = RepositoryProvider()
    >>> repository = provider.get_instance(
    ...     InMemoryRemoteDataSource(config),
    ...     LocalTasksDataSource(config),
    ...     AsyncioSchedulerProvider(),
    ... )
    >>> await repository.save_task(Task(title="Write report"))
    >>> repository.refresh_tasks()
    >>> async for tasks in repository.get_tasks():
    ...     print([t.title for t in tasks])
"""

from .exceptions import (
    AuthenticationError,
    StoreError,
    TaskNotFoundError,
    TaskStorageError,
    ValidationError,
)
from .logging_utils import (
    StorageLoggerAdapter,
    StructuredJsonFormatter,
    configure_structured_logging,
    get_storage_logger,
)
from .provider import RepositoryProvider, destroy_instance, get_instance
from .scheduling import (
    AsyncioSchedulerProvider,
    EventLoopWorkContext,
    SchedulerProvider,
    WorkContext,
)
from .storage import (
    CosmosAuthMethod,
    CosmosTasksDataSource,
    InMemoryRemoteDataSource,
    LocalTasksDataSource,
    StorageConfig,
    TasksDataSource,
    TasksRepository,
)
from .tasks import Task

__version__ = "0.1.0"

__all__ = [
    # Types
    "Task",
    # Repository
    "TasksRepository",
    "RepositoryProvider",
    "get_instance",
    "destroy_instance",
    # Stores
    "TasksDataSource",
    "LocalTasksDataSource",
    "InMemoryRemoteDataSource",
    "CosmosTasksDataSource",
    # Configuration
    "StorageConfig",
    "CosmosAuthMethod",
    # Scheduling
    "SchedulerProvider",
    "WorkContext",
    "EventLoopWorkContext",
    "AsyncioSchedulerProvider",
    # Logging
    "StructuredJsonFormatter",
    "StorageLoggerAdapter",
    "configure_structured_logging",
    "get_storage_logger",
    # Exceptions
    "TaskStorageError",
    "ValidationError",
    "TaskNotFoundError",
    "StoreError",
    "AuthenticationError",
]
