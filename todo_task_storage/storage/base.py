"""
Abstract task data source interface.

Defines the contract that every task store, and the repository that
combines them, must implement.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Coroutine
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from ..tasks.types import Task

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Receives errors that a fire-and-forget operation could not report
# to its caller.
ErrorCallback = Callable[[Exception], None]


class CosmosAuthMethod(Enum):
    """Authentication method for Cosmos DB.

    KEY: Use connection string or key (not recommended for production)
    DEFAULT_CREDENTIAL: Use Azure DefaultAzureCredential (recommended)
    MANAGED_IDENTITY: Use Azure Managed Identity explicitly
    SERVICE_PRINCIPAL: Use Service Principal with client_id/client_secret
    """

    KEY = "key"
    DEFAULT_CREDENTIAL = "default_credential"
    MANAGED_IDENTITY = "managed_identity"
    SERVICE_PRINCIPAL = "service_principal"


@dataclass
class StorageConfig:
    """Configuration for task stores.

    Configuration can be provided directly or via environment variables:

    Environment Variables:
        TODO_LOCAL_STORAGE_PATH: Base directory for the local store
        TODO_REMOTE_LATENCY: Simulated latency (seconds) of the in-memory remote
        TODO_COSMOS_ENDPOINT: Cosmos DB endpoint URL
        TODO_COSMOS_KEY: Cosmos DB key (if using key auth)
        TODO_COSMOS_DATABASE: Database name (default: todo-db)
        TODO_COSMOS_CONTAINER: Container name (default: tasks)
        TODO_COSMOS_PARTITION_KEY: Partition key path (default: /partitionKey)
        TODO_COSMOS_AUTH_METHOD: Auth method (default: default_credential)
        AZURE_TENANT_ID: Azure tenant ID (for service principal)
        AZURE_CLIENT_ID: Azure client ID (for service principal/managed identity)
        AZURE_CLIENT_SECRET: Azure client secret (for service principal)

    Attributes:
        user_id: Owner of the tasks
        local_path: Base directory for the local store
        remote_latency: Read latency of the in-memory remote, in seconds

        cosmos_endpoint: Cosmos DB endpoint URL
        cosmos_auth_method: Authentication method (default: DEFAULT_CREDENTIAL)
        cosmos_key: Cosmos DB key (only for KEY auth method)
        cosmos_database: Cosmos DB database name
        cosmos_container: Cosmos DB container name
        cosmos_partition_key_path: Partition key path in container

        azure_tenant_id: Azure tenant ID (for SERVICE_PRINCIPAL)
        azure_client_id: Azure client/app ID (for SERVICE_PRINCIPAL/MANAGED_IDENTITY)
        azure_client_secret: Azure client secret (for SERVICE_PRINCIPAL)
    """

    user_id: str

    # Local storage settings
    local_path: str | None = None

    # In-memory remote settings
    remote_latency: float = 5.0

    # Cosmos DB connection settings
    cosmos_endpoint: str | None = None
    cosmos_auth_method: CosmosAuthMethod = CosmosAuthMethod.DEFAULT_CREDENTIAL
    cosmos_key: str | None = None  # Only used if auth_method is KEY
    cosmos_database: str = "todo-db"
    cosmos_container: str = "tasks"
    cosmos_partition_key_path: str = "/partitionKey"

    # Azure AD authentication settings
    azure_tenant_id: str | None = None
    azure_client_id: str | None = None
    azure_client_secret: str | None = None

    # Additional options
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_environment(cls, user_id: str) -> StorageConfig:
        """Create configuration from environment variables.

        Args:
            user_id: Owner of the tasks

        Returns:
            StorageConfig populated from environment variables
        """
        auth_method_str = os.environ.get("TODO_COSMOS_AUTH_METHOD", "default_credential")
        try:
            auth_method = CosmosAuthMethod(auth_method_str.lower())
        except ValueError:
            auth_method = CosmosAuthMethod.DEFAULT_CREDENTIAL

        latency_str = os.environ.get("TODO_REMOTE_LATENCY")
        try:
            remote_latency = float(latency_str) if latency_str else 5.0
        except ValueError:
            logger.warning(f"Ignoring invalid TODO_REMOTE_LATENCY={latency_str!r}")
            remote_latency = 5.0

        return cls(
            user_id=user_id,
            local_path=os.environ.get("TODO_LOCAL_STORAGE_PATH"),
            remote_latency=remote_latency,
            cosmos_endpoint=os.environ.get("TODO_COSMOS_ENDPOINT"),
            cosmos_auth_method=auth_method,
            cosmos_key=os.environ.get("TODO_COSMOS_KEY"),
            cosmos_database=os.environ.get("TODO_COSMOS_DATABASE", "todo-db"),
            cosmos_container=os.environ.get("TODO_COSMOS_CONTAINER", "tasks"),
            cosmos_partition_key_path=os.environ.get(
                "TODO_COSMOS_PARTITION_KEY", "/partitionKey"
            ),
            azure_tenant_id=os.environ.get("AZURE_TENANT_ID"),
            azure_client_id=os.environ.get("AZURE_CLIENT_ID"),
            azure_client_secret=os.environ.get("AZURE_CLIENT_SECRET"),
        )


class TasksDataSource(ABC):
    """Abstract interface for task stores.

    The local store, the remote stores and the repository all implement
    this interface, so callers depend only on it.

    Reads and saves are asynchronous and report their outcome to the
    caller. complete/activate/clear/delete are fire-and-forget: they
    return None and report failures through the store's own channel.
    """

    @abstractmethod
    def get_tasks(self) -> AsyncIterator[list[Task]]:
        """Return a lazy sequence of task-list snapshots.

        Nothing happens until the sequence is iterated. Each call returns
        a fresh sequence.
        """
        ...

    @abstractmethod
    async def get_task(self, task_id: str) -> Task:
        """Look up a single task.

        Raises:
            TaskNotFoundError: If no task has this id
            StoreError: If the lookup fails
        """
        ...

    @abstractmethod
    async def save_task(self, task: Task) -> None:
        """Insert or replace a task.

        Raises:
            StoreError: If the write fails
        """
        ...

    @abstractmethod
    async def save_tasks(self, tasks: list[Task]) -> None:
        """Insert or replace several tasks.

        Raises:
            StoreError: If the write fails
        """
        ...

    @abstractmethod
    def complete_task(self, task: Task | str) -> None:
        """Mark a task, given by object or id, as completed."""
        ...

    @abstractmethod
    def activate_task(self, task: Task | str) -> None:
        """Mark a task, given by object or id, as active."""
        ...

    @abstractmethod
    def clear_completed_tasks(self) -> None:
        """Delete every completed task."""
        ...

    @abstractmethod
    def delete_all_tasks(self) -> None:
        """Delete every task."""
        ...

    @abstractmethod
    def delete_task(self, task_id: str) -> None:
        """Delete a single task."""
        ...

    def refresh_tasks(self) -> None:
        """Refresh from an upstream source.

        Concrete stores have nothing upstream; the repository overrides this.
        """
        return None

    @abstractmethod
    async def close(self) -> None:
        """Close the store and cleanup resources."""
        ...


class BackgroundWriteMixin:
    """Runs a store's operations one at a time, in the order they were called.

    Fire-and-forget writes are started with ``_dispatch`` and awaited
    operations with ``_serialized``. Both join the same chain, so an
    operation never starts before every earlier one has finished.

    Failures of dispatched writes are logged and handed to ``on_error``;
    they never reach the caller of the fire-and-forget operation. Must be
    used from within a running event loop.
    """

    def __init__(self, on_error: ErrorCallback | None = None) -> None:
        self.on_error = on_error
        self._background_writes: set[asyncio.Task[None]] = set()
        self._tail: asyncio.Task[Any] | None = None

    def _chain(self, operation: str, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        """Start ``coro`` once the previously chained operation has finished."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise
        previous = self._tail

        async def run_after_previous() -> T:
            if previous is not None and not previous.done():
                # wait() never cancels the earlier operation
                await asyncio.wait({previous})
            return await coro

        task = loop.create_task(run_after_previous())
        task.set_name(operation)
        self._tail = task
        return task

    def _dispatch(self, operation: str, coro: Coroutine[Any, Any, None]) -> None:
        task = self._chain(operation, coro)
        self._background_writes.add(task)
        task.add_done_callback(self._on_background_write_done)

    async def _serialized(self, operation: str, coro: Coroutine[Any, Any, T]) -> T:
        """Run ``coro`` in call order and return its result."""
        return await self._chain(operation, coro)

    def _on_background_write_done(self, task: asyncio.Task[None]) -> None:
        self._background_writes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.warning(f"Background {task.get_name()} failed: {exc}")
        if self.on_error is None or not isinstance(exc, Exception):
            return
        try:
            self.on_error(exc)
        except Exception as e:
            logger.error(f"on_error callback raised: {e}")

    async def flush(self) -> None:
        """Wait for all outstanding background writes."""
        while self._background_writes:
            await asyncio.gather(*list(self._background_writes), return_exceptions=True)
