"""
Cosmos DB task storage.

Stores tasks in Azure Cosmos DB, one document per task,
partitioned by user.

Supports multiple authentication methods:
- Key-based authentication (if org policy allows)
- Azure AD via DefaultAzureCredential (recommended)
- Azure Managed Identity
- Service Principal
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient, DatabaseProxy
from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError

from ..exceptions import AuthenticationError, StoreError, TaskNotFoundError
from ..logging_utils import StorageLoggerAdapter, get_storage_logger
from ..tasks.types import Task, task_id_of
from .base import (
    BackgroundWriteMixin,
    CosmosAuthMethod,
    ErrorCallback,
    StorageConfig,
    TasksDataSource,
)

logger = get_storage_logger("cosmos")


def _get_credential(config: StorageConfig) -> Any:
    """Get the appropriate credential based on auth method.

    Args:
        config: Storage configuration with auth settings

    Returns:
        Credential object for Cosmos DB authentication

    Raises:
        AuthenticationError: If credential cannot be created
    """
    endpoint = config.cosmos_endpoint or "<unset>"
    auth_method = config.cosmos_auth_method

    if auth_method == CosmosAuthMethod.KEY:
        if not config.cosmos_key:
            raise AuthenticationError(endpoint, "cosmos_key required for KEY authentication")
        return config.cosmos_key

    if auth_method == CosmosAuthMethod.DEFAULT_CREDENTIAL:
        from azure.identity.aio import DefaultAzureCredential

        return DefaultAzureCredential()

    if auth_method == CosmosAuthMethod.MANAGED_IDENTITY:
        from azure.identity.aio import ManagedIdentityCredential

        # If client_id is provided, use user-assigned managed identity
        if config.azure_client_id:
            return ManagedIdentityCredential(client_id=config.azure_client_id)
        return ManagedIdentityCredential()

    if auth_method == CosmosAuthMethod.SERVICE_PRINCIPAL:
        if not all([config.azure_tenant_id, config.azure_client_id, config.azure_client_secret]):
            raise AuthenticationError(
                endpoint,
                "azure_tenant_id, azure_client_id, and azure_client_secret "
                "required for SERVICE_PRINCIPAL authentication",
            )
        from azure.identity.aio import ClientSecretCredential

        return ClientSecretCredential(
            tenant_id=config.azure_tenant_id,
            client_id=config.azure_client_id,
            client_secret=config.azure_client_secret,
        )

    raise AuthenticationError(endpoint, f"Unsupported auth method: {auth_method}")


class CosmosTasksDataSource(BackgroundWriteMixin, TasksDataSource):
    """Cosmos DB task storage.

    Partition key value: {user_id}

    Operations reach the container in the order they were called;
    fire-and-forget writes are not overtaken by later saves or reads.

    Container schema:
    {
        "id": "{task_id}",
        "partitionKey": "{user_id}",
        "task_id": "{task_id}",
        "user_id": "{user_id}",
        "title": "{title}",
        "description": "{description}",
        "completed": {bool},
        "updated": "{iso_timestamp}"
    }
    """

    def __init__(self, config: StorageConfig, on_error: ErrorCallback | None = None) -> None:
        """Initialize Cosmos DB storage.

        Args:
            config: Storage configuration with Cosmos connection info
            on_error: Receives failures of fire-and-forget operations
        """
        if not config.cosmos_endpoint:
            raise StoreError("configure", message="Cosmos endpoint is required")

        BackgroundWriteMixin.__init__(self, on_error)
        self.config = config
        self.user_id = config.user_id
        self._partition_key_path = config.cosmos_partition_key_path

        self._credential: Any = None
        self._client: CosmosClient | None = None
        self._database: DatabaseProxy | None = None
        self._container: ContainerProxy | None = None
        self._initialized = False
        self._log = StorageLoggerAdapter(logger, {"user_id": self.user_id, "store": "cosmos"})

    async def _ensure_initialized(self) -> None:
        """Ensure client and container are initialized."""
        if self._initialized:
            return

        self._credential = _get_credential(self.config)

        try:
            client = CosmosClient(
                self.config.cosmos_endpoint,  # type: ignore[arg-type]
                credential=self._credential,
            )
            self._client = client

            database = await client.create_database_if_not_exists(id=self.config.cosmos_database)
            self._database = database

            container = await database.create_container_if_not_exists(
                id=self.config.cosmos_container,
                partition_key=PartitionKey(path=self._partition_key_path),
            )
            self._container = container

            self._initialized = True
            self._log.info(
                f"Connected to Cosmos DB: {self.config.cosmos_endpoint} "
                f"(database={self.config.cosmos_database}, "
                f"container={self.config.cosmos_container}, "
                f"auth={self.config.cosmos_auth_method.value})"
            )

        except Exception as e:
            error_msg = str(e)
            if "unauthorized" in error_msg.lower() or "403" in error_msg:
                raise AuthenticationError(
                    self.config.cosmos_endpoint or "<unset>",
                    "Ensure your identity has 'Cosmos DB Data Contributor' role. "
                    f"Error: {error_msg}",
                ) from e
            raise StoreError("connect", cause=e) from e

    async def get_tasks(self) -> AsyncIterator[list[Task]]:
        """Yield all of the user's tasks once."""
        docs = await self._serialized("get_tasks", self._query_user_tasks())
        yield [self._document_to_task(doc) for doc in docs]

    async def get_task(self, task_id: str) -> Task:
        return await self._serialized("get_task", self._read_task(task_id))

    async def save_task(self, task: Task) -> None:
        await self._serialized("save_task", self._upsert_tasks("save_task", [task]))

    async def save_tasks(self, tasks: list[Task]) -> None:
        if not tasks:
            return
        await self._serialized("save_tasks", self._upsert_tasks("save_tasks", list(tasks)))

    def complete_task(self, task: Task | str) -> None:
        self._dispatch("complete_task", self._set_completed(task_id_of(task), True))

    def activate_task(self, task: Task | str) -> None:
        self._dispatch("activate_task", self._set_completed(task_id_of(task), False))

    def clear_completed_tasks(self) -> None:
        self._dispatch("clear_completed_tasks", self._delete_matching(completed=True))

    def delete_all_tasks(self) -> None:
        self._dispatch("delete_all_tasks", self._delete_matching())

    def delete_task(self, task_id: str) -> None:
        self._dispatch("delete_task", self._delete_ids([task_id]))

    async def close(self) -> None:
        """Wait for outstanding writes and close the Cosmos client."""
        await self.flush()

        if self._client:
            await self._client.close()
            self._client = None
            self._database = None
            self._container = None
            self._initialized = False

        # Close credential if it has a close method (AAD credentials do)
        if self._credential and hasattr(self._credential, "close"):
            await self._credential.close()
        self._credential = None

    async def _read_task(self, task_id: str) -> Task:
        await self._ensure_initialized()
        try:
            doc = await self._container.read_item(  # type: ignore[union-attr]
                item=task_id, partition_key=self.user_id
            )
        except CosmosResourceNotFoundError as e:
            raise TaskNotFoundError(task_id, store="cosmos") from e
        except CosmosHttpResponseError as e:
            raise StoreError("get_task", cause=e) from e
        return self._document_to_task(doc)

    async def _upsert_tasks(self, operation: str, tasks: list[Task]) -> None:
        """Upsert tasks in parallel (Cosmos handles concurrency)."""
        await self._ensure_initialized()
        try:
            await asyncio.gather(
                *[
                    self._container.upsert_item(self._task_to_document(task))  # type: ignore[union-attr]
                    for task in tasks
                ]
            )
        except CosmosHttpResponseError as e:
            raise StoreError(operation, cause=e) from e

    async def _query_user_tasks(self, completed: bool | None = None) -> list[dict[str, Any]]:
        await self._ensure_initialized()

        query = "SELECT * FROM c WHERE c.user_id = @user_id"
        params: list[dict[str, Any]] = [{"name": "@user_id", "value": self.user_id}]
        if completed is not None:
            query += " AND c.completed = @completed"
            params.append({"name": "@completed", "value": completed})

        docs: list[dict[str, Any]] = []
        try:
            async for doc in self._container.query_items(  # type: ignore[union-attr]
                query=query,
                parameters=params,
                partition_key=self.user_id,
            ):
                docs.append(doc)
        except CosmosHttpResponseError as e:
            raise StoreError("query_tasks", cause=e) from e
        return docs

    async def _set_completed(self, task_id: str, completed: bool) -> None:
        await self._ensure_initialized()
        try:
            doc = await self._container.read_item(  # type: ignore[union-attr]
                item=task_id, partition_key=self.user_id
            )
        except CosmosResourceNotFoundError:
            self._log.debug(f"Ignoring completion change for unknown task {task_id}")
            return
        task = self._document_to_task(doc).with_completed(completed)
        await self._container.upsert_item(self._task_to_document(task))  # type: ignore[union-attr]

    async def _delete_matching(self, completed: bool | None = None) -> None:
        docs = await self._query_user_tasks(completed=completed)
        await self._delete_ids([doc["id"] for doc in docs])

    async def _delete_ids(self, task_ids: list[str]) -> None:
        await self._ensure_initialized()
        for task_id in task_ids:
            try:
                await self._container.delete_item(  # type: ignore[union-attr]
                    item=task_id, partition_key=self.user_id
                )
            except CosmosResourceNotFoundError:
                pass  # Already deleted

    def _task_to_document(self, task: Task) -> dict[str, Any]:
        """Convert a task to a Cosmos document."""
        doc = task.to_dict()
        doc["id"] = task.task_id
        doc["partitionKey"] = self.user_id
        doc["user_id"] = self.user_id
        doc["updated"] = datetime.now(UTC).isoformat()
        return doc

    def _document_to_task(self, doc: dict[str, Any]) -> Task:
        """Convert a Cosmos document to a task."""
        return Task.from_dict(doc)
