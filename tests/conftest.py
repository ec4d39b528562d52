"""
Shared test configuration and fixtures.

Provides recording stores that share one call journal, a temporary
local store and a clean process-wide repository handle per test.
"""

from __future__ import annotations

import tempfile
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import Any

import pytest

from todo_task_storage.provider import destroy_instance
from todo_task_storage.storage import LocalTasksDataSource, StorageConfig

from .fakes import RecordingDataSource, RecordingSchedulerProvider


@pytest.fixture
def journal() -> list[tuple[str, str, tuple[Any, ...]]]:
    return []


@pytest.fixture
def remote(journal: list[tuple[str, str, tuple[Any, ...]]]) -> RecordingDataSource:
    return RecordingDataSource("remote", journal)


@pytest.fixture
def local(journal: list[tuple[str, str, tuple[Any, ...]]]) -> RecordingDataSource:
    return RecordingDataSource("local", journal)


@pytest.fixture
def scheduler() -> RecordingSchedulerProvider:
    return RecordingSchedulerProvider()


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(temp_dir: Path) -> StorageConfig:
    return StorageConfig(user_id="test-user", local_path=str(temp_dir), remote_latency=0.0)


@pytest.fixture
async def local_store(config: StorageConfig) -> AsyncIterator[LocalTasksDataSource]:
    """Create a local store instance for tests."""
    store = LocalTasksDataSource(config)
    yield store
    await store.close()


@pytest.fixture(autouse=True)
def reset_repository_handle() -> Iterator[None]:
    """Forget the process-wide repository before and after each test."""
    destroy_instance()
    yield
    destroy_instance()
