"""Tests for logging utilities and storage configuration."""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest

from todo_task_storage.logging_utils import (
    StorageLoggerAdapter,
    StructuredJsonFormatter,
    configure_structured_logging,
    get_storage_logger,
)
from todo_task_storage.storage import CosmosAuthMethod, StorageConfig


def _record(message: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("todo_task_storage.local", logging.WARNING, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredJsonFormatter:
    def test_formats_single_line_json(self) -> None:
        output = StructuredJsonFormatter().format(
            _record("write failed", user_id="u1", store="local", operation="save_task")
        )

        data = json.loads(output)
        assert "\n" not in output
        assert data["level"] == "WARNING"
        assert data["logger"] == "todo_task_storage.local"
        assert data["message"] == "write failed"
        assert data["user_id"] == "u1"
        assert data["store"] == "local"
        assert data["operation"] == "save_task"
        assert "extra" not in data

    def test_other_extras_are_nested_and_stringified(self) -> None:
        data = json.loads(StructuredJsonFormatter().format(_record("x", attempt=2, payload={1, 2})))

        assert data["extra"]["attempt"] == 2
        assert isinstance(data["extra"]["payload"], str)

    def test_includes_traceback(self) -> None:
        try:
            raise ValueError("bad json")
        except ValueError:
            record = logging.LogRecord(
                "todo_task_storage.local", logging.ERROR, __file__, 1, "read failed", None, sys.exc_info()
            )

        data = json.loads(StructuredJsonFormatter().format(record))

        assert "ValueError: bad json" in data["error"]


class TestLoggerHelpers:
    def test_get_storage_logger_name(self) -> None:
        assert get_storage_logger("cosmos").name == "todo_task_storage.cosmos"

    def test_configure_structured_logging_replaces_handlers(self) -> None:
        stream = io.StringIO()
        logger = configure_structured_logging(logging.DEBUG, "todo_task_storage.test", stream)
        configure_structured_logging(logging.DEBUG, "todo_task_storage.test", stream)

        logger.debug("loaded", extra={"store": "local"})

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, StructuredJsonFormatter)
        assert logger.level == logging.DEBUG
        assert json.loads(stream.getvalue())["store"] == "local"
        logger.handlers.clear()

    def test_adapter_adds_context(self, caplog: pytest.LogCaptureFixture) -> None:
        adapter = StorageLoggerAdapter(get_storage_logger("local"), {"user_id": "u1"})

        with caplog.at_level(logging.INFO, logger="todo_task_storage.local"):
            adapter.info("hello", extra={"operation": "save_task"})

        record = caplog.records[-1]
        assert record.user_id == "u1"  # type: ignore[attr-defined]
        assert record.operation == "save_task"  # type: ignore[attr-defined]


class TestStorageConfig:
    def test_minimal_config(self) -> None:
        config = StorageConfig(user_id="user-123")

        assert config.local_path is None
        assert config.remote_latency == 5.0
        assert config.cosmos_database == "todo-db"
        assert config.cosmos_container == "tasks"
        assert config.cosmos_auth_method == CosmosAuthMethod.DEFAULT_CREDENTIAL

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TODO_LOCAL_STORAGE_PATH", "/tmp/tasks")
        monkeypatch.setenv("TODO_REMOTE_LATENCY", "0.25")
        monkeypatch.setenv("TODO_COSMOS_ENDPOINT", "https://example.documents.azure.com")
        monkeypatch.setenv("TODO_COSMOS_AUTH_METHOD", "KEY")
        monkeypatch.setenv("TODO_COSMOS_KEY", "secret")
        monkeypatch.setenv("TODO_COSMOS_DATABASE", "mydb")

        config = StorageConfig.from_environment("user-123")

        assert config.user_id == "user-123"
        assert config.local_path == "/tmp/tasks"
        assert config.remote_latency == 0.25
        assert config.cosmos_endpoint == "https://example.documents.azure.com"
        assert config.cosmos_auth_method == CosmosAuthMethod.KEY
        assert config.cosmos_key == "secret"
        assert config.cosmos_database == "mydb"
        assert config.cosmos_container == "tasks"

    def test_from_environment_falls_back_on_bad_values(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TODO_COSMOS_AUTH_METHOD", "carrier-pigeon")
        monkeypatch.setenv("TODO_REMOTE_LATENCY", "slow")

        config = StorageConfig.from_environment("user-123")

        assert config.cosmos_auth_method == CosmosAuthMethod.DEFAULT_CREDENTIAL
        assert config.remote_latency == 5.0
