"""
Logging helpers for the task stores.

Every store logs under the ``todo_task_storage`` logger tree and tags its
records with the owning user and the store name. Applications that ship
logs to an aggregator can switch that tree to one-JSON-object-per-line
output with configure_structured_logging().
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

ROOT_LOGGER = "todo_task_storage"

# Context fields that stores attach to their records; emitted as top-level keys.
CONTEXT_FIELDS = ("store", "user_id", "operation", "task_id")

_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class StructuredJsonFormatter(logging.Formatter):
    """
    Render a record as a single-line JSON object.

    The object always has timestamp, level, logger and message. Store
    context (see CONTEXT_FIELDS) is copied to the top level when present;
    any other ``extra`` values go under ``"extra"``, stringified when they
    are not JSON serializable. A traceback, if any, goes under ``"error"``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            if name in record.__dict__:
                entry[name] = _jsonable(record.__dict__[name])

        extra = {
            key: _jsonable(value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and key not in CONTEXT_FIELDS and not key.startswith("_")
        }
        if extra:
            entry["extra"] = extra

        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)

        return json.dumps(entry)


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str = ROOT_LOGGER,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Send the store loggers' output to ``stream`` (stdout by default) as JSON.

    Calling it again replaces the handler instead of adding a second one.
    """
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def get_storage_logger(name: str) -> logging.Logger:
    """Logger for one store, e.g. ``get_storage_logger("cosmos")``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class StorageLoggerAdapter(logging.LoggerAdapter):
    """Tags every record with a store's fixed context (user_id, store).

    Per-call ``extra`` values are kept alongside it, so a single call can
    add an operation or task_id.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), **self.extra}
        return msg, kwargs
