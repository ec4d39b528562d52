"""
Custom exceptions for task storage.

All data sources and the repository raise these exceptions
for consistent error handling across stores.
"""


class TaskStorageError(Exception):
    """Base exception for all task storage errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(TaskStorageError):
    """Raised when a required argument is missing or invalid.

    Raised before any store is touched.
    """

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class TaskNotFoundError(TaskStorageError):
    """Raised when a task lookup misses."""

    def __init__(self, task_id: str, store: str | None = None):
        details = {"task_id": task_id}
        if store:
            details["store"] = store
        super().__init__(f"Task not found: {task_id}", details)
        self.task_id = task_id
        self.store = store


class StoreError(TaskStorageError):
    """Raised when a store's underlying I/O fails."""

    def __init__(
        self,
        operation: str,
        cause: Exception | None = None,
        path: str | None = None,
        message: str | None = None,
    ):
        details: dict = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        if message is None:
            message = f"Store error during {operation}"
            if path:
                message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class AuthenticationError(StoreError):
    """Raised when authentication to remote storage fails."""

    def __init__(self, endpoint: str, reason: str | None = None):
        super().__init__(
            "authenticate",
            message=f"Authentication failed for {endpoint}",
        )
        self.details["endpoint"] = endpoint
        if reason:
            self.details["reason"] = reason
        self.endpoint = endpoint
        self.reason = reason


def require(value: object, field: str) -> None:
    """Raise ValidationError if a required argument is None."""
    if value is None:
        raise ValidationError(field, "must not be None")
