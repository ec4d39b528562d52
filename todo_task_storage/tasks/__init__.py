"""Task types."""

from .types import Task, task_id_of

__all__ = ["Task", "task_id_of"]
