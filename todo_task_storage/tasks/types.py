"""
Task value type.

A task is identified by its task_id and carries a title, a description
and a completion flag. Tasks are immutable; stores replace them
rather than mutate them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any


def _new_task_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Task:
    """A single to-do item.

    Attributes:
        title: Short title, may be empty
        description: Longer description, may be empty
        task_id: Unique identifier (generated if not given)
        completed: Whether the task is completed
    """

    title: str = ""
    description: str = ""
    task_id: str = field(default_factory=_new_task_id)
    completed: bool = False

    @property
    def is_active(self) -> bool:
        return not self.completed

    @property
    def is_empty(self) -> bool:
        """True when the task has neither title nor description."""
        return not self.title and not self.description

    @property
    def title_for_list(self) -> str:
        """Title to show in a list, falling back to the description."""
        return self.title or self.description

    def with_completed(self, completed: bool) -> Task:
        """Return a copy of this task with the completion flag set."""
        return replace(self, completed=completed)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for storage."""
        return {
            "task_id": self.task_id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Deserialize from dictionary."""
        return cls(
            title=data.get("title") or "",
            description=data.get("description") or "",
            task_id=data.get("task_id", data.get("id", "")),
            completed=bool(data.get("completed", False)),
        )


def task_id_of(task_or_id: Task | str) -> str:
    """Return the id of a task, or the argument itself when it is an id."""
    if isinstance(task_or_id, Task):
        return task_or_id.task_id
    return task_or_id
