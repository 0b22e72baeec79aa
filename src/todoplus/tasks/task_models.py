# src/todoplus/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..core.errors import ClientInputError

TAG_SEPARATOR = ","

# Range of an SQLite INTEGER column.
SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1


class TaskFilter(StrEnum):
    """List filter accepted by GET /api/tasks."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    TODAY = "today"


def tags_to_db(tags: Any) -> str:
    """
    Flatten tags into the stored comma-separated form.

    Accepts a list of strings or an already comma-joined string.
    Tags are trimmed and empty ones dropped. A list item containing a comma
    is rejected since it could not be read back as one tag.
    """
    if tags is None:
        return ""
    if isinstance(tags, str):
        items: list[Any] = tags.split(TAG_SEPARATOR)
    elif isinstance(tags, (list, tuple)):
        if any(TAG_SEPARATOR in str(t) for t in tags if t is not None):
            raise ClientInputError("tags must not contain commas")
        items = list(tags)
    else:
        items = [tags]
    clean = [str(t).strip() for t in items if t is not None]
    return TAG_SEPARATOR.join(t for t in clean if t)


def tags_from_db(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(TAG_SEPARATOR) if t.strip()]


@dataclass(slots=True)
class Task:
    id: int
    owner_external_id: str
    title: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    priority: int = 0
    due_at: str | None = None
    created_at: str = ""
    completed: bool = False
    reminder_at: str | None = None
    reminder_sent: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ownerExternalId": self.owner_external_id,
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "priority": self.priority,
            "dueAt": self.due_at,
            "createdAt": self.created_at,
            "completed": self.completed,
            "reminderAt": self.reminder_at,
            "reminderSent": self.reminder_sent,
        }
