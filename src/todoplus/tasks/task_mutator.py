# src/todoplus/tasks/task_mutator.py

"""
Write-side rules for tasks.

- Inserts: owner + non-empty title are required, everything else has a default.
- Updates: only whitelisted fields are applied. A field counts as present when
  its key is in the payload, so falsy values such as {"completed": 0} apply.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from ..core.clock import parse_ts
from ..core.errors import ClientInputError
from .task_models import SQLITE_INT_MAX, SQLITE_INT_MIN, tags_to_db


def _title(value: Any) -> str:
    title = "" if value is None else str(value).strip()
    if not title:
        raise ClientInputError("title required")
    return title


def _description(value: Any) -> str:
    return "" if value is None else str(value)


def _priority(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ClientInputError("priority must be an integer")
    try:
        priority = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ClientInputError("priority must be an integer") from None
    if not SQLITE_INT_MIN <= priority <= SQLITE_INT_MAX:
        raise ClientInputError("priority is out of range")
    return priority


def _flag(name: str) -> Callable[[Any], int]:
    def convert(value: Any) -> int:
        if value is None:
            return 0
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, (int, float)):
            return 1 if value else 0
        if isinstance(value, str):
            raw = value.strip().lower()
            if raw in {"1", "true", "yes", "on"}:
                return 1
            if raw in {"0", "false", "no", "off", ""}:
                return 0
        raise ClientInputError(f"{name} must be a boolean")

    return convert


def _timestamp(name: str) -> Callable[[Any], str | None]:
    def convert(value: Any) -> str | None:
        return parse_ts(value, field_name=name)

    return convert


@dataclass(frozen=True, slots=True)
class UpdatableField:
    column: str
    convert: Callable[[Any], Any]


# JSON key -> column. snake_case aliases are accepted for older clients.
UPDATABLE_FIELDS: dict[str, UpdatableField] = {
    "title": UpdatableField("title", _title),
    "description": UpdatableField("description", _description),
    "tags": UpdatableField("tags", tags_to_db),
    "priority": UpdatableField("priority", _priority),
    "dueAt": UpdatableField("due_at", _timestamp("dueAt")),
    "completed": UpdatableField("completed", _flag("completed")),
    "reminderAt": UpdatableField("reminder_at", _timestamp("reminderAt")),
    "reminderSent": UpdatableField("reminder_sent", _flag("reminderSent")),
}
_ALIASES = {
    "due_at": "dueAt",
    "reminder_at": "reminderAt",
    "reminder_sent": "reminderSent",
}


def build_task_update(payload: Mapping[str, Any]) -> dict[str, Any]:
    """
    Intersect the payload with the whitelist and normalize each value.

    Returns column -> stored value. Raises ClientInputError when nothing
    updatable is present.
    """
    changes: dict[str, Any] = {}
    for key, value in payload.items():
        field = UPDATABLE_FIELDS.get(_ALIASES.get(key, key))
        if field is None:
            continue
        changes[field.column] = field.convert(value)

    if not changes:
        raise ClientInputError("no fields to update")
    return changes


def build_new_task(owner_external_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Column values for an insert (created_at is stamped by the store)."""
    if not owner_external_id:
        raise ClientInputError("externalId required")

    def pick(key: str) -> Any:
        if key in payload:
            return payload[key]
        for alias, canonical in _ALIASES.items():
            if canonical == key and alias in payload:
                return payload[alias]
        return None

    return {
        "user_external_id": owner_external_id,
        "title": _title(payload.get("title")),
        "description": _description(payload.get("description")),
        "tags": tags_to_db(payload.get("tags")),
        "priority": _priority(payload.get("priority")),
        "due_at": parse_ts(pick("dueAt"), field_name="dueAt"),
        "reminder_at": parse_ts(pick("reminderAt"), field_name="reminderAt"),
    }
