# src/todoplus/tasks/task_query.py

"""
Read-side query builder for the task list.

Builds one parameterized SELECT for (owner, filter, search). Ordering:
tasks without a due date go last, the rest ascend by due date, and equal due
dates put higher priority first.

Search text is wrapped in %...% as-is: LIKE wildcards typed by the user
("%", "_") keep their pattern meaning.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from ..core.errors import ClientInputError
from .task_models import TaskFilter

_ORDER_BY = "ORDER BY CASE WHEN due_at IS NULL THEN 1 ELSE 0 END, due_at ASC, priority DESC, id ASC"


@dataclass(frozen=True, slots=True)
class TaskQuery:
    owner_external_id: str
    filter: TaskFilter = TaskFilter.ALL
    search: str = ""


def parse_filter(raw: str | None) -> TaskFilter:
    if raw is None or not raw.strip():
        return TaskFilter.ALL
    try:
        return TaskFilter(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(f.value for f in TaskFilter)
        raise ClientInputError(f"filter must be one of: {allowed}") from None


def build_task_query(query: TaskQuery, *, today: date) -> tuple[str, list[Any]]:
    if not query.owner_external_id:
        raise ClientInputError("externalId required")

    where = ["user_external_id = ?"]
    params: list[Any] = [query.owner_external_id]

    if query.filter == TaskFilter.ACTIVE:
        where.append("completed = 0")
    elif query.filter == TaskFilter.COMPLETED:
        where.append("completed = 1")
    elif query.filter == TaskFilter.TODAY:
        where.append("date(due_at) = ?")
        params.append(today.isoformat())

    if query.search:
        pattern = f"%{query.search}%"
        where.append("(title LIKE ? OR description LIKE ? OR tags LIKE ?)")
        params.extend([pattern, pattern, pattern])

    sql = f"SELECT * FROM tasks WHERE {' AND '.join(where)} {_ORDER_BY}"
    return sql, params
