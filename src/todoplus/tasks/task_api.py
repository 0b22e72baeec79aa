# src/todoplus/tasks/task_api.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..core.errors import ClientInputError
from ..core.state import AppState
from ..users.user_store import Identity
from .task_models import Task
from .task_mutator import build_new_task, build_task_update
from .task_query import TaskQuery, parse_filter

logger = logging.getLogger(__name__)


def _text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return "" if value is None else str(value).strip()


def authenticate(state: AppState, payload: Mapping[str, Any]) -> Identity:
    """Register the caller's chat identity (first call wins) and return it."""
    external_id = state.verifier.verify(payload.get("externalId"))
    return state.user_store.ensure_user(
        external_id,
        first_name=_text(payload, "firstName"),
        last_name=_text(payload, "lastName"),
        handle=_text(payload, "handle"),
    )


def create_task(state: AppState, payload: Mapping[str, Any]) -> Task:
    owner = state.verifier.verify(payload.get("externalId"))
    task = state.task_store.add_task(build_new_task(owner, payload))
    logger.info("Task created id=%s owner=%s", task.id, owner)
    return task


def list_tasks(
    state: AppState,
    *,
    external_id: Any,
    filter_name: str | None = None,
    search: str | None = None,
) -> list[Task]:
    owner = state.verifier.verify(external_id)
    query = TaskQuery(
        owner_external_id=owner,
        filter=parse_filter(filter_name),
        search=(search or "").strip(),
    )
    return state.task_store.query_tasks(query)


def update_task(state: AppState, task_id: int, payload: Mapping[str, Any]) -> Task:
    if not isinstance(payload, Mapping):
        raise ClientInputError("body must be an object")
    changes = build_task_update(payload)
    return state.task_store.update_task(task_id, changes)


def delete_task(state: AppState, task_id: int) -> None:
    state.task_store.delete_task(task_id)
    logger.info("Task deleted id=%s", task_id)
