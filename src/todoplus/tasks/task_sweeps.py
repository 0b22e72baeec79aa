# src/todoplus/tasks/task_sweeps.py

from __future__ import annotations

"""
Background sweeps over the task table.

- Archival: drop completed tasks older than the retention window.
- Reminders: deliver due reminders through the outbound messenger.

Each sweep handles its own failures (log and carry on). Store calls run in a
worker thread so a locked database does not stall the event loop. The
scheduler decides when the sweeps run.
"""

import asyncio
import logging
from datetime import datetime, timedelta

from ..core.ports import Clock, OutboundMessenger, TaskRepo
from .task_models import Task

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(days=30)


def render_reminder_text(task: Task) -> str:
    return f"🔔 Reminder: {task.title}\n{task.description or ''}\nDue: {task.due_at or '—'}"


async def run_archival_sweep(
        task_store: TaskRepo,
        *,
        clock: Clock,
        retention: timedelta = DEFAULT_RETENTION,
) -> int:
    """Delete completed tasks created at or before now - retention. Returns rows removed (0 on failure)."""
    cutoff: datetime = clock() - retention
    try:
        removed = await asyncio.to_thread(task_store.delete_archivable, cutoff=cutoff)
    except Exception:
        logger.exception("Archive sweep failed cutoff=%s", cutoff)
        return 0

    if removed:
        logger.info("Archived %d completed task(s) created before %s", removed, cutoff)
    return removed


async def _dispatch_reminder(task_store: TaskRepo, messenger: OutboundMessenger, task: Task) -> bool:
    try:
        await messenger.send_text(text=render_reminder_text(task), to_user_id=task.owner_external_id)
    except Exception:
        logger.exception("Failed to send reminder task_id=%s to=%s", task.id, task.owner_external_id)
        return False

    # Only a confirmed send flips the flag; anything else is retried next tick.
    try:
        await asyncio.to_thread(task_store.mark_reminder_sent, task.id)
    except Exception:
        logger.exception("mark_reminder_sent failed task_id=%s", task.id)
        return False

    logger.info("Reminder sent task_id=%s to=%s", task.id, task.owner_external_id)
    return True


async def run_reminder_sweep(
        task_store: TaskRepo,
        messenger: OutboundMessenger,
        *,
        clock: Clock,
) -> int:
    """
    Dispatch every due, unsent reminder of an incomplete task.

    Tasks are sent independently; one failure does not stop the others.
    Returns the number of reminders confirmed as sent.
    """
    now = clock()
    try:
        due = await asyncio.to_thread(task_store.list_due_reminders, now=now)
    except Exception:
        logger.exception("Reminder check failed now=%s", now)
        return 0

    if not due:
        return 0

    logger.debug("Reminder sweep: %d due task(s)", len(due))
    results = await asyncio.gather(*(_dispatch_reminder(task_store, messenger, t) for t in due))
    return sum(1 for ok in results if ok)
