# tests/test_task_sweeps.py

from __future__ import annotations

import threading
from datetime import datetime

import pytest

from todoplus.tasks.task_models import Task
from todoplus.tasks.task_mutator import build_new_task
from todoplus.tasks.task_store import TaskStore
from todoplus.tasks.task_sweeps import render_reminder_text, run_archival_sweep, run_reminder_sweep

from .fakes import FakeClock, FakeMessenger


def _add(store: TaskStore, owner: str = "@alice:example.org", **payload) -> Task:
    payload.setdefault("title", "task")
    return store.add_task(build_new_task(owner, payload))


def test_render_reminder_text() -> None:
    task = Task(id=1, owner_external_id="42", title="Pay rent", description="landlord", due_at="2026-10-18 09:00:00")
    assert render_reminder_text(task) == "🔔 Reminder: Pay rent\nlandlord\nDue: 2026-10-18 09:00:00"

    bare = Task(id=2, owner_external_id="42", title="Stretch")
    assert render_reminder_text(bare) == "🔔 Reminder: Stretch\n\nDue: —"


@pytest.mark.asyncio
async def test_reminder_sweep_sends_once_and_marks_sent(task_store: TaskStore, clock: FakeClock) -> None:
    task = _add(task_store, title="Pay rent", reminderAt="2026-10-17T11:00")
    messenger = FakeMessenger()

    assert await run_reminder_sweep(task_store, messenger, clock=clock) == 1
    assert await run_reminder_sweep(task_store, messenger, clock=clock) == 0

    assert len(messenger.sent) == 1
    assert messenger.sent[0].to_user_id == "@alice:example.org"
    assert messenger.sent[0].text.startswith("🔔 Reminder: Pay rent")
    assert task_store.get_task(task.id).reminder_sent is True


@pytest.mark.asyncio
async def test_failed_delivery_is_retried_next_tick(task_store: TaskStore, clock: FakeClock) -> None:
    task = _add(task_store, reminderAt="2026-10-17T11:00")
    messenger = FakeMessenger(fail=True)

    assert await run_reminder_sweep(task_store, messenger, clock=clock) == 0
    assert task_store.get_task(task.id).reminder_sent is False

    messenger.fail = False
    clock.advance(minutes=1)
    assert await run_reminder_sweep(task_store, messenger, clock=clock) == 1

    assert messenger.attempts == 2
    assert len(messenger.sent) == 1
    assert task_store.get_task(task.id).reminder_sent is True


@pytest.mark.asyncio
async def test_reminder_sweep_skips_future_and_completed(task_store: TaskStore, clock: FakeClock) -> None:
    _add(task_store, reminderAt="2026-10-17T12:01")
    done = _add(task_store, reminderAt="2026-10-17T08:00")
    task_store.update_task(done.id, {"completed": 1})
    messenger = FakeMessenger()

    assert await run_reminder_sweep(task_store, messenger, clock=clock) == 0
    assert messenger.attempts == 0


@pytest.mark.asyncio
async def test_reminder_sweep_survives_store_failure(clock: FakeClock) -> None:
    class BrokenRepo:
        def list_due_reminders(self, *, now: datetime):
            raise RuntimeError("disk gone")

    messenger = FakeMessenger()

    assert await run_reminder_sweep(BrokenRepo(), messenger, clock=clock) == 0
    assert messenger.attempts == 0


@pytest.mark.asyncio
async def test_archival_sweep_uses_retention_window(task_store: TaskStore, clock: FakeClock) -> None:
    clock.now = datetime(2026, 9, 17, 12, 0, 0)
    old = _add(task_store, title="old")
    task_store.update_task(old.id, {"completed": 1})
    clock.now = datetime(2026, 10, 17, 12, 0, 0)

    assert await run_archival_sweep(task_store, clock=clock) == 1
    assert task_store.get_task(old.id) is None


@pytest.mark.asyncio
async def test_archival_sweep_swallows_store_errors(clock: FakeClock) -> None:
    class BrokenRepo:
        def delete_archivable(self, *, cutoff: datetime) -> int:
            raise RuntimeError("locked")

    assert await run_archival_sweep(BrokenRepo(), clock=clock) == 0


@pytest.mark.asyncio
async def test_store_calls_leave_the_event_loop_free(clock: FakeClock) -> None:
    loop_thread = threading.get_ident()
    seen: list[int] = []

    class RecordingRepo:
        def list_due_reminders(self, *, now: datetime):
            seen.append(threading.get_ident())
            return []

        def delete_archivable(self, *, cutoff: datetime) -> int:
            seen.append(threading.get_ident())
            return 0

    await run_reminder_sweep(RecordingRepo(), FakeMessenger(), clock=clock)
    await run_archival_sweep(RecordingRepo(), clock=clock)

    assert len(seen) == 2
    assert loop_thread not in seen
