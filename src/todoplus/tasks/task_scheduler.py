# src/todoplus/tasks/task_scheduler.py

from __future__ import annotations

"""
Sweep scheduler.

Owns the periodic background sweeps (archival, reminders) as asyncio tasks on
the server's event loop:
- every sweep ticks on a fixed interval, independent of how long a run takes,
- a tick that arrives while the previous run of the same sweep is still in
  progress is skipped,
- start()/stop() are explicit and run_once() triggers a single run, so tests
  can drive sweeps deterministically.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from ..core.ports import Clock, OutboundMessenger, TaskRepo
from .task_sweeps import run_archival_sweep, run_reminder_sweep

logger = logging.getLogger(__name__)

SweepFn = Callable[[], Awaitable[Any]]


@dataclass(slots=True)
class PeriodicSweep:
    name: str
    interval_seconds: float
    fn: SweepFn
    in_progress: bool = False
    runs: int = 0
    skipped: int = 0
    _ticker: asyncio.Task | None = None
    _inflight: set[asyncio.Task] = field(default_factory=set)

    async def run_once(self) -> bool:
        """Run the sweep now unless a previous run is still going. Returns False if skipped."""
        if self.in_progress:
            self.skipped += 1
            logger.warning("Sweep %s still running; tick skipped", self.name)
            return False

        self.in_progress = True
        try:
            await self.fn()
        except Exception:
            logger.exception("Sweep %s crashed", self.name)
        finally:
            self.in_progress = False
            self.runs += 1
        return True

    async def _tick_forever(self) -> None:
        sleep_s = max(0.01, float(self.interval_seconds))
        while True:
            await asyncio.sleep(sleep_s)
            run = asyncio.create_task(self.run_once(), name=f"sweep:{self.name}")
            self._inflight.add(run)
            run.add_done_callback(self._inflight.discard)

    @property
    def running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def start(self) -> None:
        if self.running:
            return
        self._ticker = asyncio.create_task(self._tick_forever(), name=f"ticker:{self.name}")
        logger.info("Sweep %s started (every %ss)", self.name, self.interval_seconds)

    async def stop(self) -> None:
        pending = [t for t in (self._ticker, *self._inflight) if t is not None]
        for t in pending:
            t.cancel()
        for t in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await t
        self._ticker = None
        self._inflight.clear()
        logger.info("Sweep %s stopped", self.name)


class SweepScheduler:
    """Process-wide owner of the periodic sweeps."""

    def __init__(self) -> None:
        self._sweeps: dict[str, PeriodicSweep] = {}

    def add(self, name: str, interval_seconds: float, fn: SweepFn) -> PeriodicSweep:
        if name in self._sweeps:
            raise ValueError(f"sweep {name!r} already registered")
        sweep = PeriodicSweep(name=name, interval_seconds=interval_seconds, fn=fn)
        self._sweeps[name] = sweep
        return sweep

    def get(self, name: str) -> PeriodicSweep:
        return self._sweeps[name]

    @property
    def names(self) -> list[str]:
        return list(self._sweeps)

    def start(self) -> None:
        for sweep in self._sweeps.values():
            sweep.start()

    async def stop(self) -> None:
        for sweep in self._sweeps.values():
            await sweep.stop()

    async def run_once(self, name: str) -> bool:
        return await self.get(name).run_once()


ARCHIVE_SWEEP = "archive"
REMINDER_SWEEP = "reminders"


def build_sweep_scheduler(
        task_store: TaskRepo,
        messenger: OutboundMessenger | None,
        *,
        clock: Clock,
        archive_interval_seconds: float = 60 * 60,
        archive_retention_days: int = 30,
        reminder_interval_seconds: float = 60,
) -> SweepScheduler:
    """
    Wire the archival and reminder sweeps.

    Without a messenger there is nowhere to deliver reminders, so only the
    archival sweep is registered.
    """
    scheduler = SweepScheduler()
    retention = timedelta(days=max(0, int(archive_retention_days)))

    async def archive() -> None:
        await run_archival_sweep(task_store, clock=clock, retention=retention)

    scheduler.add(ARCHIVE_SWEEP, archive_interval_seconds, archive)

    if messenger is None:
        logger.warning("No outbound messenger configured; reminder sweep disabled")
        return scheduler

    async def remind() -> None:
        await run_reminder_sweep(task_store, messenger, clock=clock)

    scheduler.add(REMINDER_SWEEP, reminder_interval_seconds, remind)
    return scheduler
