# src/todoplus/cli/bootstrap.py

"""
Composition root.

- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete stores and the identity verifier into AppState,
- starts/stops the background services (Matrix connector, sweeps) on the
  server's event loop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import get_settings
from ..core.clock import local_now
from ..core.ports import Clock
from ..core.state import AppState
from ..tasks.task_scheduler import SweepScheduler, build_sweep_scheduler
from ..tasks.task_store import TaskStore
from ..users.identity import TrustingIdentityVerifier
from ..users.user_store import UserStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, clock: Clock = local_now) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    return AppState(
        settings=settings,
        task_store=TaskStore(settings.db_path, clock=clock),
        user_store=UserStore(settings.db_path, clock=clock),
        verifier=TrustingIdentityVerifier(),
        clock=clock,
    )


@dataclass
class BackgroundServices:
    connector: object | None = None
    scheduler: SweepScheduler | None = None

    async def stop(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.stop()
        if self.connector is not None:
            await self.connector.stop()  # type: ignore[attr-defined]


async def start_background_services(state: AppState) -> BackgroundServices:
    """Start the Matrix connector and the sweeps according to settings."""
    settings = state.settings
    services = BackgroundServices()

    if getattr(settings, "matrix_enabled", False):
        from ..connectors.matrix_connector import MatrixConnector

        connector = MatrixConnector(state)
        await connector.start()
        state.messenger = connector
        services.connector = connector
    else:
        logger.info("Matrix connector disabled via settings.")

    if getattr(settings, "sweeps_enabled", True):
        scheduler = build_sweep_scheduler(
            state.task_store,
            state.messenger,
            clock=state.clock,
            archive_interval_seconds=settings.archive_interval_seconds,
            archive_retention_days=settings.archive_retention_days,
            reminder_interval_seconds=settings.reminder_interval_seconds,
        )
        scheduler.start()
        services.scheduler = scheduler
    else:
        logger.info("Background sweeps disabled via settings.")

    return services
