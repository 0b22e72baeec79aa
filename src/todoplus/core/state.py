# src/todoplus/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .clock import local_now
from .ports import Clock, IdentityVerifier, OutboundMessenger

if TYPE_CHECKING:
    from ..tasks.task_store import TaskStore
    from ..users.user_store import UserStore


@dataclass
class AppState:
    """Everything a request handler, a sweep or a connector needs, wired once at startup."""

    settings: Any
    task_store: TaskStore
    user_store: UserStore
    verifier: IdentityVerifier
    clock: Clock = local_now
    # Set by the connector when the chat transport is up; None disables reminders.
    messenger: OutboundMessenger | None = None
