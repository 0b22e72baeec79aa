# src/todoplus/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the chat transport, storage and identity checks swappable and makes testing easier.
"""

from datetime import datetime
from typing import Any, Awaitable, Callable, Protocol

Clock = Callable[[], datetime]
# Returns "now" as a naive local datetime.


class OutboundMessenger(Protocol):
    """
    Connector-side port: how services (reminder sweep) send text outward.

    The connector decides how to interpret:
    - room_id (can be None)
    - to_user_id (can be None)
    Returning normally means the platform confirmed the send; failures raise.
    """

    def send_text(
            self,
            *,
            text: str,
            room_id: str | None = None,
            to_user_id: str | None = None,
    ) -> Awaitable[None]: ...


class IdentityVerifier(Protocol):
    """
    Turns a client-supplied identity into a verified external id.

    Raises ClientInputError when the identity is missing or rejected.
    """

    def verify(self, raw_external_id: Any) -> str: ...


class TaskRepo(Protocol):
    # Sweep API
    def delete_archivable(self, *, cutoff: datetime) -> int: ...
    def list_due_reminders(self, *, now: datetime) -> list[Any]: ...
    def mark_reminder_sent(self, task_id: int) -> bool: ...
