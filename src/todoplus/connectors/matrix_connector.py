# src/todoplus/connectors/matrix_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from nio import (
    AsyncClient,
    InviteMemberEvent,
    JoinError,
    MatrixRoom,
    RoomCreateError,
    RoomMessageText,
    RoomSendError,
)

from ..cli.commands import CommandContext
from ..cli.commands import registry as command_registry
from ..core.errors import DeliveryError
from ..core.state import AppState
from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Any], Awaitable[AsyncClient | None]]


def _ms_now() -> int:
    return int(time.time() * 1000)


def _room_allowlist(settings_rooms: list[str]) -> set[str] | None:
    rooms = [r.strip() for r in (settings_rooms or []) if str(r).strip()]
    return set(rooms) if rooms else None


class MatrixConnector:
    """
    Matrix bot: answers slash commands and delivers outbound texts.

    Implements the OutboundMessenger port. A task's owner id is used directly
    as the delivery address:
    - "!room:server" is sent to that room,
    - "@user:server" goes to a direct room with that user (created on first use).

    Runs on the caller's event loop: start() spawns the sync loop as a task,
    stop() cancels it and closes the client.
    """

    def __init__(self, state: AppState, *, client_factory: ClientFactory = create_matrix_client) -> None:
        self._state = state
        self._client_factory = client_factory
        self._client: AsyncClient | None = None
        self._ready = asyncio.Event()
        self._sync_task: asyncio.Task | None = None
        self._dm_rooms: dict[str, str] = {}
        self._startup_ts = _ms_now()
        self._allowed_rooms = _room_allowlist(getattr(state.settings, "matrix_rooms", []) or [])

    # ---- OutboundMessenger ----

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        client = self._client
        if client is None or not self._ready.is_set():
            raise DeliveryError("Matrix client is not connected")

        target = (room_id or "").strip() or await self._resolve_room(client, (to_user_id or "").strip())
        resp = await client.room_send(
            room_id=target,
            message_type="m.room.message",
            content={"msgtype": "m.text", "body": text},
            ignore_unverified_devices=True,
        )
        if isinstance(resp, RoomSendError):
            raise DeliveryError(f"Matrix send to {target} failed: {resp.message}")

    async def _resolve_room(self, client: AsyncClient, address: str) -> str:
        if address.startswith("!"):
            return address
        if not address.startswith("@"):
            raise DeliveryError(f"Not a Matrix address: {address!r}")

        cached = self._dm_rooms.get(address)
        if cached:
            return cached

        for room_id, room in client.rooms.items():
            members = set(getattr(room, "users", {}) or {})
            if members == {client.user_id, address}:
                self._dm_rooms[address] = room_id
                return room_id

        resp = await client.room_create(is_direct=True, invite=[address])
        if isinstance(resp, RoomCreateError):
            raise DeliveryError(f"Cannot open a direct room with {address}: {resp.message}")
        logger.info("Opened direct room %s with %s", resp.room_id, address)
        self._dm_rooms[address] = resp.room_id
        return resp.room_id

    # ---- callbacks ----

    async def _reply(self, room_id: str, text: str) -> None:
        try:
            await self.send_text(text=text, room_id=room_id)
        except DeliveryError:
            logger.warning("Failed to send command reply to %s", room_id, exc_info=True)

    async def on_message(self, room: MatrixRoom, event: RoomMessageText) -> None:
        client = self._client
        if client is None:
            return

        # Ignore history replayed by the first sync.
        ts = getattr(event, "server_timestamp", None)
        if ts is not None and ts <= self._startup_ts:
            return

        if event.sender == client.user_id:
            return

        if self._allowed_rooms is not None and room.room_id not in self._allowed_rooms:
            return

        body = (event.body or "").strip()
        if not body.startswith("/"):
            return

        logger.info("Matrix <%s> %s: %r", room.display_name, event.sender, body)
        ctx = CommandContext(
            user_id=event.sender,
            room_id=room.room_id,
            display_name=room.user_name(event.sender),
        )
        try:
            resp = command_registry.handle(self._state, body, ctx)
        except Exception:
            logger.exception("Command handler crashed.")
            resp = "Internal error while handling a command."

        if resp:
            await self._reply(room.room_id, resp)

    async def on_invite(self, room: MatrixRoom, event: InviteMemberEvent) -> None:
        client = self._client
        if client is None or event.state_key != client.user_id or event.membership != "invite":
            return
        resp = await client.join(room.room_id)
        if isinstance(resp, JoinError):
            logger.warning("Failed to join %s: %s", room.room_id, resp.message)
        else:
            logger.info("Joined %s on invite from %s", room.room_id, event.sender)

    # ---- lifecycle ----

    async def start(self) -> None:
        if self._sync_task is not None:
            return
        self._sync_task = asyncio.create_task(self._run(), name="matrix-sync")

    async def wait_ready(self, timeout: float | None = None) -> None:
        """Block until the first sync finished (sending is possible from then on)."""
        await asyncio.wait_for(self._ready.wait(), timeout)

    async def _run(self) -> None:
        client = await self._client_factory(self._state.settings)
        if client is None:
            logger.error("Matrix client creation failed; connector will stop.")
            return

        self._client = client
        client.add_event_callback(self.on_message, RoomMessageText)
        client.add_event_callback(self.on_invite, InviteMemberEvent)

        try:
            logger.info("Matrix initial sync...")
            await client.sync(timeout=30000, full_state=True)
            self._ready.set()
            logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))
            await client.sync_forever(timeout=30000)
        except asyncio.CancelledError:
            logger.info("Matrix connector cancelled.")
            raise
        except Exception:
            logger.exception("Matrix connector crashed.")
        finally:
            self._ready.clear()

    async def stop(self) -> None:
        task = self._sync_task
        self._sync_task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        client = self._client
        self._client = None
        if client is not None:
            with contextlib.suppress(Exception):
                await client.close()
        logger.info("Matrix connector stopped.")
