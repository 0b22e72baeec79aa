# src/todoplus/connectors/matrix_client.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse

logger = logging.getLogger(__name__)


def _session_path(store_dir: Path) -> Path:
    return store_dir / "session.json"


def _load_json(path: Path) -> dict[str, Any]:
    val = json.loads(path.read_text("utf-8"))
    if isinstance(val, dict):
        return val
    raise ValueError("Expected JSON object")


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    try:
        os.chmod(path, 0o600)
    except OSError:
        logger.debug("chmod 600 failed for %s", path, exc_info=True)


def restore_session(client: AsyncClient, session_file: Path) -> bool:
    """Load access token/device id saved by a previous login. Returns False if unusable."""
    if not session_file.exists():
        return False
    try:
        data = _load_json(session_file)
    except (OSError, ValueError):
        logger.warning("Unreadable Matrix session file %s", session_file, exc_info=True)
        return False

    access_token = data.get("access_token")
    user_id = data.get("user_id")
    device_id = data.get("device_id")
    if not access_token or not user_id or not device_id:
        logger.warning("Matrix session file %s is missing required fields", session_file)
        return False

    client.access_token = str(access_token)
    client.user_id = str(user_id)
    client.device_id = str(device_id)
    return True


async def create_matrix_client(settings) -> AsyncClient | None:
    """
    Create a logged-in Matrix AsyncClient for the reminder bot.

    The session (access token + device id) is persisted in session.json under
    the matrix store dir so restarts reuse the same device instead of logging
    in again. The file holds a credential and must stay out of version control.
    """
    homeserver = (getattr(settings, "matrix_homeserver", "") or "").strip()
    user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
    password = (getattr(settings, "matrix_password", "") or "").strip()
    store_dir = Path(getattr(settings, "matrix_store_path", Path(".local/todoplus/matrix_store")))

    if not homeserver or not user_id:
        logger.error("Matrix is not configured: set TODOPLUS_MATRIX_HOMESERVER and TODOPLUS_MATRIX_USER_ID")
        return None

    store_dir.mkdir(parents=True, exist_ok=True)
    session_file = _session_path(store_dir)

    client = AsyncClient(
        homeserver,
        user_id,
        config=AsyncClientConfig(store_sync_tokens=False),
    )

    if restore_session(client, session_file):
        logger.info("Matrix session restored for %s", client.user_id)
        return client

    if not password:
        logger.error(
            "Matrix session.json not found and password is not set. "
            "Set TODOPLUS_MATRIX_PASSWORD once to bootstrap a session."
        )
        await client.close()
        return None

    device_name = f"{getattr(settings, 'app_name', 'todoplus')} (Python)"
    logger.info("Logging in to Matrix to bootstrap a new session (device_name=%r)...", device_name)

    resp = await client.login(password=password, device_name=device_name)
    if not isinstance(resp, LoginResponse):
        logger.error("Matrix login failed: %r", resp)
        await client.close()
        return None

    try:
        _atomic_write_json(
            session_file,
            {"access_token": resp.access_token, "user_id": resp.user_id, "device_id": resp.device_id},
        )
        logger.info("Matrix session saved to %s (user=%s)", session_file, resp.user_id)
    except OSError:
        # The client is logged in; only the next restart has to log in again.
        logger.exception("Failed to write Matrix session file %s", session_file)

    return client
