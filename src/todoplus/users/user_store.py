# src/todoplus/users/user_store.py

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..core.clock import format_ts, local_now
from ..core.ports import Clock
from ..tasks.task_store import open_connection

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Identity:
    id: int
    external_id: str
    first_name: str
    last_name: str
    handle: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "externalId": self.external_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "handle": self.handle,
            "createdAt": self.created_at,
        }


class UserStore:
    """
    Chat-platform identities.

    Rows are written once: a second registration of the same external id is
    ignored, so names captured at first sign-in are never refreshed.
    """

    def __init__(self, db_path: str | Path = "todo.sqlite3", *, clock: Clock = local_now) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._ensure_schema()

    def _get_conn(self) -> sqlite3.Connection:
        return open_connection(self._db_path)

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    external_id TEXT NOT NULL UNIQUE,
                    first_name TEXT NOT NULL DEFAULT '',
                    last_name TEXT NOT NULL DEFAULT '',
                    handle TEXT NOT NULL DEFAULT '',
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_identity(row: sqlite3.Row) -> Identity:
        return Identity(
            id=int(row["id"]),
            external_id=str(row["external_id"]),
            first_name=str(row["first_name"] or ""),
            last_name=str(row["last_name"] or ""),
            handle=str(row["handle"] or ""),
            created_at=str(row["created_at"] or ""),
        )

    def ensure_user(
        self,
        external_id: str,
        *,
        first_name: str = "",
        last_name: str = "",
        handle: str = "",
    ) -> Identity:
        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute(
                    """
                    INSERT OR IGNORE INTO users (external_id, first_name, last_name, handle, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (external_id, first_name, last_name, handle, format_ts(self._clock())),
                )
                if cur.rowcount:
                    logger.info("Registered identity external_id=%s", external_id)
                row = conn.execute("SELECT * FROM users WHERE external_id = ?", (external_id,)).fetchone()
            if row is None:
                raise RuntimeError(f"Identity {external_id} missing after insert")
            return self._row_to_identity(row)
        finally:
            conn.close()

    def get_user(self, external_id: str) -> Identity | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM users WHERE external_id = ?", (external_id,)).fetchone()
            return self._row_to_identity(row) if row else None
        finally:
            conn.close()
