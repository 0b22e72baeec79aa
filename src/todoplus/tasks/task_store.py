# src/todoplus/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.clock import format_ts, local_now
from ..core.errors import NotFoundError
from ..core.ports import Clock
from .task_models import SQLITE_INT_MAX, SQLITE_INT_MIN, Task, tags_from_db
from .task_query import TaskQuery, build_task_query

logger = logging.getLogger(__name__)


def open_connection(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), timeout=30.0)
    conn.row_factory = sqlite3.Row
    with contextlib.suppress(sqlite3.Error):
        conn.execute("PRAGMA journal_mode=WAL")
    return conn


def _id_in_range(task_id: int) -> bool:
    return SQLITE_INT_MIN <= int(task_id) <= SQLITE_INT_MAX


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - multi-statement operations (update + reselect, check + delete)
      run inside that connection's transaction
    """

    def __init__(self, db_path: str | Path = "todo.sqlite3", *, clock: Clock = local_now) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        return open_connection(self._db_path)

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_external_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    tags TEXT NOT NULL DEFAULT '',
                    priority INTEGER NOT NULL DEFAULT 0,
                    due_at TEXT,
                    created_at TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    reminder_at TEXT,
                    reminder_sent INTEGER NOT NULL DEFAULT 0
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("tags", "TEXT NOT NULL DEFAULT ''")
            add_col("priority", "INTEGER NOT NULL DEFAULT 0")
            add_col("reminder_at", "TEXT")
            add_col("reminder_sent", "INTEGER NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner ON tasks(user_external_id, completed)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_reminder "
                "ON tasks(reminder_sent, completed, reminder_at)"
            )

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            owner_external_id=str(row["user_external_id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            tags=tags_from_db(row["tags"]),
            priority=int(row["priority"] or 0),
            due_at=row["due_at"],
            created_at=str(row["created_at"] or ""),
            completed=bool(row["completed"]),
            reminder_at=row["reminder_at"],
            reminder_sent=bool(row["reminder_sent"]),
        )

    def _fetch_one(self, conn: sqlite3.Connection, task_id: int) -> Task | None:
        if not _id_in_range(task_id):
            return None
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
        return self._row_to_task(row) if row else None

    def _in_transaction(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        conn = self._get_conn()
        try:
            with conn:
                return fn(conn)
        finally:
            conn.close()

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(self, values: dict[str, Any]) -> Task:
        """
        Insert a task built by task_mutator.build_new_task and return the stored row.
        """
        row = dict(values)
        row["created_at"] = format_ts(self._clock())
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)

        def insert(conn: sqlite3.Connection) -> Task:
            cur = conn.execute(f"INSERT INTO tasks ({columns}) VALUES ({placeholders})", tuple(row.values()))
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task = self._fetch_one(conn, rowid)
            if task is None:
                raise RuntimeError(f"Inserted task {rowid} vanished")
            return task

        task = self._in_transaction(insert)
        logger.debug("Task added id=%s owner=%s due_at=%s", task.id, task.owner_external_id, task.due_at)
        return task

    def get_task(self, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            return self._fetch_one(conn, task_id)
        finally:
            conn.close()

    def query_tasks(self, query: TaskQuery) -> list[Task]:
        sql, params = build_task_query(query, today=self._clock().date())
        conn = self._get_conn()
        try:
            return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def update_task(self, task_id: int, changes: dict[str, Any]) -> Task:
        """
        Apply column changes built by task_mutator.build_task_update.

        Raises NotFoundError when no row has the given id.
        """
        if not changes:
            raise ValueError("changes must not be empty")
        if not _id_in_range(task_id):
            raise NotFoundError("not found")
        assignments = ", ".join(f"{col} = ?" for col in changes)
        params = [*changes.values(), int(task_id)]

        def update(conn: sqlite3.Connection) -> Task | None:
            cur = conn.execute(f"UPDATE tasks SET {assignments} WHERE id = ?", params)
            if cur.rowcount == 0:
                return None
            return self._fetch_one(conn, task_id)

        task = self._in_transaction(update)
        if task is None:
            raise NotFoundError("not found")
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))
        return task

    def delete_task(self, task_id: int) -> None:
        def delete(conn: sqlite3.Connection) -> bool:
            if self._fetch_one(conn, task_id) is None:
                return False
            conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            return True

        if not self._in_transaction(delete):
            raise NotFoundError("not found")
        logger.debug("Task deleted id=%s", task_id)

    # ---- sweeps ----

    def delete_archivable(self, *, cutoff: datetime) -> int:
        """Delete completed tasks created at or before cutoff. Returns the number removed."""

        def purge(conn: sqlite3.Connection) -> int:
            cur = conn.execute(
                "DELETE FROM tasks WHERE completed = 1 AND datetime(created_at) <= datetime(?)",
                (format_ts(cutoff),),
            )
            return int(cur.rowcount)

        return self._in_transaction(purge)

    def list_due_reminders(self, *, now: datetime) -> list[Task]:
        """
        Tasks whose reminder is due and not yet delivered.

        Completed tasks never get reminders.
        """
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE reminder_at IS NOT NULL
                  AND reminder_sent = 0
                  AND completed = 0
                  AND datetime(reminder_at) <= datetime(?)
                ORDER BY reminder_at ASC, id ASC
                """,
                (format_ts(now),),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def mark_reminder_sent(self, task_id: int) -> bool:
        """Flag a delivered reminder. Returns False if the row is gone or was already flagged."""
        if not _id_in_range(task_id):
            return False

        def mark(conn: sqlite3.Connection) -> bool:
            cur = conn.execute(
                "UPDATE tasks SET reminder_sent = 1 WHERE id = ? AND reminder_sent = 0",
                (int(task_id),),
            )
            return cur.rowcount == 1

        return self._in_transaction(mark)
