# src/todoplus/core/clock.py

"""
Local wall-clock helpers.

Timestamps are persisted as "YYYY-MM-DD HH:MM:SS" in local time so that plain
string comparison in SQL matches chronological order.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from .errors import ClientInputError

TS_FORMAT = "%Y-%m-%d %H:%M:%S"


def local_now() -> datetime:
    return datetime.now().replace(microsecond=0)


def format_ts(dt: datetime) -> str:
    return dt.strftime(TS_FORMAT)


def parse_ts(value: Any, *, field_name: str) -> str | None:
    """
    Normalize an incoming timestamp into the stored format.

    Accepts anything datetime.fromisoformat understands ("2026-10-17",
    "2026-10-17T09:30", "2026-10-17 09:30:00+02:00"). Offset-aware values are
    converted to local time. None / "" mean "no timestamp".
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            raise ClientInputError(f"{field_name} is not a valid timestamp") from None
    else:
        raise ClientInputError(f"{field_name} must be a timestamp string")

    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return format_ts(dt.replace(microsecond=0))
