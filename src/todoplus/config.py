# src/todoplus/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Settings are injectable: tests build their own object instead of reading the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

ENV_PREFIX = "TODOPLUS"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    from dotenv import load_dotenv

    load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- HTTP ----
    host: str
    port: int
    webapp_url: str
    cors_origins: List[str]
    expose_errors: bool

    # ---- Sweeps ----
    sweeps_enabled: bool
    archive_interval_seconds: int
    archive_retention_days: int
    reminder_interval_seconds: int

    # ---- Matrix ----
    matrix_enabled: bool
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_rooms: List[str]

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    matrix_store_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todoplus") or "todoplus"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        host = _env(_k("HOST"), "0.0.0.0")
        port = _env_int(_k("PORT"), _env_int("PORT", 3000))
        webapp_url = _env(_k("WEBAPP_URL"), _env("WEBAPP_URL", "")).strip()
        cors_origins = _env_list(_k("CORS_ORIGINS"), ["*"])
        expose_errors = _env_bool(_k("EXPOSE_ERRORS"), True)

        sweeps_enabled = _env_bool(_k("SWEEPS_ENABLED"), True)
        archive_interval_seconds = _env_int(_k("ARCHIVE_INTERVAL_SECONDS"), 60 * 60)
        archive_retention_days = _env_int(_k("ARCHIVE_RETENTION_DAYS"), 30)
        reminder_interval_seconds = _env_int(_k("REMINDER_INTERVAL_SECONDS"), 60)

        matrix_enabled = _env_bool(_k("MATRIX_ENABLED"), False)
        matrix_homeserver = _env(_k("MATRIX_HOMESERVER"), "").strip()
        matrix_user_id = _env(_k("MATRIX_USER_ID"), "").strip()
        matrix_password = _env(_k("MATRIX_PASSWORD"), "").strip()
        matrix_rooms = _env_list(_k("MATRIX_ROOMS"), [])

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todoplus"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "todo.sqlite3")
        matrix_store_path = _env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            host=host,
            port=port,
            webapp_url=webapp_url,
            cors_origins=cors_origins,
            expose_errors=expose_errors,
            sweeps_enabled=sweeps_enabled,
            archive_interval_seconds=archive_interval_seconds,
            archive_retention_days=archive_retention_days,
            reminder_interval_seconds=reminder_interval_seconds,
            matrix_enabled=matrix_enabled,
            matrix_homeserver=matrix_homeserver,
            matrix_user_id=matrix_user_id,
            matrix_password=matrix_password,
            matrix_rooms=matrix_rooms,
            data_dir=data_dir,
            db_path=db_path,
            matrix_store_path=matrix_store_path,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Load settings once (reads .env on first call)."""
    global _SETTINGS
    if _SETTINGS is None:
        _load_dotenv_if_available()
        _SETTINGS = Settings.from_env()
    return _SETTINGS
