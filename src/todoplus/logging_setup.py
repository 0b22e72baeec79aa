# src/todoplus/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Console thresholds for third-party loggers, checked by prefix.
_THIRD_PARTY_MIN_LEVEL: tuple[tuple[str, int], ...] = (
    ("uvicorn.access", logging.WARNING),
    ("uvicorn", logging.INFO),
    ("nio.crypto", logging.ERROR),
    ("py.warnings", logging.ERROR),
)


class _ConsoleNoiseFilter(logging.Filter):
    """Server console: app logs pass, the Matrix sync loop only on WARNING+, other libraries per table."""

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("todoplus."):
            if name.startswith("todoplus.connectors.matrix_"):
                return record.levelno >= logging.WARNING
            return True

        for prefix, min_level in _THIRD_PARTY_MIN_LEVEL:
            if name == prefix or name.startswith(prefix + "."):
                return record.levelno >= min_level

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/todoplus",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install a filtered stderr handler and a full todoplus.log file handler on the root logger.

    Replaces existing root handlers. Returns the log file path.
    """
    log_file = Path(log_dir) / "todoplus.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    logging.captureWarnings(True)

    logging.getLogger("nio").setLevel(max(console_level, logging.INFO))
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file
