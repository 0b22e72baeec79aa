# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from todoplus.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("todoplus.tasks.task_store", logging.DEBUG, True),
        ("todoplus.connectors.matrix_connector", logging.INFO, False),
        ("todoplus.connectors.matrix_connector", logging.WARNING, True),
        ("uvicorn.error", logging.INFO, True),
        ("uvicorn.access", logging.INFO, False),
        ("nio.crypto.olm", logging.WARNING, False),
        ("py.warnings", logging.WARNING, False),
        ("sqlalchemy", logging.WARNING, False),
        ("sqlalchemy", logging.ERROR, True),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown


def test_setup_logging_writes_log_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        log_file = setup_logging(log_dir=tmp_path / "logs")
        logging.getLogger("todoplus.test").debug("hello file")
        for handler in root.handlers:
            handler.flush()

        assert log_file == tmp_path / "logs" / "todoplus.log"
        assert "hello file" in log_file.read_text("utf-8")
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in saved[0]:
            root.addHandler(handler)
        root.setLevel(saved[1])
        logging.captureWarnings(False)
