# src/todoplus/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then serves the REST API with uvicorn.
The Matrix connector and the sweeps run as tasks on the same event loop
(started by the app lifespan).
"""

from __future__ import annotations

import logging

import uvicorn

from ..api.app import create_app
from .bootstrap import create_initial_state
from ..config import get_settings
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s on %s:%s...", settings.app_name, settings.host, settings.port)

    state = create_initial_state(settings=settings)
    app = create_app(state)

    # log_config=None keeps uvicorn on the root handlers configured above.
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    logger.info("Bye.")


if __name__ == "__main__":
    main()
