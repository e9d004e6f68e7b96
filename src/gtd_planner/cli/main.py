# src/gtd_planner/cli/main.py

"""
CLI entrypoint.

Initializes logging, loads the persisted store once, then runs the console REPL.
Every command that mutates the store is mirrored to the state slot as it commits.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..logging_setup import setup_logging
from .bootstrap import create_initial_state
from .console import run_console_loop

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)

    logger.info("Starting %s... (log: %s)", settings.app_name, log_file)
    state = create_initial_state(settings=settings)

    try:
        run_console_loop(state)
    finally:
        if state.repo is not None and hasattr(state.repo, "close"):
            state.repo.close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
