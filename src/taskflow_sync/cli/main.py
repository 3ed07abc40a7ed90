# src/taskflow_sync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, runs the sync session (push channel,
reconcilers, timer ticking) in a background thread and the console REPL in
the main thread.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..logging_setup import setup_logging
from .console import ConsoleToaster, run_console_loop
from .runner import start_session_in_background

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=getattr(settings, "data_dir", ".local/taskflow"), console_level=console_level)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("socketio").setLevel(logging.WARNING)
    logging.getLogger("engineio").setLevel(logging.WARNING)

    logger.info("Starting %s...", getattr(settings, "app_name", "taskflow"))

    state = create_initial_state(settings=settings, toaster=ConsoleToaster())

    runner = start_session_in_background(state)
    if runner is None:
        logger.error("Could not start the sync session.")
        return

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        if settings.console_enabled:
            run_console_loop(state, runner)
            stop_main.set()
        else:
            try:
                signal.signal(signal.SIGINT, _handle_signal)
                signal.signal(signal.SIGTERM, _handle_signal)
            except (ValueError, OSError):
                logger.debug("Signal handlers not installed.", exc_info=True)
            logger.info("Console disabled. Running the sync session only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        runner.stop()
        runner.join(timeout=10.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
