# src/todo_sync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the sync loop + connectivity watcher in a background thread,
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..sync.connectivity import start_sync_in_background

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    if state.runner is not None:
        state.runner.stop()
        state.runner.join(timeout=10.0)

    try:
        state.store.save()
    except OSError:
        logger.exception("Failed to save tasks on shutdown.")


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/todo_sync")
    setup_logging(log_dir=log_dir, console_level=console_level)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger.info("Starting %s...", getattr(settings, "app_name", "todo-sync"))

    state = create_initial_state(settings=settings)

    state.runner = start_sync_in_background(
        state.engine,
        state.client,
        interval_seconds=settings.poll_seconds,
    )
    if state.runner is None:
        logger.error("Sync loop failed to start; exiting.")
        return

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Not in the main thread, or the platform lacks SIGTERM.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Syncing in the background only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
