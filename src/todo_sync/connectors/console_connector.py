# src/todo_sync/connectors/console_connector.py

from __future__ import annotations

import concurrent.futures
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (peer=%s).", state.client.endpoint)
    _print_ts("[CONSOLE] Use /help for commands, /list to see today's tasks, /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (e.g. a slow peer).
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        # Plain text is a shortcut for "/add today <text>".
        line = user_input if user_input.startswith("/") else f"/add today {user_input}"

        try:
            response = command_registry.handle(state, line, emit=emit)
        except concurrent.futures.TimeoutError:
            logger.warning("Command timed out: %s", line)
            response = "The command is still running in the background; check /status later."
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is not None:
            _print_ts(response)

    logger.info("Console connector finished.")
