# src/todo_sync/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "todo_sync.log"

# Console floor per logger prefix (longest prefix wins). The file gets everything.
CONSOLE_FLOORS: dict[str, int] = {
    "todo_sync": logging.NOTSET,
    "todo_sync.sync.client": logging.WARNING,
    "todo_sync.sync.connectivity": logging.WARNING,
    "todo_sync.tasks.snapshot": logging.WARNING,
    "py.warnings": logging.ERROR,
}


def console_floor(name: str, floors: dict[str, int] = CONSOLE_FLOORS) -> int:
    """Minimum level for logger `name` on the console; ERROR for anything unlisted."""
    best: str | None = None
    for prefix in floors:
        if name == prefix or name.startswith(prefix + "."):
            if best is None or len(prefix) > len(best):
                best = prefix
    return floors[best] if best is not None else logging.ERROR


class _ConsoleNoiseFilter(logging.Filter):
    """Keeps the REPL readable: per-exchange chatter stays in the log file."""

    def __init__(self, floors: dict[str, int] | None = None) -> None:
        super().__init__()
        self._floors = dict(CONSOLE_FLOORS if floors is None else floors)

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= console_floor(record.name, self._floors)


def setup_logging(
    *,
    log_dir: str | Path = ".local/todo_sync",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Console (stderr, filtered) plus a full log file in log_dir.

    Call once, before the first log line. Returns the log file path.
    """
    log_file = Path(log_dir) / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.addFilter(_ConsoleNoiseFilter())

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in (console, file_handler):
        h.setFormatter(fmt)
        root.addHandler(h)

    logging.captureWarnings(True)
    return log_file
