# src/todo_sync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- loads the task file and rebuilds the pending queue from it,
- wires the TCP client and the sync engine into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings, load_server_endpoint
from ..core.state import AppState
from ..sync.client import CommandClient
from ..sync.engine import SyncEngine
from ..tasks.pending_queue import PendingQueue
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    endpoint = load_server_endpoint(
        getattr(settings, "server_config_path", None),
        override=getattr(settings, "server_override", None),
    )
    client = CommandClient(
        endpoint.host,
        endpoint.port,
        connect_timeout=settings.connect_timeout_seconds,
        read_timeout=settings.read_timeout_seconds,
    )

    store = TaskStore(settings.tasks_path)
    store.load()

    queue = PendingQueue()
    engine = SyncEngine(store, queue, client)
    engine.restore_pending()

    logger.info("State ready: %d tasks, %d pending, peer %s", len(store), len(queue), client.endpoint)
    return AppState(settings=settings, store=store, queue=queue, client=client, engine=engine)
