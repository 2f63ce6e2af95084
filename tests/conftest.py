# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_sync.core.state import AppState
from todo_sync.sync.connectivity import start_sync_in_background
from todo_sync.sync.engine import SyncEngine
from todo_sync.tasks.pending_queue import PendingQueue
from todo_sync.tasks.task_store import TaskStore

from .fakes import FakeTransport


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todo-sync-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        tasks_path=tmp_path / "tasks.json",
        server_config_path=tmp_path / "config.txt",
        server_override=None,
        connect_timeout_seconds=0.5,
        read_timeout_seconds=1.0,
        poll_seconds=0.05,
    )


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "tasks.json")


@pytest.fixture()
def queue() -> PendingQueue:
    return PendingQueue()


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def engine(store: TaskStore, queue: PendingQueue, transport: FakeTransport) -> SyncEngine:
    return SyncEngine(store, queue, transport)


@pytest.fixture()
def state(settings, store, queue, transport, engine) -> Iterator[AppState]:
    """
    AppState wired with the fake transport and a real background sync loop
    (connectivity watcher disabled, tests drive the signals).
    """
    runner = start_sync_in_background(engine, transport, watch=False)
    assert runner is not None
    app = AppState(settings=settings, store=store, queue=queue, client=transport, engine=engine, runner=runner)
    try:
        yield app
    finally:
        runner.stop()
        runner.join(timeout=5.0)
