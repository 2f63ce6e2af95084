# src/todo_sync/core/state.py

from __future__ import annotations

from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from ..sync.client import CommandClient
from ..sync.engine import SyncEngine
from ..tasks.pending_queue import PendingQueue
from ..tasks.task_models import Task
from ..tasks.task_store import TaskStore

if TYPE_CHECKING:
    from ..sync.connectivity import SyncBackgroundRunner

T = TypeVar("T")


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    store: TaskStore
    queue: PendingQueue
    client: CommandClient
    engine: SyncEngine

    runner: SyncBackgroundRunner | None = None

    # Last numbered listing shown in the console (/done 2 refers to it).
    last_listing: list[Task] = field(default_factory=list)

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run an engine coroutine on the sync loop and wait for its result."""
        if self.runner is None:
            coro.close()
            raise RuntimeError("sync loop is not running")
        return self.runner.run(coro, timeout=timeout)
