# src/todo_sync/tasks/pending_queue.py

from __future__ import annotations

from collections.abc import Iterator

from .task_models import PendingMutation, Task


class PendingQueue:
    """
    FIFO of mutations made while the peer was unreachable.

    Owned by the sync engine. No network or storage logic lives here.
    """

    def __init__(self, items: list[PendingMutation] | None = None) -> None:
        self._items: list[PendingMutation] = list(items or [])

    def enqueue(self, mutation: PendingMutation) -> None:
        self._items.append(mutation)

    def drain(self) -> list[PendingMutation]:
        """Ordered copy of the queue. Does not clear it."""
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def discard_matching(self, task: Task) -> int:
        """Drop every queued mutation for the task's identity key."""
        before = len(self._items)
        self._items = [m for m in self._items if not m.task.matches(task)]
        return before - len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[PendingMutation]:
        return iter(list(self._items))
