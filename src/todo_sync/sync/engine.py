# src/todo_sync/sync/engine.py

from __future__ import annotations

"""
Sync engine.

The single owner of the local task store and the pending-mutation queue. Every
operation (user mutation, connectivity event, resync) runs under one asyncio
lock, so the store is never mutated by two callers at once. Network exchanges
happen inside that sequence and their results are applied there.

States:
- offline: mutations are applied locally and queued
- syncing: replaying the queue and fetching a full snapshot
- online:  mutations are sent to the peer right away

Reconnect (offline -> syncing):
1. replay queued mutations in FIFO order, one at a time; on the first failure
   stop, keep the whole queue and go offline
2. GETALL and replace the store with the snapshot ("last snapshot wins")
3. a failure in step 2 goes offline and leaves the queue as step 1 left it
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum

from ..core.ports import CommandTransport, TaskRepo
from ..tasks.pending_queue import PendingQueue
from ..tasks.snapshot import parse_snapshot_report
from ..tasks.task_models import MutationKind, PendingKind, PendingMutation, Task
from .client import CommandConnectionError
from .protocol import GETALL, encode_mutation

logger = logging.getLogger(__name__)


class SyncState(StrEnum):
    OFFLINE = "offline"
    SYNCING = "syncing"
    ONLINE = "online"


class ConnectivitySignal(StrEnum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


StateListener = Callable[[SyncState], None]


@dataclass(slots=True, frozen=True)
class SyncResult:
    """Outcome of one reconnect cycle. Connection errors are reported, not raised."""

    replayed: int
    tasks: int | None = None
    error: CommandConnectionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True, frozen=True)
class SyncStatus:
    state: SyncState
    pending: int
    tasks: int
    endpoint: str
    last_sync_at: datetime | None


class SyncEngine:
    def __init__(
        self,
        store: TaskRepo,
        queue: PendingQueue,
        transport: CommandTransport,
        *,
        state: SyncState = SyncState.OFFLINE,
    ) -> None:
        self._store = store
        self._queue = queue
        self._transport = transport
        self._state = state
        self._lock = asyncio.Lock()
        self._resync_running = False
        self._listeners: list[StateListener] = []
        self._last_sync_at: datetime | None = None

    # ---- state ----

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def store(self) -> TaskRepo:
        return self._store

    @property
    def queue(self) -> PendingQueue:
        return self._queue

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set_state(self, new: SyncState) -> None:
        if new is self._state:
            return
        old = self._state
        self._state = new
        logger.info("Sync state %s -> %s", old.value, new.value)
        for listener in list(self._listeners):
            try:
                listener(new)
            except Exception:
                logger.exception("State listener failed")

    def status(self) -> SyncStatus:
        return SyncStatus(
            state=self._state,
            pending=len(self._queue),
            tasks=len(self._store.visible()),
            endpoint=self._transport.endpoint,
            last_sync_at=self._last_sync_at,
        )

    def restore_pending(self) -> int:
        """
        Rebuild the queue from pending tags persisted in the store.

        Called once at startup, before any trigger runs.
        """
        restored = 0
        for task in sorted(self._store.all(), key=lambda t: t.last_modified):
            if task.pending is PendingKind.UNCOMMITTED_CREATE:
                self._queue.enqueue(PendingMutation.create(task))
                restored += 1
            elif task.pending is PendingKind.UNCOMMITTED_DELETE:
                self._queue.enqueue(PendingMutation.delete(task))
                restored += 1
        if restored:
            logger.info("Restored %d pending mutations from the store", restored)
        return restored

    # ---- triggers ----

    async def on_connectivity(self, signal: ConnectivitySignal) -> SyncResult | None:
        if signal is ConnectivitySignal.DISCONNECTED:
            self._set_state(SyncState.OFFLINE)
            return None
        return await self.resync()

    async def on_resume(self) -> SyncResult | None:
        return await self.resync()

    async def refresh(self) -> SyncResult | None:
        return await self.resync()

    async def resync(self) -> SyncResult | None:
        """
        Run the reconnect algorithm.

        Returns None when another resync is already in flight (the request is
        dropped, not queued).
        """
        if self._resync_running:
            logger.debug("Resync already in flight; ignoring request")
            return None

        self._resync_running = True
        try:
            async with self._lock:
                return await self._resync_locked()
        finally:
            self._resync_running = False

    async def _resync_locked(self) -> SyncResult:
        self._set_state(SyncState.SYNCING)

        batch = self._queue.drain()
        replayed = 0
        for mutation in batch:
            try:
                await self._transport.execute(encode_mutation(mutation))
            except CommandConnectionError as exc:
                logger.warning(
                    "Replay aborted at %d/%d (%s %s): %s",
                    replayed + 1,
                    len(batch),
                    mutation.kind.value,
                    mutation.task.name,
                    exc,
                )
                self._set_state(SyncState.OFFLINE)
                return SyncResult(replayed=replayed, error=exc)
            replayed += 1

        if batch:
            self._queue.clear()
            self._confirm_replayed(batch)
            self._store.save()
            logger.info("Replayed %d pending mutations", replayed)

        try:
            response = await self._transport.execute(GETALL)
        except CommandConnectionError as exc:
            logger.warning("GETALL failed: %s", exc)
            self._set_state(SyncState.OFFLINE)
            return SyncResult(replayed=replayed, error=exc)

        self._store.save_raw_response(response)
        report = parse_snapshot_report(response)
        if report.bad_headers or report.dropped_lines:
            logger.info(
                "Snapshot anomalies: bad_headers=%d dropped_lines=%d",
                report.bad_headers,
                report.dropped_lines,
            )

        self._store.replace_all(report.tasks)
        self._store.save()
        self._last_sync_at = datetime.now()
        logger.info("Resync complete: %d tasks", len(report.tasks))

        self._set_state(SyncState.ONLINE)
        return SyncResult(replayed=replayed, tasks=len(report.tasks))

    def _confirm_replayed(self, batch: list[PendingMutation]) -> None:
        for mutation in batch:
            current = self._store.get(mutation.task.name, mutation.task.date)
            if current is None:
                continue
            if mutation.kind is MutationKind.DELETE:
                if current.pending is PendingKind.UNCOMMITTED_DELETE:
                    self._store.remove(current)
            elif current.pending is PendingKind.UNCOMMITTED_CREATE:
                self._store.upsert(current.evolve(pending=PendingKind.NONE, last_modified=current.last_modified))

    # ---- mutations ----

    async def _send_or_enqueue(self, mutation: PendingMutation) -> bool:
        """
        Deliver one mutation. True if the peer accepted it.

        Offline, or on a connection error, the mutation is queued instead.
        """
        if self._state is not SyncState.ONLINE:
            self._queue.enqueue(mutation)
            logger.info(
                "Queued %s %r while %s (pending=%d)",
                mutation.kind.value,
                mutation.task.name,
                self._state.value,
                len(self._queue),
            )
            return False

        try:
            await self._transport.execute(encode_mutation(mutation))
        except CommandConnectionError as exc:
            self._queue.enqueue(mutation)
            logger.warning("Sending %s %r failed, queued for retry: %s", mutation.kind.value, mutation.task.name, exc)
            self._set_state(SyncState.OFFLINE)
            return False
        return True

    async def add(self, name: str, day: date | datetime, *, completed: bool = False) -> Task:
        async with self._lock:
            existing = self._store.get(name, day)
            if existing is not None and existing.pending is not PendingKind.UNCOMMITTED_DELETE:
                logger.debug("Add of existing task %r treated as update", existing.name)
                return await self._update_locked(existing, completed=completed)

            if existing is not None:
                # The peer still has it: cancel the queued delete, send an update instead.
                self._queue.discard_matching(existing)
                restored = existing.evolve(completed=bool(completed), pending=PendingKind.NONE)
                self._store.upsert(restored)
                self._store.save()
                await self._send_or_enqueue(PendingMutation.update(restored))
                return restored

            task = Task.create(name, day, completed=completed, pending=PendingKind.UNCOMMITTED_CREATE)
            self._store.upsert(task)
            self._store.save()

            if await self._send_or_enqueue(PendingMutation.create(task)):
                task = task.evolve(pending=PendingKind.NONE, last_modified=task.last_modified)
                self._store.upsert(task)
                self._store.save()
            return task

    async def update(self, task: Task, *, completed: bool) -> Task:
        async with self._lock:
            return await self._update_locked(task, completed=completed)

    async def toggle(self, task: Task) -> Task:
        async with self._lock:
            current = self._lookup(task)
            return await self._update_locked(current, completed=not current.completed)

    async def _update_locked(self, task: Task, *, completed: bool) -> Task:
        current = self._lookup(task)
        updated = current.evolve(completed=bool(completed))
        self._store.upsert(updated)
        self._store.save()

        if await self._send_or_enqueue(PendingMutation.update(updated)) and updated.pending is not PendingKind.NONE:
            updated = updated.evolve(pending=PendingKind.NONE, last_modified=updated.last_modified)
            self._store.upsert(updated)
            self._store.save()
        return updated

    async def delete(self, task: Task) -> bool:
        """Delete a task. Returns False if there was nothing to delete."""
        async with self._lock:
            current = self._store.get(task.name, task.date)
            if current is None or current.pending is PendingKind.UNCOMMITTED_DELETE:
                return False

            if current.pending is PendingKind.UNCOMMITTED_CREATE:
                # The peer never saw it: drop the record and its queued changes.
                self._store.remove(current)
                dropped = self._queue.discard_matching(current)
                self._store.save()
                logger.info("Dropped unsynced task %r (%d queued changes discarded)", current.name, dropped)
                return True

            tagged = current.evolve(pending=PendingKind.UNCOMMITTED_DELETE)
            self._store.upsert(tagged)
            self._store.save()

            if await self._send_or_enqueue(PendingMutation.delete(tagged)):
                self._store.remove(tagged)
                self._store.save()
            return True

    def _lookup(self, task: Task) -> Task:
        current = self._store.get(task.name, task.date)
        if current is None or current.pending is PendingKind.UNCOMMITTED_DELETE:
            raise LookupError(f"unknown task {task.name!r} on {task.date:%Y-%m-%d}")
        return current
