# tests/test_connectivity.py

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from todo_sync.sync.connectivity import watch_connectivity
from todo_sync.sync.engine import SyncEngine, SyncState

from .fakes import FakeTransport


@pytest.mark.asyncio
async def test_watcher_signals_only_on_change(engine: SyncEngine, transport: FakeTransport) -> None:
    transport.snapshot = "DATE,20250115\nA,false\n"
    transport.probes = [True, True, False, False, True]
    states: list[SyncState] = []
    engine.subscribe(states.append)

    stop = asyncio.Event()
    watcher = asyncio.create_task(
        watch_connectivity(transport, engine, interval_seconds=0.05, stop_event=stop)
    )
    await asyncio.sleep(0.5)
    stop.set()
    await asyncio.wait_for(watcher, timeout=1.0)

    # connected -> (same) -> disconnected -> (same) -> connected, then probes
    # fall back to "not down" = connected, which is no change.
    assert transport.verbs() == ["GETALL", "GETALL"]
    assert states == [
        SyncState.SYNCING,
        SyncState.ONLINE,
        SyncState.OFFLINE,
        SyncState.SYNCING,
        SyncState.ONLINE,
    ]


@pytest.mark.asyncio
async def test_watcher_can_be_cancelled(engine: SyncEngine, transport: FakeTransport) -> None:
    transport.down = True
    watcher = asyncio.create_task(watch_connectivity(transport, engine, interval_seconds=0.01))
    await asyncio.sleep(0.05)
    watcher.cancel()
    with pytest.raises(asyncio.CancelledError):
        await watcher
    assert engine.state is SyncState.OFFLINE


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_watcher_resyncs_when_engine_went_offline_but_peer_is_reachable(
    engine: SyncEngine, transport: FakeTransport
) -> None:
    transport.snapshot = "DATE,20250115\nA,false\n"
    transport.fail_on = {2}  # the online ADD fails once; the peer stays reachable

    stop = asyncio.Event()
    watcher = asyncio.create_task(
        watch_connectivity(transport, engine, interval_seconds=0.05, stop_event=stop)
    )
    try:
        await _wait_for(lambda: engine.state is SyncState.ONLINE)

        await engine.add("B", date(2025, 1, 15))
        assert engine.state is SyncState.OFFLINE
        assert len(engine.queue) == 1

        await _wait_for(lambda: engine.state is SyncState.ONLINE and not engine.queue)
    finally:
        stop.set()
        await asyncio.wait_for(watcher, timeout=1.0)

    assert transport.verbs() == ["GETALL", "ADD", "ADD", "GETALL"]
