# src/todo_sync/sync/connectivity.py

"""
Connectivity source + background event loop for the sync engine.

- watch_connectivity(): polling loop that probes the peer and feeds
  connected / disconnected signals to the engine, only when the answer changes.
- start_sync_in_background(): runs the engine's event loop in a daemon thread
  so the blocking console REPL can submit work to it.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import logging
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

from ..core.ports import CommandTransport
from .engine import ConnectivitySignal, SyncEngine, SyncState

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def watch_connectivity(
    transport: CommandTransport,
    engine: SyncEngine,
    *,
    interval_seconds: float = 15.0,
    stop_event: asyncio.Event | None = None,
) -> None:
    """
    Every interval_seconds:
    - probe the peer (open + close a connection)
    - on a change, deliver CONNECTED / DISCONNECTED to the engine

    The first probe always delivers a signal. A reachable peer also re-delivers
    CONNECTED while the engine sits offline (a failed send or GETALL takes it
    offline without the probe answer changing). Runs until stop_event is set or
    the coroutine is cancelled.
    """
    sleep_s = max(0.05, float(interval_seconds))
    last: ConnectivitySignal | None = None

    while stop_event is None or not stop_event.is_set():
        try:
            reachable = await transport.probe()
        except Exception:
            logger.exception("Connectivity probe failed")
            reachable = False

        signal = ConnectivitySignal.CONNECTED if reachable else ConnectivitySignal.DISCONNECTED
        changed = signal is not last
        stalled = signal is ConnectivitySignal.CONNECTED and engine.state is SyncState.OFFLINE
        if changed or stalled:
            if changed:
                logger.info("Connectivity: %s (%s)", signal.value, transport.endpoint)
            else:
                logger.debug("Peer %s reachable but engine offline; resyncing", transport.endpoint)
            last = signal
            try:
                await engine.on_connectivity(signal)
            except Exception:
                logger.exception("Engine failed to handle connectivity signal %s", signal.value)

        if stop_event is None:
            await asyncio.sleep(sleep_s)
        else:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)

    logger.info("Connectivity watcher stopped.")


@dataclass
class SyncBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def submit(self, coro: Coroutine[Any, Any, T]) -> concurrent.futures.Future[T]:
        """Hand a coroutine to the engine's loop (thread-safe)."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        return self.submit(coro).result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal sync loop stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_sync_in_background(
    engine: SyncEngine,
    transport: CommandTransport,
    *,
    interval_seconds: float = 15.0,
    watch: bool = True,
) -> SyncBackgroundRunner | None:
    """
    Start the engine's event loop in a background thread.

    The console REPL is blocking (input()), the engine is async and wants its
    own loop. With watch=True the connectivity watcher runs on that loop.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    async def _main(stop_event: asyncio.Event) -> None:
        if watch:
            await watch_connectivity(
                transport, engine, interval_seconds=interval_seconds, stop_event=stop_event
            )
        else:
            await stop_event.wait()

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_main(stop_event))
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="todo-sync", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Sync thread did not initialize properly.")
        return None

    logger.info("Sync background thread started (watch=%s).", watch)
    return SyncBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
