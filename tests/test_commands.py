# tests/test_commands.py

from __future__ import annotations

from datetime import date, timedelta

from todo_sync.cli.commands import CommandRegistry, parse_day, registry
from todo_sync.sync.engine import SyncState
from todo_sync.tasks.task_models import PendingKind

from .fakes import FakeTransport


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/b y", emit=lambda _: None) == "h3"
    assert called == {"h2": 1, "h3": 1}


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")


def test_parse_day() -> None:
    base = date(2025, 1, 15)
    assert parse_day("today", today=base) == base
    assert parse_day("Tomorrow", today=base) == base + timedelta(days=1)
    assert parse_day("2025-02-01") == date(2025, 2, 1)
    assert parse_day("20250201") == date(2025, 2, 1)
    assert parse_day("milk") is None


def test_offline_add_list_done_delete_then_sync(state) -> None:
    transport: FakeTransport = state.client
    future = date.today() + timedelta(days=3)

    reply = registry.handle(state, f"/add {future:%Y-%m-%d} Pay rent")
    assert reply is not None and "Saved locally" in reply
    assert state.store.get("Pay rent", future).pending is PendingKind.UNCOMMITTED_CREATE

    listing = registry.handle(state, "/list future")
    assert "1. [ ]" in listing and "Pay rent" in listing

    assert "Updated" in registry.handle(state, "/done 1")
    assert state.store.get("Pay rent", future).completed is True
    assert len(state.queue) == 2
    assert transport.sent == []

    transport.snapshot = f"DATE,{future:%Y%m%d}\nPay rent,true\n"
    reply = registry.handle(state, "/online")
    assert "replayed 2 change(s), 1 task(s)" in reply
    assert state.engine.state is SyncState.ONLINE
    assert transport.verbs() == ["ADD", "UPDATE", "GETALL"]

    registry.handle(state, "/list future")
    assert "Deleted" in registry.handle(state, "/del 1")
    assert state.store.get("Pay rent", future) is None
    assert transport.verbs()[-1] == "DELETE"


def test_sync_failure_is_reported(state) -> None:
    transport: FakeTransport = state.client
    transport.down = True

    notes: list[str] = []
    reply = registry.handle(state, "/sync", emit=notes.append)

    assert "Sync failed" in reply
    assert notes and "fake:11111" in notes[0]
    assert state.engine.state is SyncState.OFFLINE


def test_status_and_bad_picks(state) -> None:
    status = registry.handle(state, "/status")
    assert "State: offline" in status
    assert "Pending changes: 0" in status

    assert "Use /list first" in registry.handle(state, "/done")
    assert "No task #3" in registry.handle(state, "/done 3")
    assert "Not a task number" in registry.handle(state, "/del x")
