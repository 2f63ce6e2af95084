# src/todo_sync/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import cast

from ..core.state import AppState
from ..sync.engine import ConnectivitySignal, SyncResult
from ..tasks.task_models import PendingKind, Task
from ..tasks.task_store import grouped_by_day

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

# Engine calls from the console wait at most this long.
COMMAND_TIMEOUT_SECONDS = 60.0


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def parse_day(token: str, *, today: date | None = None) -> date | None:
    """today / tomorrow / yesterday / YYYY-MM-DD / YYYYMMDD, else None."""
    base = today or date.today()
    t = token.strip().lower()
    if t == "today":
        return base
    if t == "tomorrow":
        return base + timedelta(days=1)
    if t == "yesterday":
        return base - timedelta(days=1)
    for fmt in ("%Y-%m-%d", "%Y%m%d"):
        try:
            return datetime.strptime(t, fmt).date()
        except ValueError:
            continue
    return None


def _format_listing(state: AppState, title: str, tasks: list[Task], *, newest_first: bool = False) -> str:
    state.last_listing = []
    if not tasks:
        return f"{title}: nothing here."

    lines = [f"{title}:"]
    for day, items in grouped_by_day(tasks, newest_first=newest_first).items():
        lines.append(f"  {day:%Y-%m-%d}")
        for t in items:
            state.last_listing.append(t)
            lines.append(f"    {len(state.last_listing)}. {t}")
    return "\n".join(lines)


def _pick(state: AppState, args: list[str]) -> Task | str:
    if not args:
        return "Which one? Use /list first, then pass the task number."
    try:
        idx = int(args[0])
    except ValueError:
        return f"Not a task number: {args[0]}"
    if not 1 <= idx <= len(state.last_listing):
        return f"No task #{idx} in the last listing."
    return state.last_listing[idx - 1]


def _describe_result(result: SyncResult | None) -> str:
    if result is None:
        return "A sync is already running."
    if result.ok:
        return f"Synced: replayed {result.replayed} change(s), {result.tasks} task(s) from the server."
    return f"Sync failed, working offline ({result.error}). Replayed {result.replayed} before the failure."


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    st = state.engine.status()
    last = f"{st.last_sync_at:%Y-%m-%d %H:%M:%S}" if st.last_sync_at else "never"
    return (
        "Status:\n"
        f"  Server: {st.endpoint}\n"
        f"  State: {st.state.value}\n"
        f"  Tasks: {st.tasks}\n"
        f"  Pending changes: {st.pending}\n"
        f"  Last sync: {last}"
    )


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list          -> today
    /list past     -> history, newest day first
    /list future   -> upcoming
    /list all      -> everything
    """
    view = args[0].lower() if args else "today"
    store = state.store
    if view == "today":
        return _format_listing(state, "Today", store.today())
    if view in ("past", "history"):
        return _format_listing(state, "History", store.past(), newest_first=True)
    if view in ("future", "upcoming"):
        return _format_listing(state, "Upcoming", store.future())
    if view == "all":
        return _format_listing(state, "All tasks", store.visible())
    return "Usage: /list [today|past|future|all]"


def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add <day> <name...>   day: today | tomorrow | YYYY-MM-DD
    /add <name...>         adds for today
    """
    if not args:
        return "Usage: /add [today|tomorrow|YYYY-MM-DD] <task name>"

    day = parse_day(args[0])
    words = args[1:] if day is not None else args
    name = " ".join(words).strip()
    if not name:
        return "Task name is required."

    task = state.run(state.engine.add(name, day or date.today()), timeout=COMMAND_TIMEOUT_SECONDS)
    if task.pending is PendingKind.NONE:
        return f"Added: {task}"
    return f"Saved locally, will sync when online: {task}"


def _set_completed(state: AppState, args: list[str], completed: bool) -> str:
    picked = _pick(state, args)
    if isinstance(picked, str):
        return picked
    try:
        task = state.run(state.engine.update(picked, completed=completed), timeout=COMMAND_TIMEOUT_SECONDS)
    except LookupError as exc:
        return str(exc)
    return f"Updated: {task}"


def cmd_done(state: AppState, args: list[str]) -> str:
    return _set_completed(state, args, True)


def cmd_undo(state: AppState, args: list[str]) -> str:
    return _set_completed(state, args, False)


def cmd_del(state: AppState, args: list[str]) -> str:
    picked = _pick(state, args)
    if isinstance(picked, str):
        return picked
    removed = state.run(state.engine.delete(picked), timeout=COMMAND_TIMEOUT_SECONDS)
    if not removed:
        return f"Nothing to delete: {picked.name}"
    state.last_listing = []
    return f"Deleted: {picked.name}"


def cmd_sync(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit:
        emit(f"[SYNC] Contacting {state.engine.status().endpoint}...")
    return _describe_result(state.run(state.engine.refresh(), timeout=COMMAND_TIMEOUT_SECONDS))


def cmd_online(state: AppState, args: list[str]) -> str:
    result = state.run(
        state.engine.on_connectivity(ConnectivitySignal.CONNECTED), timeout=COMMAND_TIMEOUT_SECONDS
    )
    return _describe_result(result)


def cmd_offline(state: AppState, args: list[str]) -> str:
    state.run(state.engine.on_connectivity(ConnectivitySignal.DISCONNECTED), timeout=COMMAND_TIMEOUT_SECONDS)
    return "Working offline. Changes will be queued."


def cmd_resume(state: AppState, args: list[str]) -> str:
    return _describe_result(state.run(state.engine.on_resume(), timeout=COMMAND_TIMEOUT_SECONDS))


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show server, sync state and pending changes.")
registry.register("list", cmd_list, help_text="List tasks: /list [today|past|future|all].", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add [today|tomorrow|YYYY-MM-DD] <name>.")
registry.register("done", cmd_done, help_text="Mark task #n (from the last /list) completed.")
registry.register("undo", cmd_undo, help_text="Mark task #n (from the last /list) not completed.")
registry.register("del", cmd_del, help_text="Delete task #n (from the last /list).", aliases=["rm"])
registry.register("sync", cmd_sync, help_text="Replay pending changes and reload from the server.")
registry.register("online", cmd_online, help_text="Signal that connectivity is back (triggers a sync).")
registry.register("offline", cmd_offline, help_text="Signal that connectivity is lost.")
registry.register("resume", cmd_resume, help_text="Signal an application resume (triggers a sync).")
