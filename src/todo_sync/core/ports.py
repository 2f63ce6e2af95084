# src/todo_sync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the sync engine.

The engine depends on Protocols instead of concrete implementations, so the
TCP client and the JSON store can be swapped for fakes in tests.
"""

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any, Protocol


class CommandTransport(Protocol):
    """One-shot request/response exchange with the task peer."""

    @property
    def endpoint(self) -> str: ...

    async def execute(self, command: str) -> str: ...

    async def probe(self) -> bool: ...


class TaskRepo(Protocol):
    def load(self) -> int: ...
    def save(self) -> None: ...
    def save_raw_response(self, text: str) -> None: ...

    def replace_all(self, tasks: Iterable[Any]) -> None: ...
    def upsert(self, task: Any) -> None: ...
    def remove(self, task: Any) -> bool: ...

    def get(self, name: str, day: date | datetime) -> Any | None: ...
    def all(self) -> list[Any]: ...
    def visible(self) -> list[Any]: ...
    def __len__(self) -> int: ...
