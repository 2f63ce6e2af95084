# src/todo_sync/tasks/task_models.py

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any


class PendingKind(StrEnum):
    """
    Sync status of a stored task.

    Notes:
    - "none" means the peer has confirmed the record (or it came from a snapshot).
    - A record is never an uncommitted create and an uncommitted delete at once;
      deleting an uncommitted create drops it instead of tagging it.
    """

    NONE = "none"
    UNCOMMITTED_CREATE = "uncommitted_create"
    UNCOMMITTED_DELETE = "uncommitted_delete"

    @classmethod
    def from_raw(cls, raw: Any, *, is_new: Any = None, is_deleted: Any = None) -> PendingKind:
        if isinstance(raw, str) and raw:
            try:
                return cls(raw)
            except ValueError:
                return cls.NONE
        # Older files stored two booleans instead of a tag.
        if is_deleted is True:
            return cls.UNCOMMITTED_DELETE
        if is_new is True:
            return cls.UNCOMMITTED_CREATE
        return cls.NONE


def as_day(value: date | datetime) -> date:
    """Truncate a datetime to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def normalize_name(name: str) -> str:
    return name.strip().casefold()


TaskKey = tuple[str, date]


@dataclass(frozen=True, slots=True)
class Task:
    name: str
    date: date
    completed: bool = False
    last_modified: datetime = field(default_factory=datetime.now)
    pending: PendingKind = PendingKind.NONE

    @classmethod
    def create(
        cls,
        name: str,
        day: date | datetime,
        *,
        completed: bool = False,
        pending: PendingKind = PendingKind.NONE,
        last_modified: datetime | None = None,
    ) -> Task:
        clean = (name or "").strip()
        if not clean:
            raise ValueError("task name is required")
        return cls(
            name=clean,
            date=as_day(day),
            completed=bool(completed),
            last_modified=last_modified or datetime.now(),
            pending=pending,
        )

    @property
    def key(self) -> TaskKey:
        """Identity key: case-insensitive trimmed name plus the day."""
        return (normalize_name(self.name), self.date)

    def matches(self, other: Task) -> bool:
        return self.key == other.key

    def evolve(self, **changes: Any) -> Task:
        """Copy with changes; `last_modified` is refreshed unless given."""
        changes.setdefault("last_modified", datetime.now())
        if "date" in changes:
            changes["date"] = as_day(changes["date"])
        return dataclasses.replace(self, **changes)

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "date": self.date.isoformat(),
            "completed": self.completed,
            "lastModified": self.last_modified.isoformat(),
            "pending": self.pending.value,
        }

    @classmethod
    def from_json(cls, obj: dict[str, Any]) -> Task:
        """
        Build a Task from its stored JSON shape.

        Accepts the legacy keys (isCompleted, lastUpdated, isNew, isDeleted) so
        files written by older clients still load. Raises ValueError/KeyError on
        entries that cannot be interpreted.
        """
        raw_date = obj["date"]
        day = datetime.fromisoformat(str(raw_date)).date()

        completed = obj.get("completed", obj.get("isCompleted", False))
        raw_modified = obj.get("lastModified", obj.get("lastUpdated"))
        last_modified = datetime.fromisoformat(str(raw_modified)) if raw_modified else datetime.now()

        pending = PendingKind.from_raw(
            obj.get("pending"),
            is_new=obj.get("isNew"),
            is_deleted=obj.get("isDeleted"),
        )
        return cls.create(
            str(obj["name"]),
            day,
            completed=completed is True,
            pending=pending,
            last_modified=last_modified,
        )

    def __str__(self) -> str:
        mark = "x" if self.completed else " "
        suffix = "" if self.pending is PendingKind.NONE else f" ({self.pending.value})"
        return f"[{mark}] {self.date:%Y-%m-%d} {self.name}{suffix}"


class MutationKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class PendingMutation:
    """A local change the peer has not acknowledged yet."""

    kind: MutationKind
    task: Task
    queued_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(cls, task: Task) -> PendingMutation:
        return cls(MutationKind.CREATE, task)

    @classmethod
    def update(cls, task: Task) -> PendingMutation:
        return cls(MutationKind.UPDATE, task)

    @classmethod
    def delete(cls, task: Task) -> PendingMutation:
        return cls(MutationKind.DELETE, task)
