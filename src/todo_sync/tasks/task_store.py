# src/todo_sync/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path

from .task_models import PendingKind, Task, TaskKey, as_day, normalize_name

logger = logging.getLogger(__name__)


def _today(now: date | datetime | None) -> date:
    return as_day(now) if now is not None else date.today()


def grouped_by_day(tasks: Iterable[Task], *, newest_first: bool = False) -> dict[date, list[Task]]:
    """Group tasks by day; keys ordered by day, tasks within a day by name."""
    groups: dict[date, list[Task]] = {}
    for t in tasks:
        groups.setdefault(t.date, []).append(t)
    return {
        day: sorted(groups[day], key=lambda t: normalize_name(t.name))
        for day in sorted(groups, reverse=newest_first)
    }


class TaskStore:
    """
    Local copy of the task list, persisted as one JSON file.

    The file is rewritten wholesale on every save (temp file + os.replace).
    Records are matched by identity key: case-insensitive trimmed name + day.

    The sync engine is the single writer. Reads may come from other threads
    (the console), so every read works on a copy of the values taken in one step.
    """

    def __init__(self, path: str | Path = "tasks.json") -> None:
        self._path = Path(path)
        self._tasks: dict[TaskKey, Task] = {}

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> int:
        """
        Read the file if it exists. Unreadable files or entries are logged and
        skipped; the store is never left half-loaded with garbage.
        """
        self._tasks = {}
        if not self._path.exists():
            logger.info("TaskStore ready path=%s total=0 (no file yet)", self._path)
            return 0

        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to read task file %s; starting empty.", self._path)
            return 0

        if not isinstance(data, list):
            logger.warning("Task file %s is not a list; starting empty.", self._path)
            return 0

        skipped = 0
        for item in data:
            if not isinstance(item, dict):
                skipped += 1
                continue
            try:
                task = Task.from_json(item)
            except (KeyError, TypeError, ValueError):
                skipped += 1
                logger.debug("Skipping unreadable task entry: %r", item, exc_info=True)
                continue
            self._tasks[task.key] = task

        if skipped:
            logger.warning("Skipped %d unreadable entries in %s", skipped, self._path)
        logger.info("TaskStore ready path=%s total=%d", self._path, len(self._tasks))
        return len(self._tasks)

    def save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([t.to_json() for t in self.all()], ensure_ascii=False, indent=2)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(payload, "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)
        logger.debug("Saved %d tasks to %s", len(self._tasks), self._path)

    def save_raw_response(self, text: str) -> None:
        """Keep the last raw listing next to the store (debug aid, best-effort)."""
        target = self._path.with_name("last_response.txt")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, "utf-8")
        except OSError:
            logger.debug("Failed to write %s", target, exc_info=True)

    # ---- mutations ----

    def replace_all(self, tasks: Iterable[Task]) -> None:
        """Discard everything and keep exactly `tasks` (last duplicate wins)."""
        fresh: dict[TaskKey, Task] = {}
        for t in tasks:
            fresh[t.key] = t
        dropped = len(self._tasks)
        self._tasks = fresh
        logger.debug("replace_all: dropped=%d kept=%d", dropped, len(fresh))

    def upsert(self, task: Task) -> None:
        self._tasks[task.key] = task

    def remove(self, task: Task) -> bool:
        return self._tasks.pop(task.key, None) is not None

    # ---- reads ----

    def get(self, name: str, day: date | datetime) -> Task | None:
        return self._tasks.get((normalize_name(name), as_day(day)))

    def all(self) -> list[Task]:
        return list(self._tasks.values())

    def visible(self) -> list[Task]:
        """Everything except records waiting for their delete to reach the peer."""
        return [t for t in self.all() if t.pending is not PendingKind.UNCOMMITTED_DELETE]

    def today(self, now: date | datetime | None = None) -> list[Task]:
        day = _today(now)
        return sorted((t for t in self.visible() if t.date == day), key=self._sort_key)

    def past(self, now: date | datetime | None = None) -> list[Task]:
        day = _today(now)
        items = [t for t in self.visible() if t.date < day]
        items.sort(key=lambda t: normalize_name(t.name))
        items.sort(key=lambda t: t.date, reverse=True)
        return items

    def future(self, now: date | datetime | None = None) -> list[Task]:
        day = _today(now)
        return sorted((t for t in self.visible() if t.date > day), key=self._sort_key)

    @staticmethod
    def _sort_key(t: Task) -> tuple[date, str]:
        return (t.date, normalize_name(t.name))

    def __len__(self) -> int:
        return len(self._tasks)
