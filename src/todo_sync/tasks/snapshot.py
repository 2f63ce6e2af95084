# src/todo_sync/tasks/snapshot.py

"""
Parser for the GETALL listing.

The payload is a sequence of lines. A header line sets the current day:

    DATE,20250115

and every following non-empty line is a task for that day:

    Buy milk,false
    Walk dog,true

The task line is split at its last comma, so names may contain commas. Bad
headers and bad task lines are dropped; the scan always continues.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime

from .task_models import PendingKind, Task

logger = logging.getLogger(__name__)

HEADER_RE = re.compile(r"^DATE,([0-9]{7,8})$", re.IGNORECASE)
LINE_SPLIT_RE = re.compile(r"[\r\n]+")


class HeaderParseError(ValueError):
    """A DATE header whose digits are not a calendar day."""


class MalformedTaskLine(ValueError):
    """A task line without a separating comma or with an empty name."""


def parse_header_date(digits: str) -> date:
    """
    Interpret header digits as yyyyMMdd.

    Seven digits are left-padded with a single "0" first. The padded value is not
    re-interpreted: "2025115" becomes "02025115" (year 202, month 51) and fails.
    """
    if len(digits) == 7:
        digits = "0" + digits
        logger.debug("Padded 7-digit header to %s", digits)
    if len(digits) != 8 or not (digits.isascii() and digits.isdigit()):
        raise HeaderParseError(f"header digits must be 8 long: {digits!r}")
    try:
        return date(int(digits[0:4]), int(digits[4:6]), int(digits[6:8]))
    except ValueError as exc:
        raise HeaderParseError(f"invalid header date {digits!r}: {exc}") from exc


def parse_task_line(line: str) -> tuple[str, bool]:
    idx = line.rfind(",")
    if idx == -1:
        raise MalformedTaskLine(f"no comma in task line {line!r}")
    name = line[:idx].strip()
    if not name:
        raise MalformedTaskLine(f"empty task name in line {line!r}")
    state = line[idx + 1 :].strip().lower()
    return name, state == "true"


@dataclass(slots=True)
class ParseReport:
    tasks: list[Task] = field(default_factory=list)
    bad_headers: int = 0
    dropped_lines: int = 0


def parse_snapshot_report(payload: str, *, now: datetime | None = None) -> ParseReport:
    stamp = now or datetime.now()
    report = ParseReport()
    current: date | None = None

    for raw in LINE_SPLIT_RE.split(payload or ""):
        line = raw.strip()
        if not line:
            continue

        m = HEADER_RE.match(line)
        if m:
            try:
                current = parse_header_date(m.group(1))
            except HeaderParseError as exc:
                # Keep the previous date context.
                report.bad_headers += 1
                logger.warning("Skipping header: %s", exc)
            continue

        if current is None:
            report.dropped_lines += 1
            logger.debug("Dropping line before any date header: %r", line)
            continue

        try:
            name, completed = parse_task_line(line)
        except MalformedTaskLine as exc:
            report.dropped_lines += 1
            logger.debug("Dropping task line: %s", exc)
            continue

        report.tasks.append(
            Task(
                name=name,
                date=current,
                completed=completed,
                last_modified=stamp,
                pending=PendingKind.NONE,
            )
        )

    logger.debug(
        "Parsed snapshot: tasks=%d bad_headers=%d dropped=%d",
        len(report.tasks),
        report.bad_headers,
        report.dropped_lines,
    )
    return report


def parse_snapshot(payload: str, *, now: datetime | None = None) -> list[Task]:
    return parse_snapshot_report(payload, now=now).tasks
