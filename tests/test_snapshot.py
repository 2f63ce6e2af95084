# tests/test_snapshot.py

from __future__ import annotations

from datetime import date, datetime

import pytest

from todo_sync.tasks.snapshot import (
    HeaderParseError,
    MalformedTaskLine,
    parse_header_date,
    parse_snapshot,
    parse_snapshot_report,
    parse_task_line,
)
from todo_sync.tasks.task_models import PendingKind


def test_two_tasks_under_one_header() -> None:
    tasks = parse_snapshot("DATE,20250115\r\nBuy milk,false\r\nWalk dog,true\r\n")

    assert [(t.name, t.date, t.completed) for t in tasks] == [
        ("Buy milk", date(2025, 1, 15), False),
        ("Walk dog", date(2025, 1, 15), True),
    ]
    assert all(t.pending is PendingKind.NONE for t in tasks)


def test_seven_digit_header_is_padded_and_rejected() -> None:
    # "2025115" -> "02025115": year 202, month 51 -> not a date.
    report = parse_snapshot_report("DATE,2025115\nOrphan,true\nDATE,20250116\nKept,false\n")

    assert report.bad_headers == 1
    assert report.dropped_lines == 1
    assert [(t.name, t.date) for t in report.tasks] == [("Kept", date(2025, 1, 16))]


def test_seven_digit_header_that_pads_to_a_valid_day() -> None:
    assert parse_header_date("9990101") == date(999, 1, 1)


def test_bad_header_keeps_previous_date_context() -> None:
    tasks = parse_snapshot("DATE,20250115\nA,false\nDATE,20251399\nB,true\n")

    assert [(t.name, t.date) for t in tasks] == [
        ("A", date(2025, 1, 15)),
        ("B", date(2025, 1, 15)),
    ]


def test_header_is_case_insensitive_and_switches_days() -> None:
    tasks = parse_snapshot("date,20250115\nA,true\nDaTe,20250116\nB,TRUE\n")

    assert [(t.name, t.date, t.completed) for t in tasks] == [
        ("A", date(2025, 1, 15), True),
        ("B", date(2025, 1, 16), True),
    ]


def test_lines_before_any_header_are_dropped() -> None:
    report = parse_snapshot_report("Early,true\n\n\nDATE,20250115\nLate,false")

    assert [t.name for t in report.tasks] == ["Late"]
    assert report.dropped_lines == 1


def test_name_may_contain_commas_split_at_last_one() -> None:
    (task,) = parse_snapshot("DATE,20250115\nEggs, milk, bread ,  True \n")

    assert task.name == "Eggs, milk, bread"
    assert task.completed is True


def test_anything_but_true_is_incomplete() -> None:
    tasks = parse_snapshot("DATE,20250115\nA,yes\nB,1\nC,\nD,false\n")
    assert [t.completed for t in tasks] == [False, False, False, False]


def test_malformed_lines_do_not_abort_the_scan() -> None:
    report = parse_snapshot_report("DATE,20250115\nno comma here\n ,true\nGood,true\n")

    assert [t.name for t in report.tasks] == ["Good"]
    assert report.dropped_lines == 2


def test_empty_payload_is_an_empty_snapshot() -> None:
    assert parse_snapshot("") == []
    assert parse_snapshot("\r\n\r\n") == []


def test_tasks_are_stamped_with_parse_time() -> None:
    now = datetime(2025, 3, 1, 12, 0, 0)
    (task,) = parse_snapshot("DATE,20250115\nA,false", now=now)
    assert task.last_modified == now


def test_line_helpers_raise_specific_errors() -> None:
    with pytest.raises(HeaderParseError):
        parse_header_date("20250230")
    with pytest.raises(MalformedTaskLine):
        parse_task_line("nothing")
    with pytest.raises(MalformedTaskLine):
        parse_task_line("   ,false")
    assert parse_task_line("x,y,TrUe") == ("x,y", True)


def test_header_digits_must_be_ascii() -> None:
    fullwidth = "２０２５０１１５"  # "20250115" in fullwidth digits
    report = parse_snapshot_report(f"DATE,{fullwidth}\nA,false\n")

    assert report.tasks == []
    assert report.dropped_lines == 2
    with pytest.raises(HeaderParseError):
        parse_header_date(fullwidth)
