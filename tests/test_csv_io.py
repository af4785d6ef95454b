from __future__ import annotations

import csv
import io
from datetime import date

import pytest

from memory_grove_tracker.csv_io import (
    CsvFormatError,
    contacts_export_filename,
    export_contacts_csv,
    find_duplicate_tasks,
    generate_csv,
    parse_task_csv,
    prepare_task_import,
    task_csv_template,
    validate_task_row,
)
from memory_grove_tracker.models import Contact, Task

HEADER = "week,day,task,priority,status,due_date,notes"


def test_parse_numbers_rows_like_the_file() -> None:
    text = f"{HEADER}\n1,Day 1-2,Register LLC,high,,,\n\n2,Day 8-9,Packaging,low,completed,2025-04-02,\"Box, ribbon\"\n"

    parsed = parse_task_csv(text)

    assert [row["_row_number"] for row in parsed.rows] == [2, 3]
    assert parsed.rows[1]["notes"] == "Box, ribbon"
    assert parsed.errors == []


def test_parse_flags_column_count_mismatch() -> None:
    parsed = parse_task_csv(f"{HEADER}\n1,Day 1-2,Short row\n")

    assert parsed.rows == []
    assert parsed.errors == ["Row 2: Column count mismatch (expected 7, got 3)"]


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("   ", "Invalid CSV content"),
        (HEADER, "CSV must contain headers and at least one data row"),
        ("week,day,task\n1,Day 1-2,x", "Missing required columns: priority"),
    ],
)
def test_parse_rejects_unusable_files(text: str, message: str) -> None:
    with pytest.raises(CsvFormatError, match=message):
        parse_task_csv(text)


def test_headers_are_case_insensitive() -> None:
    parsed = parse_task_csv("Week,Day,Task,Priority\n1,Day 1-2,Register LLC,HIGH")

    assert parsed.headers == ["week", "day", "task", "priority"]
    assert validate_task_row(parsed.rows[0], 2) == []


def test_validate_row_collects_every_problem() -> None:
    row = {
        "week": "5",
        "day": "",
        "task": "",
        "priority": "urgent",
        "status": "done",
        "due_date": "04/02/2025",
        "notes": "x" * 1001,
    }

    assert validate_task_row(row, 4) == [
        "Row 4: Week must be a number between 1 and 4",
        "Row 4: Day is required",
        "Row 4: Task description is required",
        "Row 4: Priority must be one of: high, medium, low",
        "Row 4: Status must be one of: pending, completed",
        "Row 4: Due date must be in YYYY-MM-DD format",
        "Row 4: Notes must be less than 1000 characters",
    ]


def test_validate_row_rejects_impossible_date_and_long_task() -> None:
    row = {"week": "1", "day": "Day 1-2", "task": "t" * 501, "priority": "low", "due_date": "2025-02-30"}

    assert validate_task_row(row, 2) == [
        "Row 2: Task description must be less than 500 characters",
        "Row 2: Invalid due date",
    ]


def test_prepare_import_formats_valid_rows_and_counts_invalid() -> None:
    text = (
        f"{HEADER}\n"
        "1,Day 1-2,Register LLC,HIGH,completed,2025-03-03,\n"
        "9,Day 1-2,Bad week,low,,,\n"
        "2,Day 8-9,Packaging,medium,,,Work with designer\n"
    )

    result = prepare_task_import(text, [])

    assert result.summary == {"total": 3, "valid": 2, "invalid": 1}
    assert result.errors == ["Row 3: Week must be a number between 1 and 4"]
    assert result.valid_tasks[0] == {
        "week": 1,
        "day": "Day 1-2",
        "task": "Register LLC",
        "priority": "high",
        "status": "completed",
        "completed": True,
        "due_date": "2025-03-03",
        "notes": None,
    }
    assert result.valid_tasks[1]["status"] == "pending"
    assert result.valid_tasks[1]["completed"] is False


def test_prepare_import_reports_file_errors() -> None:
    result = prepare_task_import("", [])

    assert result.errors == ["Invalid CSV content"]
    assert result.valid == 0


def test_duplicates_are_flagged_and_skipped() -> None:
    existing = [Task(id="t1", week=1, day="Day 1-2", task="Register LLC")]
    text = f"{HEADER}\n1,Day 1-2,register llc,high,,,\n1,Day 3-4,Register LLC,high,,,\n"

    result = prepare_task_import(text, existing)

    assert result.has_duplicates
    assert [duplicate.index for duplicate in result.duplicates] == [0]
    assert result.duplicates[0].message == 'Task "register llc" already exists in Week 1, Day 1-2'
    assert [task["day"] for task in result.importable()] == ["Day 3-4"]


def test_find_duplicates_without_existing_tasks() -> None:
    assert find_duplicate_tasks([{"week": 1, "day": "Day 1-2", "task": "x"}], []) == []


def test_template_round_trips_through_validation() -> None:
    template = task_csv_template(date(2025, 3, 1))

    result = prepare_task_import(template, [])

    assert template.splitlines()[0] == HEADER
    assert result.summary == {"total": 3, "valid": 3, "invalid": 0}
    assert result.valid_tasks[0]["due_date"] == "2025-03-03"


def test_generate_csv_quotes_when_needed() -> None:
    rows = [{"name": "Rose, Lily", "note": None}]

    assert generate_csv(rows) == 'name,note\n"Rose, Lily",'
    assert generate_csv([]) == ""


def test_export_contacts_quotes_every_field() -> None:
    contacts = [
        Contact(id="c1", name='Ann "Annie" Lee', organization="Grove Home", last_contact=date(2025, 3, 4)),
    ]

    exported = export_contacts_csv(contacts)
    rows = list(csv.reader(io.StringIO(exported)))

    assert exported.splitlines()[0] == '"Name","Organization","Role","Email","Phone","Last Contact","Notes"'
    assert rows[1] == ['Ann "Annie" Lee', "Grove Home", "", "", "", "2025-03-04", ""]


def test_export_without_contacts_is_header_only() -> None:
    assert export_contacts_csv([]) == "Name,Organization,Role,Email,Phone,Last Contact,Notes"
    assert contacts_export_filename(date(2025, 3, 4)) == "contacts_2025-03-04.csv"
