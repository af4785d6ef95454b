from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from memory_grove_tracker.constants import LAUNCH_WEEKS, TASK_NOTES_LIMIT, TASK_TEXT_LIMIT
from memory_grove_tracker.models import Contact, Task, TaskPriority, TaskStatus

REQUIRED_TASK_COLUMNS: tuple[str, ...] = ("week", "day", "task", "priority")
TASK_CSV_COLUMNS: tuple[str, ...] = ("week", "day", "task", "priority", "status", "due_date", "notes")
CONTACT_CSV_HEADERS: tuple[str, ...] = ("Name", "Organization", "Role", "Email", "Phone", "Last Contact", "Notes")

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class CsvFormatError(ValueError):
    """Raised when an uploaded CSV cannot be read as a task table at all."""


@dataclass
class ParsedCsv:
    headers: List[str]
    rows: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DuplicateTask:
    index: int
    task: Dict[str, Any]

    @property
    def message(self) -> str:
        return f'Task "{self.task["task"]}" already exists in Week {self.task["week"]}, {self.task["day"]}'


@dataclass
class TaskImportResult:
    valid_tasks: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    total: int = 0
    duplicates: List[DuplicateTask] = field(default_factory=list)

    @property
    def valid(self) -> int:
        return len(self.valid_tasks)

    @property
    def invalid(self) -> int:
        return self.total - self.valid

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicates)

    @property
    def summary(self) -> Dict[str, int]:
        return {"total": self.total, "valid": self.valid, "invalid": self.invalid}

    def importable(self) -> List[Dict[str, Any]]:
        """Valid rows minus the ones that duplicate existing tasks."""

        skipped = {duplicate.index for duplicate in self.duplicates}
        return [task for index, task in enumerate(self.valid_tasks) if index not in skipped]


def parse_task_csv(text: str) -> ParsedCsv:
    """Read raw CSV text into lowercase-keyed rows numbered like the file.

    The header counts as row 1; blank lines are skipped without being counted.
    """

    if not isinstance(text, str) or not text.strip():
        raise CsvFormatError("Invalid CSV content")

    records = [record for record in csv.reader(io.StringIO(text)) if any(value.strip() for value in record)]
    if len(records) < 2:
        raise CsvFormatError("CSV must contain headers and at least one data row")

    headers = [header.strip().lower() for header in records[0]]
    missing = [column for column in REQUIRED_TASK_COLUMNS if column not in headers]
    if missing:
        raise CsvFormatError(f"Missing required columns: {', '.join(missing)}")

    parsed = ParsedCsv(headers=headers)
    for offset, values in enumerate(records[1:], start=2):
        if len(values) != len(headers):
            parsed.errors.append(
                f"Row {offset}: Column count mismatch (expected {len(headers)}, got {len(values)})"
            )
            continue
        row: Dict[str, Any] = {header: value.strip() for header, value in zip(headers, values)}
        row["_row_number"] = offset
        parsed.rows.append(row)
    return parsed


def _parse_week(raw: str) -> Optional[int]:
    try:
        return int(raw.strip())
    except ValueError:
        return None


def validate_task_row(row: Mapping[str, Any], row_number: int) -> List[str]:
    errors: List[str] = []
    prefix = f"Row {row_number}:"

    week = _parse_week(str(row.get("week") or ""))
    if week is None or week < 1 or week > LAUNCH_WEEKS:
        errors.append(f"{prefix} Week must be a number between 1 and {LAUNCH_WEEKS}")

    if not str(row.get("day") or "").strip():
        errors.append(f"{prefix} Day is required")

    task_text = str(row.get("task") or "")
    if not task_text.strip():
        errors.append(f"{prefix} Task description is required")
    elif len(task_text) > TASK_TEXT_LIMIT:
        errors.append(f"{prefix} Task description must be less than {TASK_TEXT_LIMIT} characters")

    priorities = [priority.value for priority in TaskPriority]
    if str(row.get("priority") or "").strip().lower() not in priorities:
        errors.append(f"{prefix} Priority must be one of: {', '.join(priorities)}")

    status = str(row.get("status") or "").strip().lower()
    statuses = [item.value for item in TaskStatus]
    if status and status not in statuses:
        errors.append(f"{prefix} Status must be one of: {', '.join(statuses)}")

    due_date = str(row.get("due_date") or "").strip()
    if due_date:
        if not _DATE_PATTERN.match(due_date):
            errors.append(f"{prefix} Due date must be in YYYY-MM-DD format")
        else:
            try:
                date.fromisoformat(due_date)
            except ValueError:
                errors.append(f"{prefix} Invalid due date")

    if len(str(row.get("notes") or "")) > TASK_NOTES_LIMIT:
        errors.append(f"{prefix} Notes must be less than {TASK_NOTES_LIMIT} characters")

    return errors


def format_task_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    status = str(row.get("status") or "").strip().lower() or TaskStatus.PENDING.value
    due_date = str(row.get("due_date") or "").strip()
    notes = str(row.get("notes") or "").strip()
    return {
        "week": int(str(row["week"]).strip()),
        "day": str(row["day"]).strip(),
        "task": str(row["task"]).strip(),
        "priority": str(row["priority"]).strip().lower(),
        "status": status,
        "completed": status == TaskStatus.COMPLETED.value,
        "due_date": due_date or None,
        "notes": notes or None,
    }


def validate_and_format_tasks(parsed: ParsedCsv) -> TaskImportResult:
    result = TaskImportResult(errors=list(parsed.errors), total=len(parsed.rows))
    for row in parsed.rows:
        row_errors = validate_task_row(row, row["_row_number"])
        if row_errors:
            result.errors.extend(row_errors)
            continue
        result.valid_tasks.append(format_task_row(row))
    return result


def find_duplicate_tasks(new_tasks: Sequence[Mapping[str, Any]], existing: Iterable[Task]) -> List[DuplicateTask]:
    """Flag imported tasks whose (week, day, task text) already exists, ignoring case."""

    known = {(task.week, task.day, task.task.lower()) for task in existing}
    return [
        DuplicateTask(index=index, task=dict(task))
        for index, task in enumerate(new_tasks)
        if (task["week"], task["day"], str(task["task"]).lower()) in known
    ]


def prepare_task_import(text: str, existing: Iterable[Task]) -> TaskImportResult:
    """Parse, validate and duplicate-check an uploaded task CSV in one go."""

    try:
        parsed = parse_task_csv(text)
    except CsvFormatError as exc:
        return TaskImportResult(errors=[str(exc)])

    result = validate_and_format_tasks(parsed)
    result.duplicates = find_duplicate_tasks(result.valid_tasks, existing)
    return result


def generate_csv(
    rows: Sequence[Mapping[str, Any]],
    headers: Sequence[str] | None = None,
    *,
    quote_all: bool = False,
) -> str:
    if not rows:
        return ""

    columns = list(headers or rows[0].keys())
    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        quoting=csv.QUOTE_ALL if quote_all else csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writerow(columns)
    for row in rows:
        writer.writerow(["" if row.get(column) is None else str(row.get(column)) for column in columns])
    return buffer.getvalue().rstrip("\n")


def task_csv_template(today: date | None = None) -> str:
    """Three example rows showing every column the importer understands."""

    base = today or date.today()
    template = [
        {
            "week": 1,
            "day": "Day 1-2",
            "task": "Set up business structure and legal foundation",
            "priority": "high",
            "status": "pending",
            "due_date": (base + timedelta(days=2)).isoformat(),
            "notes": "Register LLC, obtain EIN, and set up business bank account",
        },
        {
            "week": 1,
            "day": "Day 3-4",
            "task": "Research local funeral homes and healthcare facilities",
            "priority": "medium",
            "status": "pending",
            "due_date": (base + timedelta(days=4)).isoformat(),
            "notes": "Create list of potential partners in San Diego area",
        },
        {
            "week": 2,
            "day": "Day 8-9",
            "task": "Finalize product packaging and branding",
            "priority": "high",
            "status": "pending",
            "due_date": (base + timedelta(days=9)).isoformat(),
            "notes": "Work with designer on memorial-appropriate packaging",
        },
    ]
    return generate_csv(template, TASK_CSV_COLUMNS)


def export_contacts_csv(contacts: Iterable[Contact]) -> str:
    rows = [
        {
            "Name": contact.name,
            "Organization": contact.organization,
            "Role": contact.role,
            "Email": contact.email,
            "Phone": contact.phone,
            "Last Contact": contact.last_contact.isoformat() if contact.last_contact else None,
            "Notes": contact.notes,
        }
        for contact in contacts
    ]
    if not rows:
        return ",".join(CONTACT_CSV_HEADERS)
    return generate_csv(rows, CONTACT_CSV_HEADERS, quote_all=True)


def contacts_export_filename(today: date | None = None) -> str:
    return f"contacts_{(today or date.today()).isoformat()}.csv"


__all__ = [
    "CONTACT_CSV_HEADERS",
    "CsvFormatError",
    "DuplicateTask",
    "ParsedCsv",
    "REQUIRED_TASK_COLUMNS",
    "TASK_CSV_COLUMNS",
    "TaskImportResult",
    "contacts_export_filename",
    "export_contacts_csv",
    "find_duplicate_tasks",
    "format_task_row",
    "generate_csv",
    "parse_task_csv",
    "prepare_task_import",
    "task_csv_template",
    "validate_and_format_tasks",
    "validate_task_row",
]
