from __future__ import annotations

import pytest

from memory_grove_tracker.events import (
    ChangeEventError,
    ChangeKind,
    DeleteEvent,
    InsertEvent,
    UpdateEvent,
    change_payload,
    decode_change_event,
)
from memory_grove_tracker.models import BudgetItem, Task


def test_decode_insert_builds_typed_record() -> None:
    event = decode_change_event(
        change_payload(ChangeKind.INSERT, "tasks", new={"id": 7, "task": "Register LLC", "week": 1})
    )

    assert isinstance(event, InsertEvent)
    assert isinstance(event.record, Task)
    assert event.record_id == "7"


def test_decode_update_and_delete() -> None:
    update = decode_change_event(
        change_payload(ChangeKind.UPDATE, "budget_items", new={"id": "b1", "actual": 12}, old={"id": "b1"})
    )
    delete = decode_change_event(change_payload(ChangeKind.DELETE, "budget_items", old={"id": "b1"}))

    assert isinstance(update, UpdateEvent)
    assert isinstance(update.record, BudgetItem)
    assert update.record.actual == 12
    assert delete == DeleteEvent(table="budget_items", record_id="b1")


def test_decode_accepts_lowercase_kind_and_record_key() -> None:
    event = decode_change_event({"type": "insert", "table": "contacts", "record": {"id": "c1", "name": "Ann"}})

    assert isinstance(event, InsertEvent)
    assert event.record.name == "Ann"


@pytest.mark.parametrize(
    "payload",
    [
        {"eventType": "TRUNCATE", "table": "tasks"},
        {"eventType": "INSERT", "new": {"id": "1"}},
        {"eventType": "INSERT", "table": "orders", "new": {"id": "1"}},
        {"eventType": "DELETE", "table": "tasks", "old": {}},
        {"eventType": "UPDATE", "table": "tasks"},
        {"eventType": "UPDATE", "table": "tasks", "new": {"id": "1", "week": "soon"}},
    ],
)
def test_decode_rejects_malformed_notifications(payload) -> None:
    with pytest.raises(ChangeEventError):
        decode_change_event(payload)


def test_null_columns_fall_back_to_defaults() -> None:
    event = decode_change_event(
        change_payload(
            ChangeKind.INSERT,
            "tasks",
            new={"id": "t1", "task": None, "position": None, "due_date": "", "notes": None},
        )
    )

    assert event.record.task == ""
    assert event.record.position == 0
    assert event.record.due_date is None
    assert event.record.notes is None
