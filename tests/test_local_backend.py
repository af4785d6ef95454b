from __future__ import annotations

import gc
import json
from pathlib import Path

import pytest

from memory_grove_tracker.backend.base import BackendError
from memory_grove_tracker.backend.local import (
    DEFAULT_DATA_FILENAME,
    TRACKER_FOLDER_NAME,
    LocalBackend,
    resolve_data_file_path,
    sort_rows,
)
from memory_grove_tracker.events import SubscriptionStatus
from memory_grove_tracker.models import SortKey


def test_insert_assigns_id_timestamps_and_defaults(local_backend) -> None:
    row = local_backend.insert("inventory_items", {"component": "Gift Boxes"})

    assert row["id"]
    assert row["created_at"] == row["updated_at"]
    assert row["reorder_point"] == 25
    assert row["min_order_quantity"] == 1


def test_invalid_row_is_rejected(local_backend) -> None:
    with pytest.raises(BackendError, match="Rejected tasks row"):
        local_backend.insert("tasks", {"task": "x", "priority": "urgent"})

    assert local_backend.fetch_all("tasks") == []


def test_daily_metric_dates_are_unique(local_backend) -> None:
    local_backend.insert("daily_metrics", {"date": "2025-03-01"})

    with pytest.raises(BackendError, match="Duplicate value"):
        local_backend.insert("daily_metrics", {"date": "2025-03-01", "revenue": 10})


def test_duplicate_dates_within_one_batch_are_rejected(local_backend) -> None:
    with pytest.raises(BackendError, match="Duplicate value"):
        local_backend.insert_many("daily_metrics", [{"date": "2025-03-02"}, {"date": "2025-03-02", "revenue": 5}])

    assert local_backend.fetch_all("daily_metrics") == []


def test_unknown_table_is_an_error(local_backend) -> None:
    with pytest.raises(BackendError, match="Unknown table"):
        local_backend.fetch_all("orders")


def test_update_and_delete_of_missing_rows_are_noops(local_backend) -> None:
    local_backend.update("contacts", "missing", {"name": "Nobody"})
    local_backend.delete("contacts", "missing")

    assert local_backend.fetch_all("contacts") == []


def test_update_merges_partial_values(local_backend) -> None:
    row = local_backend.insert("contacts", {"name": "Ann", "email": "ann@grove.example"})

    local_backend.update("contacts", row["id"], {"phone": "555-0100"})

    stored = local_backend.fetch_all("contacts")[0]
    assert stored["email"] == "ann@grove.example"
    assert stored["phone"] == "555-0100"


def test_sort_rows_places_nulls_like_sql() -> None:
    rows = [{"id": "a", "date": None}, {"id": "b", "date": "2025-03-02"}, {"id": "c", "date": "2025-03-01"}]

    assert [row["id"] for row in sort_rows(rows, [SortKey("date")])] == ["c", "b", "a"]
    assert [row["id"] for row in sort_rows(rows, [SortKey("date", ascending=False)])] == ["a", "b", "c"]


def test_sort_rows_uses_later_keys_as_tiebreakers() -> None:
    rows = [
        {"id": "1", "week": 2, "position": 0},
        {"id": "2", "week": 1, "position": 1},
        {"id": "3", "week": 1, "position": 0},
    ]

    ordered = sort_rows(rows, [SortKey("week"), SortKey("position")])

    assert [row["id"] for row in ordered] == ["3", "2", "1"]


def test_subscription_delivers_queued_changes_in_order(local_backend) -> None:
    changes: list[str] = []
    statuses: list[SubscriptionStatus] = []
    subscription = local_backend.subscribe(
        "tasks",
        on_change=lambda payload: changes.append(payload["eventType"]),
        on_status=statuses.append,
    )

    row = local_backend.insert("tasks", {"task": "Register LLC"})
    local_backend.update("tasks", row["id"], {"task": "Register LLC today"})
    local_backend.delete("tasks", row["id"])
    local_backend.insert("contacts", {"name": "Elsewhere"})

    assert changes == []
    assert subscription.pump() == 3
    assert changes == ["INSERT", "UPDATE", "DELETE"]
    assert statuses == [SubscriptionStatus.SUBSCRIBED]

    subscription.unsubscribe()
    local_backend.insert("tasks", {"task": "Later"})
    assert subscription.pump() == 0
    assert statuses[-1] is SubscriptionStatus.CLOSED
    assert local_backend.subscription_count("tasks") == 0


def test_unreferenced_subscription_is_released(local_backend) -> None:
    kept = local_backend.subscribe("tasks", on_change=lambda payload: None, on_status=lambda status: None)
    local_backend.subscribe("tasks", on_change=lambda payload: None, on_status=lambda status: None)
    gc.collect()

    local_backend.insert("tasks", {"task": "After the session ended"})

    assert local_backend.subscription_count("tasks") == 1
    assert kept.pump() == 1


def test_persisted_backend_reloads_rows(tmp_path) -> None:
    data_file = tmp_path / "nested" / "data.json"
    backend = LocalBackend(data_file)
    backend.insert("budget_items", {"item": "Certificates", "budgeted": 200})

    assert json.loads(data_file.read_text(encoding="utf-8"))["budget_items"][0]["item"] == "Certificates"

    reloaded = LocalBackend(data_file)
    assert reloaded.created_fresh is False
    assert [row["item"] for row in reloaded.fetch_all("budget_items")] == ["Certificates"]


def test_seed_defaults_only_fills_empty_inventory(local_backend) -> None:
    local_backend.seed_defaults()
    local_backend.seed_defaults()

    rows = local_backend.fetch_all("inventory_items", [SortKey("component")])
    assert [(row["component"], row["reorder_point"]) for row in rows] == [
        ("Certificates", 25),
        ("Gift Boxes", 25),
        ("QR Code Stickers", 100),
        ("Seed Packets", 25),
    ]


def test_resolve_data_file_path_variants(tmp_path) -> None:
    assert resolve_data_file_path(env={}) == Path(".data") / TRACKER_FOLDER_NAME / DEFAULT_DATA_FILENAME
    assert resolve_data_file_path(tmp_path) == tmp_path / DEFAULT_DATA_FILENAME

    env = {"MEMORY_GROVE_DATA_DIR": str(tmp_path)}
    assert resolve_data_file_path(env=env) == tmp_path / TRACKER_FOLDER_NAME / DEFAULT_DATA_FILENAME

    tracker_dir = tmp_path / TRACKER_FOLDER_NAME
    env = {"MEMORY_GROVE_DATA_DIR": str(tracker_dir)}
    assert resolve_data_file_path(env=env) == tracker_dir / DEFAULT_DATA_FILENAME
