from __future__ import annotations

import json
import logging
import os
import threading
import weakref
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence
from uuid import uuid4

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from memory_grove_tracker.backend.base import BackendError, ChangeHandler, Row, StatusHandler
from memory_grove_tracker.constants import TABLE_DAILY_METRICS, TABLE_INVENTORY_ITEMS
from memory_grove_tracker.events import ChangeKind, SubscriptionStatus, change_payload
from memory_grove_tracker.models import TABLE_SPECS, SortKey

LOGGER = logging.getLogger(__name__)

DEFAULT_DATA_FILENAME = "memory_grove_data.json"
TRACKER_FOLDER_NAME = "MemoryGroveTracker"
DATA_DIR_VARIABLE = "MEMORY_GROVE_DATA_DIR"

UNIQUE_COLUMNS: Mapping[str, tuple[str, ...]] = {TABLE_DAILY_METRICS: ("date",)}
DEFAULT_INVENTORY: tuple[dict[str, Any], ...] = (
    {"component": "Certificates", "reorder_point": 25},
    {"component": "Seed Packets", "reorder_point": 25},
    {"component": "Gift Boxes", "reorder_point": 25},
    {"component": "QR Code Stickers", "reorder_point": 100},
)


def _tracker_directory(candidate_root: Path) -> Path:
    if candidate_root.name.lower() == TRACKER_FOLDER_NAME.lower():
        return candidate_root
    return candidate_root / TRACKER_FOLDER_NAME


def resolve_data_file_path(path: str | Path | None = None, *, env: Mapping[str, str] | None = None) -> Path:
    """Resolve where the local backend keeps its tables."""

    if path is not None:
        explicit_path = Path(path).expanduser()
        if explicit_path.is_dir():
            return explicit_path / DEFAULT_DATA_FILENAME
        return explicit_path

    env_map: Mapping[str, str] = env if env is not None else os.environ
    raw_value = env_map.get(DATA_DIR_VARIABLE)
    if raw_value:
        return _tracker_directory(Path(raw_value).expanduser()) / DEFAULT_DATA_FILENAME

    return Path(".data") / TRACKER_FOLDER_NAME / DEFAULT_DATA_FILENAME


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def sort_rows(rows: Sequence[Row], order: Sequence[SortKey]) -> list[Row]:
    """Sort like ``ORDER BY``: nulls last when ascending, first when descending."""

    ordered = list(rows)
    for key in reversed(order):
        present = [row for row in ordered if row.get(key.column) is not None]
        missing = [row for row in ordered if row.get(key.column) is None]
        present.sort(key=lambda row: row[key.column], reverse=not key.ascending)
        ordered = present + missing if key.ascending else missing + present
    return ordered


class LocalSubscription:
    """Queued change feed for one table of a :class:`LocalBackend`."""

    def __init__(
        self,
        backend: "LocalBackend",
        table: str,
        *,
        on_change: ChangeHandler,
        on_status: StatusHandler,
    ) -> None:
        self.table = table
        self._backend = backend
        self._on_change = on_change
        self._on_status = on_status
        self._queue: deque[dict[str, Any]] = deque()
        self._confirmed = False
        self._closed = False

    def enqueue(self, payload: dict[str, Any]) -> None:
        self._queue.append(payload)

    def pump(self) -> int:
        if self._closed:
            return 0

        if not self._confirmed:
            self._confirmed = True
            self._on_status(SubscriptionStatus.SUBSCRIBED)

        with self._backend.lock:
            batch = list(self._queue)
            self._queue.clear()

        for payload in batch:
            self._on_change(payload)
        return len(batch)

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.clear()
        self._backend.detach(self)
        self._on_status(SubscriptionStatus.CLOSED)


class LocalBackend:
    """In-process stand-in for the hosted database, optionally persisted to a JSON file.

    Every write is validated against the table's model (like column constraints),
    stamped with ``id``/``created_at``/``updated_at`` and broadcast to the open
    subscriptions of that table, so several sessions sharing one backend see each
    other's changes.
    """

    coalesces = False

    def __init__(self, path: str | Path | None = None, *, persist: bool = False) -> None:
        self.lock = threading.RLock()
        self.path = resolve_data_file_path(path) if persist or path is not None else None
        self._tables: dict[str, dict[str, Row]] = {name: {} for name in TABLE_SPECS}
        # Sessions that end without unsubscribing drop out once collected.
        self._subscriptions: weakref.WeakSet[LocalSubscription] = weakref.WeakSet()
        self._last_fingerprint: str | None = None
        self.created_fresh = True
        if self.path is not None:
            self._load(self.path)

    def _load(self, path: Path) -> None:
        if not path.exists():
            return

        with path.open("r", encoding="utf-8") as file_handle:
            stored = json.load(file_handle)

        self.created_fresh = False
        if not isinstance(stored, Mapping):
            LOGGER.warning("Ignoring malformed data file %s", path)
            return
        for table, rows in stored.items():
            if table not in self._tables or not isinstance(rows, list):
                continue
            self._tables[table] = {str(row["id"]): dict(row) for row in rows if isinstance(row, Mapping)}

    def _save(self) -> None:
        if self.path is None:
            return

        snapshot = {table: list(rows.values()) for table, rows in self._tables.items()}
        serialized = json.dumps(snapshot, default=to_jsonable_python, ensure_ascii=False, sort_keys=True)
        if serialized == self._last_fingerprint:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as file_handle:
            file_handle.write(serialized)
        self._last_fingerprint = serialized

    def _rows(self, table: str) -> dict[str, Row]:
        try:
            return self._tables[table]
        except KeyError as exc:
            raise BackendError(f"Unknown table: {table}") from exc

    def _validated(self, table: str, row: Mapping[str, Any]) -> Row:
        spec = TABLE_SPECS[table]
        try:
            record = spec.model.model_validate(to_jsonable_python(dict(row)))
        except ValidationError as exc:
            raise BackendError(f"Rejected {table} row: {exc.errors()[0].get('msg', 'invalid value')}") from exc
        return record.model_dump(mode="json")

    def _check_unique(self, table: str, row: Row, staged: Iterable[Row] = ()) -> None:
        for column in UNIQUE_COLUMNS.get(table, ()):
            for existing in (*self._tables[table].values(), *staged):
                if existing["id"] != row["id"] and existing.get(column) == row.get(column):
                    raise BackendError(f"Duplicate value for {table}.{column}: {row.get(column)}")

    def _broadcast(self, table: str, payload: dict[str, Any]) -> None:
        for subscription in list(self._subscriptions):
            if subscription.table == table:
                subscription.enqueue(payload)

    def fetch_all(self, table: str, order: Sequence[SortKey] = ()) -> list[Row]:
        with self.lock:
            rows = [dict(row) for row in self._rows(table).values()]
        return sort_rows(rows, order)

    def insert(self, table: str, values: Mapping[str, Any]) -> Row:
        return self.insert_many(table, [values])[0]

    def insert_many(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        with self.lock:
            existing = self._rows(table)
            staged: list[Row] = []
            for values in rows:
                timestamp = _now()
                candidate = {**values, "id": str(uuid4()), "created_at": timestamp, "updated_at": timestamp}
                row = self._validated(table, candidate)
                self._check_unique(table, row, staged)
                staged.append(row)

            for row in staged:
                existing[row["id"]] = row
                self._broadcast(table, change_payload(ChangeKind.INSERT, table, new=row))
            self._save()
            return [dict(row) for row in staged]

    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> None:
        with self.lock:
            rows = self._rows(table)
            current = rows.get(record_id)
            if current is None:
                return

            merged = {**current, **values, "id": record_id, "updated_at": _now()}
            row = self._validated(table, merged)
            self._check_unique(table, row)
            rows[record_id] = row
            self._broadcast(table, change_payload(ChangeKind.UPDATE, table, new=row, old={"id": record_id}))
            self._save()

    def delete(self, table: str, record_id: str) -> None:
        with self.lock:
            rows = self._rows(table)
            if rows.pop(record_id, None) is None:
                return
            self._broadcast(table, change_payload(ChangeKind.DELETE, table, old={"id": record_id}))
            self._save()

    def subscribe(self, table: str, *, on_change: ChangeHandler, on_status: StatusHandler) -> LocalSubscription:
        with self.lock:
            self._rows(table)
            subscription = LocalSubscription(self, table, on_change=on_change, on_status=on_status)
            self._subscriptions.add(subscription)
        return subscription

    def detach(self, subscription: LocalSubscription) -> None:
        with self.lock:
            self._subscriptions.discard(subscription)

    def subscription_count(self, table: str) -> int:
        with self.lock:
            return sum(1 for subscription in self._subscriptions if subscription.table == table)

    def seed_defaults(self) -> None:
        """Load the starter inventory into an empty store."""

        with self.lock:
            if self._tables[TABLE_INVENTORY_ITEMS]:
                return
        self.insert_many(TABLE_INVENTORY_ITEMS, DEFAULT_INVENTORY)


__all__ = [
    "DEFAULT_DATA_FILENAME",
    "LocalBackend",
    "LocalSubscription",
    "TRACKER_FOLDER_NAME",
    "resolve_data_file_path",
    "sort_rows",
]
