from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Union

from pydantic import ValidationError

from memory_grove_tracker.models import Record, get_table_spec


class ChangeEventError(ValueError):
    """Raised when a change notification cannot be decoded for its table."""


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class SubscriptionStatus(str, Enum):
    """Connection states reported by a change feed subscription."""

    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class InsertEvent:
    table: str
    record: Record

    @property
    def record_id(self) -> str:
        return self.record.id


@dataclass(frozen=True)
class UpdateEvent:
    table: str
    record: Record

    @property
    def record_id(self) -> str:
        return self.record.id


@dataclass(frozen=True)
class DeleteEvent:
    table: str
    record_id: str


ChangeEvent = Union[InsertEvent, UpdateEvent, DeleteEvent]


def change_payload(
    kind: ChangeKind,
    table: str,
    *,
    new: Mapping[str, Any] | None = None,
    old: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a raw notification in the shape the hosted change feed emits."""

    return {
        "eventType": kind.value,
        "table": table,
        "new": dict(new or {}),
        "old": dict(old or {}),
    }


def decode_change_event(payload: Mapping[str, Any]) -> ChangeEvent:
    """Validate a raw notification and turn it into a typed event for its table."""

    raw_kind = payload.get("eventType") or payload.get("type")
    try:
        kind = ChangeKind(str(raw_kind).upper())
    except ValueError as exc:
        raise ChangeEventError(f"Unsupported change kind: {raw_kind!r}") from exc

    table = payload.get("table")
    if not isinstance(table, str):
        raise ChangeEventError("Change notification without table name.")
    try:
        spec = get_table_spec(table)
    except KeyError as exc:
        raise ChangeEventError(str(exc)) from exc

    if kind is ChangeKind.DELETE:
        old = payload.get("old") or payload.get("old_record") or {}
        record_id = old.get("id") if isinstance(old, Mapping) else None
        if record_id in (None, ""):
            raise ChangeEventError(f"Delete notification for {table} without id.")
        return DeleteEvent(table=table, record_id=str(record_id))

    new = payload.get("new") or payload.get("record")
    if not isinstance(new, Mapping):
        raise ChangeEventError(f"{kind.value} notification for {table} without record.")
    try:
        record = spec.parse(new)
    except ValidationError as exc:
        raise ChangeEventError(f"Invalid {table} record in {kind.value} notification: {exc}") from exc

    if kind is ChangeKind.INSERT:
        return InsertEvent(table=table, record=record)
    return UpdateEvent(table=table, record=record)


__all__ = [
    "ChangeEvent",
    "ChangeEventError",
    "ChangeKind",
    "DeleteEvent",
    "InsertEvent",
    "SubscriptionStatus",
    "UpdateEvent",
    "change_payload",
    "decode_change_event",
]
