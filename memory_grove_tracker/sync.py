from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Generic, Iterator, Mapping, Optional, Protocol, Sequence, TypeVar

from pydantic import ValidationError

from memory_grove_tracker.backend.base import BackendError, ChangeFeed, CollectionBackend, Row, Subscription
from memory_grove_tracker.events import (
    ChangeEvent,
    ChangeEventError,
    DeleteEvent,
    InsertEvent,
    SubscriptionStatus,
    UpdateEvent,
    decode_change_event,
)
from memory_grove_tracker.models import Record, TableSpec
from memory_grove_tracker.pending import PendingSet

LOGGER = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Record)

CONNECTION_LOST_MESSAGE = "Real-time connection lost. Please refresh the page."
TIMESTAMP_FIELDS = {"created_at", "updated_at"}


class Notifier(Protocol):
    def success(self, message: str) -> None:
        """Show a confirmation to the user."""

    def error(self, message: str) -> None:
        """Show a failure to the user."""


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    TIMED_OUT = "timed_out"
    ERROR = "error"

    @property
    def label(self) -> str:
        labels = {
            ConnectionState.CONNECTING: "Connecting",
            ConnectionState.CONNECTED: "Live",
            ConnectionState.TIMED_OUT: "Reconnecting",
            ConnectionState.ERROR: "Offline",
        }
        return labels[self]


class ReconcileOutcome(str, Enum):
    APPLIED = "applied"
    ECHO = "echo"
    IGNORED = "ignored"


class CollectionStore(Generic[RecordT]):
    """Client-side cache of one backend table kept live by its change feed.

    Local mutations are applied optimistically and written through the backend;
    change notifications are folded back in, except for the echo of an update
    this store dispatched itself, which is recognised through :attr:`pending`.
    """

    def __init__(
        self,
        spec: TableSpec[RecordT],
        backend: CollectionBackend,
        feed: ChangeFeed,
        *,
        notifier: Notifier,
        optimistic: bool = True,
    ) -> None:
        self.spec = spec
        self.backend = backend
        self.feed = feed
        self.notifier = notifier
        self.optimistic = optimistic
        self.records: list[RecordT] = []
        self.pending = PendingSet()
        self.state = ConnectionState.CONNECTING
        self.loaded = False
        self._subscription: Optional[Subscription] = None
        self._connection_error_shown = False
        self._disposed = False

    @property
    def title(self) -> str:
        return self.spec.label[:1].upper() + self.spec.label[1:]

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __iter__(self) -> Iterator[RecordT]:
        return iter(list(self.records))

    def __len__(self) -> int:
        return len(self.records)

    def ids(self) -> list[str]:
        return [record.id for record in self.records]

    def get(self, record_id: str) -> Optional[RecordT]:
        index = self._index_of(record_id)
        return None if index is None else self.records[index]

    def _index_of(self, record_id: str) -> Optional[int]:
        for index, record in enumerate(self.records):
            if record.id == record_id:
                return index
        return None

    def _parse_rows(self, rows: Sequence[Row]) -> list[RecordT]:
        records: list[RecordT] = []
        for row in rows:
            try:
                records.append(self.spec.parse(row))
            except ValidationError as exc:
                LOGGER.warning("Skipping invalid %s row %s: %s", self.spec.name, row.get("id"), exc)
        return records

    def _append(self, record: RecordT) -> bool:
        if self._index_of(record.id) is not None:
            return False
        self.records.append(record)
        return True

    def _patch_local(self, record_id: str, changes: Mapping[str, Any]) -> None:
        index = self._index_of(record_id)
        if index is None:
            return
        try:
            self.records[index] = self.spec.patch(self.records[index], changes)
        except ValidationError as exc:
            LOGGER.warning("Local patch of %s %s rejected: %s", self.spec.name, record_id, exc)

    def mount(self) -> None:
        """Open the change feed, load the collection and drain what arrived meanwhile."""

        if self._disposed:
            return
        if self._subscription is None:
            self._subscription = self.feed.subscribe(
                self.spec.name,
                on_change=self._on_change,
                on_status=self._on_status,
            )
        self.fetch_all()
        self.sync()

    def fetch_all(self) -> bool:
        """Replace the local list with the backend's ordered collection."""

        try:
            rows = self.backend.fetch_all(self.spec.name, self.spec.order)
        except BackendError as exc:
            LOGGER.error("Fetching %s failed: %s", self.spec.name, exc)
            self.notifier.error(f"Error fetching {self.spec.label}s")
            return False

        self.records = self._parse_rows(rows)
        self.loaded = True
        return True

    def create(self, values: Mapping[str, Any] | None = None, **draft_options: Any) -> Optional[RecordT]:
        """Insert a default-valued draft and append the stored record once it returns."""

        draft = {**self.spec.draft(**draft_options), **dict(values or {})}
        try:
            row = self.backend.insert(self.spec.name, draft)
        except BackendError as exc:
            LOGGER.error("Inserting into %s failed: %s", self.spec.name, exc)
            self.notifier.error(f"Error adding {self.spec.label}")
            return None

        created = self._parse_rows([row])
        if not created:
            self.fetch_all()
            return None
        record = created[0]
        self._append(record)
        self.notifier.success(f"{self.title} added!")
        return record

    def create_many(self, rows: Sequence[Mapping[str, Any]]) -> list[RecordT]:
        if not rows:
            return []
        try:
            stored = self.backend.insert_many(self.spec.name, rows)
        except BackendError as exc:
            LOGGER.error("Bulk insert into %s failed: %s", self.spec.name, exc)
            self.notifier.error(f"Error importing {self.spec.label}s: {exc}")
            return []

        records = self._parse_rows(stored)
        for record in records:
            self._append(record)
        self.notifier.success(f"Successfully imported {len(records)} {self.spec.label}s!")
        return records

    def update(
        self,
        record_id: str,
        changes: Mapping[str, Any],
        *,
        failure_message: str | None = None,
    ) -> bool:
        """Patch a record locally, then write the partial change to the backend."""

        values = self.spec.with_derived(changes)
        if self.optimistic:
            self.pending.mark(record_id)
            self._patch_local(record_id, values)

        try:
            self.backend.update(self.spec.name, record_id, values)
        except BackendError as exc:
            self.pending.discard(record_id)
            LOGGER.error("Updating %s %s failed: %s", self.spec.name, record_id, exc)
            self.notifier.error(failure_message or f"Error updating {self.spec.label}")
            self.fetch_all()
            return False
        return True

    def apply_batch(
        self,
        updates: Sequence[tuple[str, Mapping[str, Any]]],
        *,
        failure_message: str,
    ) -> bool:
        """Patch several records locally, then write them one call at a time."""

        batch = [(record_id, self.spec.with_derived(changes)) for record_id, changes in updates]
        for record_id, values in batch:
            self.pending.mark(record_id)
            self._patch_local(record_id, values)

        for position, (record_id, values) in enumerate(batch):
            try:
                self.backend.update(self.spec.name, record_id, values)
            except BackendError as exc:
                for unwritten_id, _ in batch[position:]:
                    self.pending.discard(unwritten_id)
                LOGGER.error("Batch update of %s stopped at %s: %s", self.spec.name, record_id, exc)
                self.notifier.error(failure_message)
                self.fetch_all()
                return False
        return True

    def delete(self, record_id: str) -> bool:
        """Drop a record locally right away, then delete it remotely.

        A failed remote delete triggers a refetch, which brings the record back.
        """

        index = self._index_of(record_id)
        if index is not None:
            del self.records[index]
        self.pending.discard(record_id)

        try:
            self.backend.delete(self.spec.name, record_id)
        except BackendError as exc:
            LOGGER.error("Deleting %s %s failed: %s", self.spec.name, record_id, exc)
            self.notifier.error(f"Error deleting {self.spec.label}")
            self.fetch_all()
            return False

        self.notifier.success(f"{self.title} deleted")
        return True

    def reconcile(self, event: ChangeEvent) -> ReconcileOutcome:
        """Fold one change notification into the local list."""

        if event.table != self.spec.name:
            return ReconcileOutcome.IGNORED

        if isinstance(event, UpdateEvent):
            index = self._index_of(event.record_id)
            if self.pending.consume(event.record_id):
                if index is None or not self._carries_foreign_changes(self.records[index], event.record):
                    return ReconcileOutcome.ECHO
            if index is None:
                return ReconcileOutcome.IGNORED
            self.records[index] = event.record
            return ReconcileOutcome.APPLIED

        if isinstance(event, InsertEvent):
            if self._append(event.record):
                return ReconcileOutcome.APPLIED
            return ReconcileOutcome.IGNORED

        if isinstance(event, DeleteEvent):
            self.pending.discard(event.record_id)
            index = self._index_of(event.record_id)
            if index is None:
                return ReconcileOutcome.IGNORED
            del self.records[index]
            return ReconcileOutcome.APPLIED

        return ReconcileOutcome.IGNORED

    def _carries_foreign_changes(self, local: RecordT, echoed: RecordT) -> bool:
        # A merged notification may hold another client's write next to our own.
        if not getattr(self.feed, "coalesces", False):
            return False
        return local.model_dump(exclude=TIMESTAMP_FIELDS) != echoed.model_dump(exclude=TIMESTAMP_FIELDS)

    def _on_change(self, payload: Mapping[str, Any]) -> None:
        if self._disposed:
            return
        try:
            event = decode_change_event(payload)
        except ChangeEventError as exc:
            LOGGER.warning("Dropping change notification for %s: %s", self.spec.name, exc)
            return
        outcome = self.reconcile(event)
        LOGGER.debug("%s %s on %s: %s", type(event).__name__, event.record_id, self.spec.name, outcome.value)

    def _on_status(self, status: SubscriptionStatus) -> None:
        if self._disposed or self.state is ConnectionState.ERROR:
            return

        if status is SubscriptionStatus.SUBSCRIBED:
            self.state = ConnectionState.CONNECTED
        elif status is SubscriptionStatus.TIMED_OUT:
            LOGGER.warning("Change feed for %s timed out", self.spec.name)
            self.state = ConnectionState.TIMED_OUT
        elif status is SubscriptionStatus.CHANNEL_ERROR:
            LOGGER.error("Change feed for %s reported a channel error", self.spec.name)
            self.state = ConnectionState.ERROR
            if not self._connection_error_shown:
                self._connection_error_shown = True
                self.notifier.error(CONNECTION_LOST_MESSAGE)

    def sync(self) -> int:
        """Deliver change notifications that arrived since the last call."""

        if self._disposed or self._subscription is None or self.state is ConnectionState.ERROR:
            return 0
        return self._subscription.pump()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None


__all__ = [
    "CONNECTION_LOST_MESSAGE",
    "CollectionStore",
    "ConnectionState",
    "Notifier",
    "ReconcileOutcome",
]
