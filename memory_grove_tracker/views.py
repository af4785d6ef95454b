from __future__ import annotations

import logging
import time
from typing import Any, Callable, Generic, TypeVar

from memory_grove_tracker.field_controller import EditableField, FieldBank, FieldKind
from memory_grove_tracker.models import Record
from memory_grove_tracker.sync import CollectionStore

LOGGER = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Record)


class CollectionView(Generic[RecordT]):
    """A collection store together with the editable fields rendered for its records."""

    def __init__(self, store: CollectionStore[RecordT], *, clock: Callable[[], float] = time.monotonic) -> None:
        self.store = store
        self.fields = FieldBank(clock=clock)
        self.mounted = False

    @property
    def records(self) -> list[RecordT]:
        return self.store.records

    def mount(self) -> None:
        if self.mounted:
            return
        self.store.mount()
        self.mounted = True

    def refresh(self) -> int:
        """Run once per rerun: fire due debounced commits, then fold in remote changes."""

        committed = self.fields.flush_due()
        delivered = self.store.sync()
        live_ids = set(self.store.ids())
        self.fields.prune(live_ids)
        for (record_id, name), field in self.fields.items():
            record = self.store.get(record_id)
            if record is not None:
                field.sync(getattr(record, name))
        if committed or delivered:
            LOGGER.debug(
                "Refreshed %s: %s commits, %s notifications", self.store.spec.name, committed, delivered
            )
        return delivered

    def field(
        self,
        record: RecordT,
        name: str,
        *,
        kind: FieldKind = FieldKind.TEXT,
        debounced: bool = False,
    ) -> EditableField:
        record_id = record.id

        def commit(value: Any) -> None:
            self.store.update(record_id, {name: value})

        return self.fields.bind(record_id, name, getattr(record, name), commit, kind=kind, debounced=debounced)

    def dispose(self) -> None:
        self.fields.cancel_all()
        self.store.dispose()
        self.mounted = False


__all__ = ["CollectionView"]
