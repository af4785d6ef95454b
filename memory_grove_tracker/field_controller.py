from __future__ import annotations

import math
import time
from enum import Enum
from typing import Any, Callable, Collection, Optional

from memory_grove_tracker.constants import DEBOUNCE_SECONDS

CommitCallback = Callable[[Any], Any]


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    INTEGER = "integer"


def coerce_number(value: Any) -> float:
    """Parse user input as a number, falling back to zero."""

    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def coerce_value(value: Any, kind: FieldKind) -> Any:
    if kind is FieldKind.NUMBER:
        return coerce_number(value)
    if kind is FieldKind.INTEGER:
        return int(coerce_number(value))
    if value is None:
        return ""
    return value


class EditableField:
    """Local transient value of one input, committed on blur or after an idle delay.

    While the user is editing, external changes to the authoritative value are
    remembered but not shown: the last local edit wins until the next commit.
    """

    def __init__(
        self,
        initial: Any,
        on_commit: CommitCallback,
        *,
        kind: FieldKind = FieldKind.TEXT,
        debounce: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.on_commit = on_commit
        self.kind = kind
        self.debounce = debounce
        self._clock = clock
        self._authoritative = initial
        self._value = initial
        self._baseline = initial
        self._editing = False
        self._deadline: Optional[float] = None

    @property
    def value(self) -> Any:
        return self._value

    @property
    def authoritative(self) -> Any:
        return self._authoritative

    @property
    def is_editing(self) -> bool:
        return self._editing

    @property
    def commit_due_at(self) -> Optional[float]:
        return self._deadline

    def change(self, value: Any) -> None:
        if not self._editing:
            self._editing = True
            self._baseline = self._value
        self._value = value
        if self.debounce is not None:
            self._deadline = self._clock() + self.debounce

    def blur(self) -> bool:
        self._deadline = None
        return self._commit()

    def poll(self) -> bool:
        """Fire a debounced commit once the idle delay has passed."""

        if self._deadline is None or self._clock() < self._deadline:
            return False
        self._deadline = None
        return self._commit()

    def sync(self, authoritative: Any) -> None:
        self._authoritative = authoritative
        if not self._editing:
            self._value = authoritative

    def cancel(self) -> None:
        self._deadline = None

    def _commit(self) -> bool:
        if not self._editing:
            return False

        self._editing = False
        final = coerce_value(self._value, self.kind)
        if self.kind is not FieldKind.TEXT:
            self._value = final
        if final == coerce_value(self._baseline, self.kind):
            return False

        self.on_commit(final)
        return True


class FieldBank:
    """One :class:`EditableField` per (record id, field name) for a collection view."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._fields: dict[tuple[str, str], EditableField] = {}

    def bind(
        self,
        record_id: str,
        name: str,
        authoritative: Any,
        on_commit: CommitCallback,
        *,
        kind: FieldKind = FieldKind.TEXT,
        debounced: bool = False,
    ) -> EditableField:
        key = (record_id, name)
        field = self._fields.get(key)
        if field is None:
            field = EditableField(
                authoritative,
                on_commit,
                kind=kind,
                debounce=DEBOUNCE_SECONDS if debounced else None,
                clock=self._clock,
            )
            self._fields[key] = field
        else:
            field.on_commit = on_commit
            field.sync(authoritative)
        return field

    def get(self, record_id: str, name: str) -> Optional[EditableField]:
        return self._fields.get((record_id, name))

    def items(self) -> list[tuple[tuple[str, str], EditableField]]:
        return list(self._fields.items())

    def flush_due(self) -> int:
        return sum(1 for field in list(self._fields.values()) if field.poll())

    def prune(self, live_ids: Collection[str]) -> None:
        for key in [key for key in self._fields if key[0] not in live_ids]:
            self._fields.pop(key).cancel()

    def cancel_all(self) -> None:
        for field in self._fields.values():
            field.cancel()
        self._fields.clear()

    def __len__(self) -> int:
        return len(self._fields)


__all__ = ["EditableField", "FieldBank", "FieldKind", "coerce_number", "coerce_value"]
