from __future__ import annotations

from typing import Iterator


class PendingSet:
    """Record ids whose local write was dispatched but whose echo has not arrived yet.

    An id enters the set right before its remote write is issued and leaves it
    either when the matching update notification is consumed as an echo or when
    the write fails.
    """

    def __init__(self) -> None:
        self._ids: set[str] = set()

    def mark(self, record_id: str) -> None:
        self._ids.add(record_id)

    def discard(self, record_id: str) -> None:
        self._ids.discard(record_id)

    def consume(self, record_id: str) -> bool:
        """Remove ``record_id`` and report whether it was pending."""

        if record_id in self._ids:
            self._ids.remove(record_id)
            return True
        return False

    def clear(self) -> None:
        self._ids.clear()

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._ids))


__all__ = ["PendingSet"]
