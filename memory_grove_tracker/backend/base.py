from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol, Sequence

from memory_grove_tracker.events import SubscriptionStatus
from memory_grove_tracker.models import SortKey

Row = dict[str, Any]
ChangeHandler = Callable[[Mapping[str, Any]], None]
StatusHandler = Callable[[SubscriptionStatus], None]


class BackendError(RuntimeError):
    """Raised when a remote collection operation fails or is rejected."""


class BackendTimeout(BackendError):
    """Raised when the backend did not answer in time."""


class CollectionBackend(Protocol):
    """Remote procedure calls offered per table by the hosted database."""

    def fetch_all(self, table: str, order: Sequence[SortKey] = ()) -> list[Row]:
        """Return every row of ``table`` sorted by ``order``."""

    def insert(self, table: str, values: Mapping[str, Any]) -> Row:
        """Insert one row and return it as stored, including its new id."""

    def insert_many(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        """Insert several rows in one call and return them as stored."""

    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> None:
        """Apply a partial update to the row with ``record_id``."""

    def delete(self, table: str, record_id: str) -> None:
        """Remove the row with ``record_id``."""


class Subscription(Protocol):
    """Open change feed for a single table."""

    table: str

    def pump(self) -> int:
        """Deliver pending notifications to the handlers and return how many were delivered."""

    def unsubscribe(self) -> None:
        """Close the feed; later pumps deliver nothing."""


class ChangeFeed(Protocol):
    """Source of change notifications.

    ``coalesces`` is true when one notification can merge several writes to the
    same row, so an echo of a local write may also carry changes made elsewhere.
    """

    coalesces: bool

    def subscribe(self, table: str, *, on_change: ChangeHandler, on_status: StatusHandler) -> Subscription:
        """Open a subscription delivering raw change payloads for ``table``."""


__all__ = [
    "BackendError",
    "BackendTimeout",
    "ChangeFeed",
    "ChangeHandler",
    "CollectionBackend",
    "Row",
    "StatusHandler",
    "Subscription",
]
