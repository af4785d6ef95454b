from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from memory_grove_tracker.backend.base import (
    BackendError,
    BackendTimeout,
    ChangeHandler,
    CollectionBackend,
    Row,
    StatusHandler,
)
from memory_grove_tracker.constants import DEFAULT_POLL_SECONDS
from memory_grove_tracker.events import ChangeKind, SubscriptionStatus, change_payload

LOGGER = logging.getLogger(__name__)


def diff_snapshots(table: str, previous: dict[str, Row], current: dict[str, Row]) -> list[dict[str, Any]]:
    """Describe the step from one table snapshot to the next as change notifications."""

    payloads: list[dict[str, Any]] = []
    for record_id, row in current.items():
        before = previous.get(record_id)
        if before is None:
            payloads.append(change_payload(ChangeKind.INSERT, table, new=row))
        elif before != row:
            payloads.append(change_payload(ChangeKind.UPDATE, table, new=row, old={"id": record_id}))

    for record_id in previous:
        if record_id not in current:
            payloads.append(change_payload(ChangeKind.DELETE, table, old={"id": record_id}))
    return payloads


class PollingSubscription:
    """Derives change notifications for one table by refetching it at an interval."""

    def __init__(
        self,
        backend: CollectionBackend,
        table: str,
        *,
        on_change: ChangeHandler,
        on_status: StatusHandler,
        interval: float,
        clock: Callable[[], float],
    ) -> None:
        self.table = table
        self._backend = backend
        self._on_change = on_change
        self._on_status = on_status
        self._interval = interval
        self._clock = clock
        self._snapshot: Optional[dict[str, Row]] = None
        self._last_poll: Optional[float] = None
        self._timed_out = False
        self._closed = False

    def pump(self) -> int:
        if self._closed:
            return 0

        now = self._clock()
        if self._last_poll is not None and now - self._last_poll < self._interval:
            return 0
        self._last_poll = now

        try:
            rows = self._backend.fetch_all(self.table)
        except BackendTimeout as exc:
            LOGGER.warning("Change poll for %s timed out: %s", self.table, exc)
            self._timed_out = True
            self._on_status(SubscriptionStatus.TIMED_OUT)
            return 0
        except BackendError as exc:
            LOGGER.error("Change poll for %s failed, closing feed: %s", self.table, exc)
            self._closed = True
            self._on_status(SubscriptionStatus.CHANNEL_ERROR)
            return 0

        snapshot = {str(row["id"]): row for row in rows}
        previous = self._snapshot
        self._snapshot = snapshot
        if previous is None or self._timed_out:
            self._timed_out = False
            self._on_status(SubscriptionStatus.SUBSCRIBED)
        if previous is None:
            return 0

        payloads = diff_snapshots(self.table, previous, snapshot)
        for payload in payloads:
            self._on_change(payload)
        return len(payloads)

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._snapshot = None
        self._on_status(SubscriptionStatus.CLOSED)


class PollingChangeFeed:
    """Change feed for backends that only offer request/response collection calls."""

    coalesces = True

    def __init__(
        self,
        backend: CollectionBackend,
        *,
        interval: float = DEFAULT_POLL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._backend = backend
        self.interval = max(0.0, interval)
        self._clock = clock

    def subscribe(self, table: str, *, on_change: ChangeHandler, on_status: StatusHandler) -> PollingSubscription:
        return PollingSubscription(
            self._backend,
            table,
            on_change=on_change,
            on_status=on_status,
            interval=self.interval,
            clock=self._clock,
        )


__all__ = ["PollingChangeFeed", "PollingSubscription", "diff_snapshots"]
