from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence

import pytest
import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from memory_grove_tracker.backend.base import BackendError  # noqa: E402
from memory_grove_tracker.backend.local import LocalBackend  # noqa: E402
from memory_grove_tracker.models import SortKey  # noqa: E402


class RecordingNotifier:
    def __init__(self) -> None:
        self.successes: list[str] = []
        self.errors: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyBackend:
    """Delegates to a local backend, records calls and fails the operations listed in ``fail_on``."""

    def __init__(self, inner: LocalBackend) -> None:
        self.inner = inner
        self.fail_on: set[str] = set()
        self.calls: list[tuple[str, str, Any]] = []
        self.before_call: Dict[str, Any] = {}

    def _enter(self, operation: str, table: str, payload: Any) -> None:
        self.calls.append((operation, table, payload))
        hook = self.before_call.get(operation)
        if hook is not None:
            hook(table, payload)
        if operation in self.fail_on:
            raise BackendError(f"{operation} rejected")

    def fetch_all(self, table: str, order: Sequence[SortKey] = ()) -> list[dict[str, Any]]:
        self._enter("fetch_all", table, tuple(order))
        return self.inner.fetch_all(table, order)

    def insert(self, table: str, values: Mapping[str, Any]) -> dict[str, Any]:
        self._enter("insert", table, dict(values))
        return self.inner.insert(table, values)

    def insert_many(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
        self._enter("insert_many", table, [dict(row) for row in rows])
        return self.inner.insert_many(table, rows)

    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> None:
        self._enter("update", table, (record_id, dict(values)))
        self.inner.update(table, record_id, values)

    def delete(self, table: str, record_id: str) -> None:
        self._enter("delete", table, record_id)
        self.inner.delete(table, record_id)


@pytest.fixture()
def session_state(monkeypatch: pytest.MonkeyPatch) -> Dict[str, object]:
    state: Dict[str, object] = {}
    monkeypatch.setattr(st, "session_state", state, raising=False)
    return state


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def local_backend() -> LocalBackend:
    return LocalBackend()


@pytest.fixture()
def flaky_backend(local_backend: LocalBackend) -> FlakyBackend:
    return FlakyBackend(local_backend)
