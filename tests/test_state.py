from __future__ import annotations

from memory_grove_tracker.config import BackendBundle
from memory_grove_tracker.constants import SS_VIEWS
from memory_grove_tracker.models import BUDGET_ITEMS, CONTACTS
from memory_grove_tracker.state import get_view, reset_views


def _bundle(local_backend) -> BackendBundle:
    return BackendBundle(collections=local_backend, feed=local_backend, mode="local")


def test_get_view_mounts_once_per_session(session_state, local_backend, notifier) -> None:
    bundle = _bundle(local_backend)
    local_backend.insert("budget_items", {"item": "Certificates"})

    first = get_view(BUDGET_ITEMS, bundle, notifier)
    local_backend.insert("budget_items", {"item": "Seed packets"})
    second = get_view(BUDGET_ITEMS, bundle, notifier)

    assert first is second
    assert first.mounted is True
    assert [item.item for item in second.records] == ["Certificates", "Seed packets"]
    assert set(session_state[SS_VIEWS]) == {"budget_items"}


def test_reset_views_disposes_and_remounts(session_state, local_backend, notifier) -> None:
    bundle = _bundle(local_backend)
    old = get_view(CONTACTS, bundle, notifier)

    reset_views()
    new = get_view(CONTACTS, bundle, notifier)

    assert old.store.disposed is True
    assert new is not old
    assert new.mounted is True


def test_sessions_have_independent_views(monkeypatch, local_backend, notifier) -> None:
    import streamlit as st

    bundle = _bundle(local_backend)
    first_session: dict[str, object] = {}
    second_session: dict[str, object] = {}

    monkeypatch.setattr(st, "session_state", first_session, raising=False)
    first = get_view(CONTACTS, bundle, notifier)
    monkeypatch.setattr(st, "session_state", second_session, raising=False)
    second = get_view(CONTACTS, bundle, notifier)

    created = first.store.create()
    second.refresh()

    assert first is not second
    assert second.store.get(created.id) is not None
