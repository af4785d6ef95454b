from __future__ import annotations

import logging
from typing import Any, Dict

import streamlit as st

from memory_grove_tracker.config import BackendBundle
from memory_grove_tracker.constants import SS_VIEWS
from memory_grove_tracker.models import TableSpec
from memory_grove_tracker.sync import CollectionStore, Notifier
from memory_grove_tracker.views import CollectionView

LOGGER = logging.getLogger(__name__)


def _views() -> Dict[str, CollectionView[Any]]:
    views = st.session_state.get(SS_VIEWS)
    if not isinstance(views, dict):
        views = {}
        st.session_state[SS_VIEWS] = views
    return views


def get_view(spec: TableSpec[Any], bundle: BackendBundle, notifier: Notifier) -> CollectionView[Any]:
    """Return this session's mounted view of ``spec``'s table, refreshed for the current run."""

    views = _views()
    view = views.get(spec.name)
    if view is None or view.store.disposed:
        store: CollectionStore[Any] = CollectionStore(spec, bundle.collections, bundle.feed, notifier=notifier)
        view = CollectionView(store)
        views[spec.name] = view
        LOGGER.debug("Created view for %s", spec.name)
    else:
        view.store.notifier = notifier

    if not view.mounted:
        view.mount()
    else:
        view.refresh()
    return view


def reset_views() -> None:
    """Dispose every view of this session; the next run mounts fresh ones."""

    views = _views()
    for view in views.values():
        view.dispose()
    views.clear()


__all__ = ["get_view", "reset_views"]
