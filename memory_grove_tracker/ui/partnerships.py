from __future__ import annotations

import streamlit as st

from memory_grove_tracker.config import BackendBundle
from memory_grove_tracker.models import PARTNERSHIP_TYPES, PARTNERSHIPS, Partnership, PartnershipStatus
from memory_grove_tracker.state import get_view
from memory_grove_tracker.summaries import partnership_pipeline
from memory_grove_tracker.sync import Notifier
from memory_grove_tracker.ui.common import bound_selectbox, connection_badge, delete_button, editable_input
from memory_grove_tracker.views import CollectionView


def _render_partnership(view: CollectionView[Partnership], partner: Partnership) -> None:
    with st.container(border=True):
        top = st.columns([0.3, 0.2, 0.2, 0.24, 0.06])
        with top[0]:
            editable_input(view, partner, "organization", "Organization")
        with top[1]:
            bound_selectbox(view, partner, "type", "Type", PARTNERSHIP_TYPES)
        with top[2]:
            bound_selectbox(
                view,
                partner,
                "status",
                "Status",
                [status.value for status in PartnershipStatus],
                format_func=lambda value: PartnershipStatus(value).label,
            )
        with top[3]:
            editable_input(view, partner, "contact_name", "Contact", placeholder="Contact name")
        with top[4]:
            delete_button(view, partner, label="✕")

        bottom = st.columns([0.4, 0.2, 0.4])
        with bottom[0]:
            editable_input(view, partner, "next_action", "Next action", placeholder="Next action")
        with bottom[1]:
            editable_input(view, partner, "revenue_share", "Revenue share", placeholder="Revenue share")
        with bottom[2]:
            editable_input(view, partner, "notes", "Notes", placeholder="Notes")


def render_partnerships_tab(bundle: BackendBundle, notifier: Notifier) -> None:
    view: CollectionView[Partnership] = get_view(PARTNERSHIPS, bundle, notifier)

    title, status = st.columns([0.8, 0.2])
    title.subheader("Partnership Pipeline")
    with status:
        connection_badge(view)

    pipeline = partnership_pipeline(view.records)
    columns = st.columns(len(pipeline))
    for column, (stage, count) in zip(columns, pipeline):
        column.metric(stage.label, count)

    if st.button("+ Add Partnership", key="partnership_add"):
        view.store.create()
        st.rerun()

    if not view.records:
        st.info("No partnerships yet. Add your first partner organization.")
    for partner in view.records:
        _render_partnership(view, partner)


__all__ = ["render_partnerships_tab"]
