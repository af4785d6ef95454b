from __future__ import annotations

import streamlit as st

from memory_grove_tracker.config import BackendBundle
from memory_grove_tracker.constants import SS_CONTACT_SEARCH
from memory_grove_tracker.csv_io import contacts_export_filename, export_contacts_csv
from memory_grove_tracker.models import CONTACTS, Contact
from memory_grove_tracker.state import get_view
from memory_grove_tracker.summaries import filter_contacts
from memory_grove_tracker.sync import Notifier
from memory_grove_tracker.ui.common import bound_date_input, connection_badge, delete_button, editable_input
from memory_grove_tracker.views import CollectionView


def _render_contact(view: CollectionView[Contact], contact: Contact) -> None:
    with st.container(border=True):
        top = st.columns([0.22, 0.22, 0.16, 0.22, 0.18])
        with top[0]:
            editable_input(view, contact, "name", "Name")
        with top[1]:
            editable_input(view, contact, "organization", "Organization", placeholder="Organization")
        with top[2]:
            editable_input(view, contact, "role", "Role", placeholder="Role")
        with top[3]:
            editable_input(view, contact, "email", "Email", placeholder="Email")
        with top[4]:
            editable_input(view, contact, "phone", "Phone", placeholder="Phone")

        bottom = st.columns([0.2, 0.7, 0.1])
        with bottom[0]:
            bound_date_input(view, contact, "last_contact", "Last contact")
        with bottom[1]:
            editable_input(view, contact, "notes", "Notes", placeholder="Notes")
        with bottom[2]:
            delete_button(view, contact, label="✕")


def render_contacts_tab(bundle: BackendBundle, notifier: Notifier) -> None:
    view: CollectionView[Contact] = get_view(CONTACTS, bundle, notifier)

    title, status = st.columns([0.8, 0.2])
    title.subheader("Contacts")
    with status:
        connection_badge(view)

    search, export, add = st.columns([0.6, 0.2, 0.2])
    term = search.text_input(
        "Search contacts",
        key=SS_CONTACT_SEARCH,
        placeholder="Search by name, organization or email",
        label_visibility="collapsed",
    )
    visible = filter_contacts(view.records, term)
    export.download_button(
        "Export CSV",
        data=export_contacts_csv(visible),
        file_name=contacts_export_filename(),
        mime="text/csv",
        on_click=notifier.success,
        args=("Contacts exported!",),
        disabled=not visible,
    )
    if add.button("+ Add Contact", key="contact_add"):
        view.store.create()
        st.rerun()

    st.caption(f"{len(visible)} of {len(view.records)} contacts")
    for contact in visible:
        _render_contact(view, contact)


__all__ = ["render_contacts_tab"]
