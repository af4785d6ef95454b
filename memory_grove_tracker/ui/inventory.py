from __future__ import annotations

import streamlit as st

from memory_grove_tracker.config import BackendBundle
from memory_grove_tracker.field_controller import FieldKind
from memory_grove_tracker.models import INVENTORY_ITEMS, InventoryItem
from memory_grove_tracker.state import get_view
from memory_grove_tracker.summaries import inventory_summary, needs_reorder
from memory_grove_tracker.sync import Notifier
from memory_grove_tracker.ui.common import (
    bound_date_input,
    connection_badge,
    delete_button,
    editable_input,
    metric_value,
)
from memory_grove_tracker.views import CollectionView


def _render_item(view: CollectionView[InventoryItem], item: InventoryItem) -> None:
    with st.container(border=True):
        top = st.columns([0.22, 0.2, 0.14, 0.14, 0.14, 0.16])
        with top[0]:
            editable_input(view, item, "component", "Component")
        with top[1]:
            editable_input(view, item, "supplier", "Supplier", placeholder="Supplier")
        with top[2]:
            editable_input(view, item, "unit_cost", "Unit cost", kind=FieldKind.NUMBER, min_value=0.0)
        with top[3]:
            editable_input(view, item, "in_stock", "In stock", kind=FieldKind.INTEGER, min_value=0)
        with top[4]:
            editable_input(view, item, "on_order", "On order", kind=FieldKind.INTEGER, min_value=0)
        with top[5]:
            if needs_reorder(item):
                st.error("Reorder needed")
            else:
                st.success("Stock OK")

        bottom = st.columns([0.14, 0.14, 0.16, 0.16, 0.32, 0.08])
        with bottom[0]:
            editable_input(
                view, item, "reorder_point", "Reorder point", kind=FieldKind.INTEGER, min_value=0
            )
        with bottom[1]:
            editable_input(
                view, item, "min_order_quantity", "Min. order", kind=FieldKind.INTEGER, min_value=0
            )
        with bottom[2]:
            editable_input(view, item, "lead_time", "Lead time", placeholder="Lead time")
        with bottom[3]:
            bound_date_input(view, item, "reorder_date", "Reorder date")
        with bottom[4]:
            editable_input(view, item, "notes", "Notes", placeholder="Notes")
        with bottom[5]:
            delete_button(view, item, label="✕")


def render_inventory_tab(bundle: BackendBundle, notifier: Notifier) -> None:
    view: CollectionView[InventoryItem] = get_view(INVENTORY_ITEMS, bundle, notifier)

    title, status = st.columns([0.8, 0.2])
    title.subheader("Inventory")
    with status:
        connection_badge(view)

    summary = inventory_summary(view.records)
    columns = st.columns(4)
    columns[0].metric("Total Units", summary.total_units)
    columns[1].metric("Inventory Value", metric_value(summary.total_value, prefix="$", decimals=2))
    columns[2].metric("On Order", summary.on_order)
    columns[3].metric("Below Reorder Point", summary.below_reorder)

    if st.button("+ Add Component", key="inventory_add"):
        view.store.create()
        st.rerun()

    for item in view.records:
        _render_item(view, item)


__all__ = ["render_inventory_tab"]
