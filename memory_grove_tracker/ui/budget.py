from __future__ import annotations

import streamlit as st

from memory_grove_tracker.charts import build_budget_comparison_figure
from memory_grove_tracker.config import BackendBundle
from memory_grove_tracker.field_controller import FieldKind
from memory_grove_tracker.models import BUDGET_ITEMS, BudgetItem
from memory_grove_tracker.state import get_view
from memory_grove_tracker.summaries import budget_item_usage, budget_totals, budget_variance
from memory_grove_tracker.sync import Notifier
from memory_grove_tracker.ui.common import (
    bound_date_input,
    connection_badge,
    delete_button,
    editable_input,
    metric_value,
)
from memory_grove_tracker.views import CollectionView


def _render_item(view: CollectionView[BudgetItem], item: BudgetItem) -> None:
    with st.container(border=True):
        columns = st.columns([0.16, 0.24, 0.14, 0.14, 0.14, 0.12, 0.06])
        with columns[0]:
            editable_input(view, item, "category", "Category")
        with columns[1]:
            editable_input(view, item, "item", "Item")
        with columns[2]:
            editable_input(view, item, "budgeted", "Budgeted", kind=FieldKind.NUMBER, min_value=0.0)
        with columns[3]:
            editable_input(view, item, "actual", "Actual", kind=FieldKind.NUMBER, min_value=0.0)
        with columns[4]:
            bound_date_input(view, item, "date", "Date")
        with columns[5]:
            variance = budget_variance(item)
            color = "#15803D" if variance >= 0 else "#DC2626"
            st.markdown(f"<b style='color:{color}'>${variance:,.2f}</b>", unsafe_allow_html=True)
            st.progress(budget_item_usage(item) / 100)
        with columns[6]:
            delete_button(view, item, label="✕")
        editable_input(view, item, "notes", "Notes", placeholder="Notes")


def render_budget_tab(bundle: BackendBundle, notifier: Notifier) -> None:
    view: CollectionView[BudgetItem] = get_view(BUDGET_ITEMS, bundle, notifier)

    title, status = st.columns([0.8, 0.2])
    title.subheader("Budget Tracker")
    with status:
        connection_badge(view)

    totals = budget_totals(view.records)
    columns = st.columns(4)
    columns[0].metric("Total Budget", metric_value(totals.total_budget, prefix="$"))
    columns[1].metric("Total Spent", metric_value(totals.actual, prefix="$", decimals=2))
    columns[2].metric("Remaining", metric_value(totals.remaining, prefix="$", decimals=2))
    columns[3].metric("Budget Used", f"{totals.percent_used}%")
    st.progress(min(totals.percent_used, 100.0) / 100)
    st.caption(f"Allocated across line items: {metric_value(totals.budgeted, prefix='$', decimals=2)}")

    if st.button("+ Add Expense", key="budget_add"):
        view.store.create()
        st.rerun()

    for item in view.records:
        _render_item(view, item)

    if view.records:
        st.plotly_chart(build_budget_comparison_figure(view.records), use_container_width=True)


__all__ = ["render_budget_tab"]
