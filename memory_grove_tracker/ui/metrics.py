from __future__ import annotations

from datetime import date

import streamlit as st
from streamlit.delta_generator import DeltaGenerator

from memory_grove_tracker.charts import (
    build_conversion_funnel_figure,
    build_revenue_trend_figure,
    build_units_sold_figure,
)
from memory_grove_tracker.config import BackendBundle
from memory_grove_tracker.field_controller import FieldKind
from memory_grove_tracker.models import CONTACTS, DAILY_METRICS, PARTNERSHIPS, TASKS, DailyMetric
from memory_grove_tracker.state import get_view
from memory_grove_tracker.summaries import (
    ScorecardEntry,
    aggregate_metrics,
    launch_scorecard,
    metric_exists_for,
)
from memory_grove_tracker.sync import Notifier
from memory_grove_tracker.ui.common import (
    bound_date_input,
    connection_badge,
    delete_button,
    editable_input,
    metric_value,
)
from memory_grove_tracker.views import CollectionView

METRIC_FIELDS = (
    ("revenue", "Revenue", FieldKind.NUMBER),
    ("units_sold", "Units sold", FieldKind.INTEGER),
    ("website_visitors", "Visitors", FieldKind.INTEGER),
    ("conversions", "Conversions", FieldKind.INTEGER),
    ("email_signups", "Email signups", FieldKind.INTEGER),
)


def add_todays_metrics(view: CollectionView[DailyMetric], notifier: Notifier, *, today: date | None = None) -> bool:
    """Create today's metric entry unless one is already logged."""

    day = today or date.today()
    if metric_exists_for(view.records, day):
        notifier.error("Today's metrics already exist!")
        return False
    return view.store.create(today=day) is not None


def _render_card(column: DeltaGenerator, entry: ScorecardEntry) -> None:
    decimals = 2 if entry.prefix == "$" or entry.suffix == "%" else 0
    column.metric(
        entry.label,
        metric_value(entry.value, prefix=entry.prefix, suffix=entry.suffix, decimals=decimals),
        f"{entry.percent_of_target}% of target",
        delta_color="normal" if entry.exceeded else "off",
    )
    column.caption(f"Target: {metric_value(entry.target, prefix=entry.prefix, suffix=entry.suffix)}")


def _render_entry(view: CollectionView[DailyMetric], metric: DailyMetric) -> None:
    with st.container(border=True):
        columns = st.columns([0.16, 0.15, 0.15, 0.15, 0.15, 0.15, 0.09])
        with columns[0]:
            bound_date_input(view, metric, "date", "Date")
        for column, (name, label, kind) in zip(columns[1:6], METRIC_FIELDS):
            with column:
                minimum = 0.0 if kind is FieldKind.NUMBER else 0
                editable_input(view, metric, name, label, kind=kind, min_value=minimum)
        with columns[6]:
            delete_button(view, metric, label="✕")


def render_metrics_tab(bundle: BackendBundle, notifier: Notifier) -> None:
    view: CollectionView[DailyMetric] = get_view(DAILY_METRICS, bundle, notifier)
    partnerships = get_view(PARTNERSHIPS, bundle, notifier).records
    tasks = get_view(TASKS, bundle, notifier).records
    contacts = get_view(CONTACTS, bundle, notifier).records

    title, action, status = st.columns([0.6, 0.2, 0.2])
    title.subheader("Launch Metrics")
    if action.button("+ Add Today's Metrics", key="metrics_add_today"):
        if add_todays_metrics(view, notifier):
            st.rerun()
    with status:
        connection_badge(view)

    scorecard = launch_scorecard(view.records, partnerships, tasks, contacts)
    for row_start in range(0, len(scorecard), 5):
        entries = scorecard[row_start : row_start + 5]
        for column, entry in zip(st.columns(len(entries)), entries):
            _render_card(column, entry)

    totals = aggregate_metrics(view.records)
    left, right = st.columns(2)
    left.plotly_chart(build_revenue_trend_figure(view.records), use_container_width=True)
    right.plotly_chart(build_units_sold_figure(view.records), use_container_width=True)
    st.plotly_chart(build_conversion_funnel_figure(totals.visitors, totals.conversions), use_container_width=True)

    st.markdown("#### Daily Log")
    if not view.records:
        st.info("No metrics logged yet.")
    for metric in reversed(view.records):
        _render_entry(view, metric)


__all__ = ["add_todays_metrics", "render_metrics_tab"]
