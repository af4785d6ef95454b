from __future__ import annotations

from typing import Sequence

import plotly.graph_objects as go

from memory_grove_tracker.grouping import TaskGroups, launch_weeks, week_progress
from memory_grove_tracker.models import BudgetItem, DailyMetric

PRIMARY_COLOR = "#15803D"
SECONDARY_COLOR = "#3B82F6"
ACCENT_COLOR = "#F59E0B"
FONT_COLOR = "#1F2937"
GRID_COLOR = "#E5E7EB"


def _apply_theme(figure: go.Figure) -> go.Figure:
    figure.update_layout(
        template="plotly_white",
        font=dict(color=FONT_COLOR),
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
        xaxis=dict(gridcolor=GRID_COLOR, zerolinecolor=GRID_COLOR),
        yaxis=dict(gridcolor=GRID_COLOR, zerolinecolor=GRID_COLOR),
    )
    return figure


def _date_labels(metrics: Sequence[DailyMetric]) -> list[str]:
    return [metric.date.strftime("%b %d") for metric in metrics]


def build_revenue_trend_figure(metrics: Sequence[DailyMetric]) -> go.Figure:
    """Filled line of daily revenue in log order."""

    trace = go.Scatter(
        x=_date_labels(metrics),
        y=[metric.revenue for metric in metrics],
        mode="lines+markers",
        fill="tozeroy",
        name="Revenue",
        line=dict(color=PRIMARY_COLOR, width=3),
        hovertemplate="<b>%{x}</b><br>Revenue: $%{y:,.2f}<extra></extra>",
    )
    figure = go.Figure(data=[trace])
    figure.update_layout(
        title_text="Revenue Trend",
        xaxis_title="Date",
        yaxis_title="Revenue ($)",
        margin=dict(t=60, r=10, b=40, l=10),
    )
    figure.update_yaxes(rangemode="tozero")
    _apply_theme(figure)
    return figure


def build_units_sold_figure(metrics: Sequence[DailyMetric]) -> go.Figure:
    bar = go.Bar(
        x=_date_labels(metrics),
        y=[metric.units_sold for metric in metrics],
        name="Units Sold",
        marker_color=SECONDARY_COLOR,
        hovertemplate="<b>%{x}</b><br>Units: %{y}<extra></extra>",
    )
    figure = go.Figure(data=[bar])
    figure.update_layout(
        title_text="Daily Units Sold",
        xaxis_title="Date",
        yaxis_title="Units",
        bargap=0.35,
        margin=dict(t=60, r=10, b=40, l=10),
    )
    figure.update_yaxes(rangemode="tozero")
    _apply_theme(figure)
    return figure


def build_conversion_funnel_figure(visitors: int, conversions: int) -> go.Figure:
    rate = (conversions / visitors * 100) if visitors > 0 else 0.0
    funnel = go.Funnel(
        y=["Visitors", "Conversions"],
        x=[visitors, conversions],
        marker=dict(color=[SECONDARY_COLOR, PRIMARY_COLOR]),
        textinfo="value",
    )
    figure = go.Figure(data=[funnel])
    figure.update_layout(
        title_text=f"Conversion Funnel ({rate:.1f}% conversion)",
        margin=dict(t=60, r=10, b=20, l=10),
    )
    _apply_theme(figure)
    return figure


def build_budget_comparison_figure(items: Sequence[BudgetItem]) -> go.Figure:
    """Budgeted against actual spend per category."""

    categories: dict[str, list[float]] = {}
    for item in items:
        totals = categories.setdefault(item.category or "General", [0.0, 0.0])
        totals[0] += item.budgeted
        totals[1] += item.actual

    names = list(categories)
    figure = go.Figure(
        data=[
            go.Bar(
                x=names,
                y=[categories[name][0] for name in names],
                name="Budgeted",
                marker_color=SECONDARY_COLOR,
            ),
            go.Bar(
                x=names,
                y=[categories[name][1] for name in names],
                name="Actual",
                marker_color=ACCENT_COLOR,
            ),
        ]
    )
    figure.update_layout(
        barmode="group",
        title_text="Budget vs. Actual by Category",
        xaxis_title="Category",
        yaxis_title="Amount ($)",
        margin=dict(t=60, r=10, b=60, l=10),
        showlegend=True,
    )
    figure.update_yaxes(rangemode="tozero")
    _apply_theme(figure)
    return figure


def build_week_progress_figure(groups: TaskGroups) -> go.Figure:
    progress = [week_progress(groups, week) for week in launch_weeks()]
    bar = go.Bar(
        x=[f"Week {entry.week}" for entry in progress],
        y=[entry.percent for entry in progress],
        marker_color=PRIMARY_COLOR,
        text=[f"{entry.completed}/{entry.total}" for entry in progress],
        textposition="outside",
    )
    figure = go.Figure(data=[bar])
    figure.update_layout(
        title_text="Task Completion by Week",
        yaxis_title="Completed (%)",
        margin=dict(t=60, r=10, b=40, l=10),
    )
    figure.update_yaxes(range=[0, 110])
    _apply_theme(figure)
    return figure


__all__ = [
    "build_budget_comparison_figure",
    "build_conversion_funnel_figure",
    "build_revenue_trend_figure",
    "build_units_sold_figure",
    "build_week_progress_figure",
]
