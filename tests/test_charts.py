from __future__ import annotations

from datetime import date

from memory_grove_tracker.charts import (
    build_budget_comparison_figure,
    build_conversion_funnel_figure,
    build_revenue_trend_figure,
    build_units_sold_figure,
    build_week_progress_figure,
)
from memory_grove_tracker.grouping import group_tasks
from memory_grove_tracker.models import BudgetItem, DailyMetric, Task


def _metrics() -> list[DailyMetric]:
    return [
        DailyMetric(id="1", date=date(2025, 3, 1), revenue=120.0, units_sold=3),
        DailyMetric(id="2", date=date(2025, 3, 2), revenue=80.0, units_sold=2),
    ]


def test_revenue_trend_uses_metric_dates() -> None:
    figure = build_revenue_trend_figure(_metrics())

    trace = figure.data[0]
    assert trace.type == "scatter"
    assert list(trace.x) == ["Mar 01", "Mar 02"]
    assert list(trace.y) == [120.0, 80.0]
    assert figure.layout.paper_bgcolor == "rgba(0,0,0,0)"


def test_units_sold_is_bar_chart() -> None:
    figure = build_units_sold_figure(_metrics())

    assert figure.data[0].type == "bar"
    assert list(figure.data[0].y) == [3, 2]


def test_conversion_funnel_title_shows_rate() -> None:
    figure = build_conversion_funnel_figure(200, 5)

    assert figure.data[0].type == "funnel"
    assert figure.layout.title.text == "Conversion Funnel (2.5% conversion)"
    assert build_conversion_funnel_figure(0, 0).layout.title.text == "Conversion Funnel (0.0% conversion)"


def test_budget_comparison_groups_by_category() -> None:
    items = [
        BudgetItem(id="1", category="Packaging", budgeted=300, actual=250),
        BudgetItem(id="2", category="Packaging", budgeted=100, actual=120),
        BudgetItem(id="3", category="Marketing", budgeted=1000, actual=0),
    ]

    figure = build_budget_comparison_figure(items)

    assert figure.layout.barmode == "group"
    assert [trace.name for trace in figure.data] == ["Budgeted", "Actual"]
    assert list(figure.data[0].x) == ["Packaging", "Marketing"]
    assert list(figure.data[0].y) == [400.0, 1000.0]
    assert list(figure.data[1].y) == [370.0, 0.0]


def test_week_progress_covers_all_launch_weeks() -> None:
    groups = group_tasks([Task(id="1", week=1, day="Day 1-2", completed=True), Task(id="2", week=1, day="Day 1-2")])

    figure = build_week_progress_figure(groups)

    assert list(figure.data[0].x) == ["Week 1", "Week 2", "Week 3", "Week 4"]
    assert list(figure.data[0].y) == [50, 0, 0, 0]
    assert list(figure.data[0].text) == ["1/2", "0/0", "0/0", "0/0"]
