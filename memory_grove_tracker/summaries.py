from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from memory_grove_tracker.constants import ASSUMED_ORDER_VALUE, TOTAL_BUDGET
from memory_grove_tracker.models import (
    BudgetItem,
    CampaignType,
    Contact,
    DailyMetric,
    InventoryItem,
    MarketingCampaign,
    Partnership,
    PartnershipStatus,
    Task,
)


@dataclass(frozen=True)
class BudgetTotals:
    budgeted: float
    actual: float
    total_budget: float = TOTAL_BUDGET

    @property
    def remaining(self) -> float:
        return self.total_budget - self.actual

    @property
    def percent_used(self) -> float:
        if self.total_budget <= 0:
            return 0.0
        return round(self.actual / self.total_budget * 100, 1)


def budget_totals(items: Iterable[BudgetItem], *, total_budget: float = TOTAL_BUDGET) -> BudgetTotals:
    budgeted = 0.0
    actual = 0.0
    for item in items:
        budgeted += item.budgeted or 0.0
        actual += item.actual or 0.0
    return BudgetTotals(budgeted=budgeted, actual=actual, total_budget=total_budget)


def budget_variance(item: BudgetItem) -> float:
    return (item.budgeted or 0.0) - (item.actual or 0.0)


def budget_item_usage(item: BudgetItem) -> float:
    """Share of the line's budget already spent, capped at 100."""

    if item.budgeted <= 0:
        return 0.0
    return min(item.actual / item.budgeted * 100, 100.0)


@dataclass(frozen=True)
class InventorySummary:
    total_units: int
    total_value: float
    on_order: int
    below_reorder: int


def needs_reorder(item: InventoryItem) -> bool:
    return item.in_stock <= item.reorder_point


def inventory_summary(items: Iterable[InventoryItem]) -> InventorySummary:
    total_units = 0
    total_value = 0.0
    on_order = 0
    below_reorder = 0
    for item in items:
        total_units += item.in_stock
        total_value += item.in_stock * (item.unit_cost or 0.0)
        on_order += item.on_order
        if needs_reorder(item):
            below_reorder += 1
    return InventorySummary(
        total_units=total_units,
        total_value=total_value,
        on_order=on_order,
        below_reorder=below_reorder,
    )


@dataclass(frozen=True)
class MetricsAggregate:
    revenue: float = 0.0
    units: int = 0
    visitors: int = 0
    conversions: int = 0
    email_signups: int = 0

    @property
    def conversion_rate(self) -> float:
        if self.visitors <= 0:
            return 0.0
        return round(self.conversions / self.visitors * 100, 2)

    @property
    def average_order_value(self) -> float:
        if self.units <= 0:
            return 0.0
        return round(self.revenue / self.units, 2)


def aggregate_metrics(metrics: Iterable[DailyMetric]) -> MetricsAggregate:
    revenue = 0.0
    units = visitors = conversions = signups = 0
    for metric in metrics:
        revenue += metric.revenue
        units += metric.units_sold
        visitors += metric.website_visitors
        conversions += metric.conversions
        signups += metric.email_signups
    return MetricsAggregate(
        revenue=revenue,
        units=units,
        visitors=visitors,
        conversions=conversions,
        email_signups=signups,
    )


def metric_exists_for(metrics: Iterable[DailyMetric], day: date) -> bool:
    return any(metric.date == day for metric in metrics)


@dataclass(frozen=True)
class ScorecardEntry:
    label: str
    value: float
    target: float
    prefix: str = ""
    suffix: str = ""

    @property
    def percent_of_target(self) -> float:
        if self.target <= 0:
            return 0.0
        return round(self.value / self.target * 100, 1)

    @property
    def exceeded(self) -> bool:
        return self.value > self.target


def task_completion(tasks: Sequence[Task]) -> Tuple[int, int, float]:
    completed = sum(1 for task in tasks if task.completed)
    total = len(tasks)
    rate = round(completed / total * 100, 1) if total else 0.0
    return completed, total, rate


def launch_scorecard(
    metrics: Sequence[DailyMetric],
    partnerships: Sequence[Partnership],
    tasks: Sequence[Task],
    contacts: Sequence[Contact],
) -> List[ScorecardEntry]:
    """Launch targets combining the metrics log with the other tabs' data."""

    totals = aggregate_metrics(metrics)
    completed, total, completion_rate = task_completion(tasks)
    signed = sum(1 for partner in partnerships if partner.status is PartnershipStatus.SIGNED)
    active = sum(
        1 for partner in partnerships if partner.status in (PartnershipStatus.ACTIVE, PartnershipStatus.SIGNED)
    )
    return [
        ScorecardEntry("Memory Seed Kits Sold", totals.units, 100),
        ScorecardEntry("Total Revenue", totals.revenue, 5000, prefix="$"),
        ScorecardEntry("Email Subscribers", totals.email_signups, 500),
        ScorecardEntry("Partnerships Signed", signed, 5),
        ScorecardEntry("Task Completion", completion_rate, 80, suffix="%"),
        ScorecardEntry("Total Contacts", len(contacts), 50),
        ScorecardEntry("Conversion Rate", totals.conversion_rate, 2, suffix="%"),
        ScorecardEntry("Avg Order Value", totals.average_order_value, 50, prefix="$"),
        ScorecardEntry("Tasks Completed", completed, total),
        ScorecardEntry("Active Partnerships", active, 10),
    ]


def split_campaigns(
    campaigns: Iterable[MarketingCampaign],
) -> Tuple[List[MarketingCampaign], List[MarketingCampaign]]:
    """Separate social posts from paid campaigns; untyped rows go by their filled fields."""

    social: List[MarketingCampaign] = []
    paid: List[MarketingCampaign] = []
    for campaign in campaigns:
        if campaign.campaign_type is CampaignType.SOCIAL or (
            campaign.campaign_type is None and campaign.content_type
        ):
            social.append(campaign)
        elif campaign.campaign_type is CampaignType.PAID or (
            campaign.campaign_type is None and campaign.campaign_name
        ):
            paid.append(campaign)
    return social, paid


def cost_per_acquisition(campaign: MarketingCampaign) -> Optional[float]:
    if campaign.conversions <= 0:
        return None
    return round(campaign.spend / campaign.conversions, 2)


def return_on_investment(campaign: MarketingCampaign, *, order_value: float = ASSUMED_ORDER_VALUE) -> Optional[float]:
    if campaign.spend <= 0:
        return None
    return round((campaign.conversions * order_value - campaign.spend) / campaign.spend * 100, 1)


def filter_contacts(contacts: Iterable[Contact], term: str) -> List[Contact]:
    needle = term.strip().lower()
    if not needle:
        return list(contacts)
    return [
        contact
        for contact in contacts
        if needle in contact.name.lower()
        or needle in (contact.organization or "").lower()
        or needle in (contact.email or "").lower()
    ]


def partnership_pipeline(partnerships: Iterable[Partnership]) -> List[Tuple[PartnershipStatus, int]]:
    counts = {status: 0 for status in PartnershipStatus}
    for partner in partnerships:
        counts[partner.status] += 1
    return list(counts.items())


__all__ = [
    "BudgetTotals",
    "InventorySummary",
    "MetricsAggregate",
    "ScorecardEntry",
    "aggregate_metrics",
    "budget_item_usage",
    "budget_totals",
    "budget_variance",
    "cost_per_acquisition",
    "filter_contacts",
    "inventory_summary",
    "launch_scorecard",
    "metric_exists_for",
    "needs_reorder",
    "partnership_pipeline",
    "return_on_investment",
    "split_campaigns",
    "task_completion",
]
