from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Mapping, NamedTuple, Optional, TypeVar, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from memory_grove_tracker.constants import (
    DEFAULT_REORDER_POINT,
    TABLE_BUDGET_ITEMS,
    TABLE_CONTACTS,
    TABLE_DAILY_METRICS,
    TABLE_INVENTORY_ITEMS,
    TABLE_MARKETING_CAMPAIGNS,
    TABLE_PARTNERSHIPS,
    TABLE_TASKS,
)


class TaskPriority(str, Enum):
    """Priority levels accepted for launch tasks."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class PartnershipStatus(str, Enum):
    """Pipeline stage of a partnership conversation."""

    NOT_CONTACTED = "not_contacted"
    INITIAL_CONTACT = "initial_contact"
    MEETING_SCHEDULED = "meeting_scheduled"
    PROPOSAL_SENT = "proposal_sent"
    NEGOTIATING = "negotiating"
    SIGNED = "signed"
    ACTIVE = "active"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class CampaignType(str, Enum):
    SOCIAL = "social"
    PAID = "paid"


class CampaignStatus(str, Enum):
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"

    @property
    def label(self) -> str:
        return self.value.capitalize()


PARTNERSHIP_TYPES: tuple[str, ...] = ("Funeral Home", "Healthcare", "Investor", "Other")
SOCIAL_PLATFORMS: tuple[str, ...] = ("Instagram", "Facebook", "TikTok", "LinkedIn")
SOCIAL_CONTENT_TYPES: tuple[str, ...] = ("Founder Story", "Product Demo", "Customer Story", "Educational")
PAID_PLATFORMS: tuple[str, ...] = ("Google Ads", "Facebook Ads", "Instagram Ads", "TikTok Ads")


class Record(BaseModel):
    """Base for every row the backend owns: opaque id plus backend timestamps."""

    model_config = ConfigDict(extra="ignore")

    id: str
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults_for_nulls(cls, data: Any) -> Any:
        # Columns may come back NULL (or "" from date inputs); fall back to model defaults.
        if not isinstance(data, Mapping):
            return data

        cleaned = dict(data)
        for name, field in cls.model_fields.items():
            if name not in cleaned or field.is_required():
                continue
            value = cleaned[name]
            if value is None and field.default is not None:
                del cleaned[name]
            elif value == "" and dt.date in get_args(field.annotation):
                cleaned[name] = None
        return cleaned


class Task(Record):
    week: int = 0
    day: str = ""
    task: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    completed: bool = False
    due_date: Optional[dt.date] = None
    notes: Optional[str] = None
    position: int = 0


class BudgetItem(Record):
    category: str = "General"
    item: str = ""
    budgeted: float = 0.0
    actual: float = 0.0
    date: Optional[dt.date] = None
    notes: Optional[str] = None


class Partnership(Record):
    organization: str = ""
    type: str = "Other"
    status: PartnershipStatus = PartnershipStatus.NOT_CONTACTED
    contact_name: Optional[str] = None
    next_action: Optional[str] = None
    revenue_share: Optional[str] = None
    notes: Optional[str] = None


class MarketingCampaign(Record):
    date: Optional[dt.date] = None
    platform: str = ""
    content_type: Optional[str] = None
    caption: Optional[str] = None
    status: CampaignStatus = CampaignStatus.PLANNED
    campaign_name: Optional[str] = None
    campaign_type: Optional[CampaignType] = None
    budget: float = 0.0
    spend: float = 0.0
    conversions: int = 0
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    engagement_metrics: dict[str, Any] = Field(default_factory=dict)


class DailyMetric(Record):
    date: dt.date
    revenue: float = 0.0
    units_sold: int = 0
    website_visitors: int = 0
    conversions: int = 0
    email_signups: int = 0


class Contact(Record):
    name: str = ""
    organization: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    last_contact: Optional[dt.date] = None
    notes: Optional[str] = None


class InventoryItem(Record):
    component: str = ""
    supplier: Optional[str] = None
    unit_cost: float = 0.0
    min_order_quantity: int = 1
    lead_time: Optional[str] = None
    in_stock: int = 0
    on_order: int = 0
    reorder_point: int = DEFAULT_REORDER_POINT
    reorder_date: Optional[dt.date] = None
    notes: Optional[str] = None


RecordT = TypeVar("RecordT", bound=Record)


class SortKey(NamedTuple):
    column: str
    ascending: bool = True


def _today(today: dt.date | None) -> str:
    return (today or dt.date.today()).isoformat()


def task_draft(*, week: int = 1, day: str = "Day 1-2", today: dt.date | None = None) -> dict[str, Any]:
    return {
        "task": "New task",
        "priority": TaskPriority.MEDIUM.value,
        "status": TaskStatus.PENDING.value,
        "completed": False,
        "week": week,
        "day": day,
    }


def budget_item_draft(*, today: dt.date | None = None) -> dict[str, Any]:
    return {"category": "General", "item": "New expense", "budgeted": 0, "actual": 0, "date": _today(today)}


def partnership_draft(*, today: dt.date | None = None) -> dict[str, Any]:
    return {
        "organization": "New Organization",
        "type": "Funeral Home",
        "status": PartnershipStatus.NOT_CONTACTED.value,
    }


def campaign_draft(
    *, campaign_type: CampaignType | str = CampaignType.SOCIAL, today: dt.date | None = None
) -> dict[str, Any]:
    if CampaignType(campaign_type) is CampaignType.SOCIAL:
        return {
            "date": _today(today),
            "platform": "Instagram",
            "content_type": "Founder Story",
            "caption": "",
            "status": CampaignStatus.PLANNED.value,
            "campaign_type": CampaignType.SOCIAL.value,
        }
    return {
        "date": _today(today),
        "campaign_name": "New Campaign",
        "platform": "Google Ads",
        "budget": 0,
        "spend": 0,
        "conversions": 0,
        "campaign_type": CampaignType.PAID.value,
        "status": CampaignStatus.PLANNED.value,
    }


def daily_metric_draft(*, today: dt.date | None = None) -> dict[str, Any]:
    return {
        "date": _today(today),
        "revenue": 0,
        "units_sold": 0,
        "website_visitors": 0,
        "conversions": 0,
        "email_signups": 0,
    }


def contact_draft(*, today: dt.date | None = None) -> dict[str, Any]:
    return {
        "name": "New Contact",
        "organization": "",
        "role": "",
        "email": "",
        "phone": "",
        "last_contact": _today(today),
    }


def inventory_item_draft(*, today: dt.date | None = None) -> dict[str, Any]:
    return {
        "component": "New Component",
        "supplier": "",
        "unit_cost": 0,
        "min_order_quantity": 1,
        "lead_time": "",
        "in_stock": 0,
        "on_order": 0,
        "reorder_point": DEFAULT_REORDER_POINT,
    }


def derive_task_fields(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Keep ``status`` in step with ``completed`` whenever the latter changes."""

    derived = dict(changes)
    if "completed" in derived and derived["completed"] is not None:
        completed = bool(derived["completed"])
        derived["status"] = TaskStatus.COMPLETED.value if completed else TaskStatus.PENDING.value
    return derived


@dataclass(frozen=True)
class TableSpec(Generic[RecordT]):
    """Everything the sync layer needs to know about one backend table."""

    name: str
    model: type[RecordT]
    label: str
    order: tuple[SortKey, ...]
    draft: Callable[..., dict[str, Any]]
    derive: Callable[[Mapping[str, Any]], dict[str, Any]] | None = None

    def parse(self, raw: Mapping[str, Any] | RecordT) -> RecordT:
        if isinstance(raw, self.model):
            return raw
        return self.model.model_validate(raw)

    def with_derived(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        if self.derive is None:
            return dict(changes)
        return self.derive(changes)

    def patch(self, record: RecordT, changes: Mapping[str, Any]) -> RecordT:
        merged = record.model_dump()
        merged.update(changes)
        return self.model.model_validate(merged)


TASKS: TableSpec[Task] = TableSpec(
    name=TABLE_TASKS,
    model=Task,
    label="task",
    order=(SortKey("week"), SortKey("day"), SortKey("position"), SortKey("created_at")),
    draft=task_draft,
    derive=derive_task_fields,
)
BUDGET_ITEMS: TableSpec[BudgetItem] = TableSpec(
    name=TABLE_BUDGET_ITEMS,
    model=BudgetItem,
    label="budget item",
    order=(SortKey("created_at"),),
    draft=budget_item_draft,
)
PARTNERSHIPS: TableSpec[Partnership] = TableSpec(
    name=TABLE_PARTNERSHIPS,
    model=Partnership,
    label="partnership",
    order=(SortKey("created_at", ascending=False),),
    draft=partnership_draft,
)
MARKETING_CAMPAIGNS: TableSpec[MarketingCampaign] = TableSpec(
    name=TABLE_MARKETING_CAMPAIGNS,
    model=MarketingCampaign,
    label="campaign",
    order=(SortKey("date", ascending=False),),
    draft=campaign_draft,
)
DAILY_METRICS: TableSpec[DailyMetric] = TableSpec(
    name=TABLE_DAILY_METRICS,
    model=DailyMetric,
    label="daily metric",
    order=(SortKey("date"),),
    draft=daily_metric_draft,
)
CONTACTS: TableSpec[Contact] = TableSpec(
    name=TABLE_CONTACTS,
    model=Contact,
    label="contact",
    order=(SortKey("name"),),
    draft=contact_draft,
)
INVENTORY_ITEMS: TableSpec[InventoryItem] = TableSpec(
    name=TABLE_INVENTORY_ITEMS,
    model=InventoryItem,
    label="inventory item",
    order=(SortKey("component"),),
    draft=inventory_item_draft,
)

TABLE_SPECS: Mapping[str, TableSpec[Any]] = {
    spec.name: spec
    for spec in (TASKS, BUDGET_ITEMS, PARTNERSHIPS, MARKETING_CAMPAIGNS, DAILY_METRICS, CONTACTS, INVENTORY_ITEMS)
}


def get_table_spec(table: str) -> TableSpec[Any]:
    try:
        return TABLE_SPECS[table]
    except KeyError as exc:
        raise KeyError(f"Unknown table: {table}") from exc


__all__ = [
    "BudgetItem",
    "CampaignStatus",
    "CampaignType",
    "Contact",
    "DailyMetric",
    "InventoryItem",
    "MarketingCampaign",
    "Partnership",
    "PartnershipStatus",
    "Record",
    "SortKey",
    "TableSpec",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TABLE_SPECS",
    "get_table_spec",
]
