from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence, TypeVar

from memory_grove_tracker.models import Task
from memory_grove_tracker.sync import CollectionStore

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

REORDER_FAILED_MESSAGE = "Error updating task order"
MOVE_FAILED_MESSAGE = "Error moving task"


class DropKind(str, Enum):
    NOOP = "noop"
    SAME_GROUP = "same_group"
    CROSS_GROUP = "cross_group"


@dataclass(frozen=True)
class DropPlan:
    kind: DropKind
    task_id: Optional[str] = None
    updates: tuple[tuple[str, dict[str, Any]], ...] = field(default_factory=tuple)
    target_day: Optional[str] = None


def move_item(items: Sequence[T], old_index: int, new_index: int) -> list[T]:
    """Return a copy of ``items`` with one element moved to ``new_index``."""

    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


def group_members(tasks: Sequence[Task], week: int, day: str) -> list[Task]:
    members = [task for task in tasks if task.week == week and task.day == day]
    return sorted(members, key=lambda task: task.position or 0)


def dense_position_updates(ordered: Sequence[Task]) -> list[tuple[str, dict[str, Any]]]:
    """Positions ``0..n-1`` in display order, for the tasks whose position changes."""

    return [
        (task.id, {"position": index})
        for index, task in enumerate(ordered)
        if task.position != index
    ]


def _find(tasks: Sequence[Task], task_id: str) -> Optional[Task]:
    return next((task for task in tasks if task.id == task_id), None)


def plan_drop(tasks: Sequence[Task], active_id: str, over_id: Optional[str]) -> DropPlan:
    """Work out the writes for dropping ``active_id`` onto ``over_id``."""

    if over_id is None or active_id == over_id:
        return DropPlan(DropKind.NOOP)

    active = _find(tasks, active_id)
    over = _find(tasks, over_id)
    if active is None or over is None:
        return DropPlan(DropKind.NOOP)

    if (active.week, active.day) == (over.week, over.day):
        members = group_members(tasks, active.week, active.day)
        ids = [task.id for task in members]
        old_index, new_index = ids.index(active_id), ids.index(over_id)
        if old_index == new_index:
            return DropPlan(DropKind.NOOP)
        reordered = move_item(members, old_index, new_index)
        return DropPlan(
            DropKind.SAME_GROUP,
            task_id=active_id,
            updates=tuple(dense_position_updates(reordered)),
        )

    changes = {"week": over.week, "day": over.day, "position": (over.position or 0) + 1}
    return DropPlan(
        DropKind.CROSS_GROUP,
        task_id=active_id,
        updates=((active_id, changes),),
        target_day=over.day,
    )


def plan_shift(tasks: Sequence[Task], task_id: str, offset: int) -> DropPlan:
    """Drop a task onto its neighbour ``offset`` places away within its group."""

    task = _find(tasks, task_id)
    if task is None:
        return DropPlan(DropKind.NOOP)
    members = group_members(tasks, task.week, task.day)
    index = [member.id for member in members].index(task_id)
    target = index + offset
    if target < 0 or target >= len(members):
        return DropPlan(DropKind.NOOP)
    return plan_drop(tasks, task_id, members[target].id)


def plan_move_to_group(tasks: Sequence[Task], task_id: str, week: int, day: str) -> DropPlan:
    """Move a task to the end of another (week, day) group."""

    task = _find(tasks, task_id)
    if task is None or (task.week, task.day) == (week, day):
        return DropPlan(DropKind.NOOP)
    members = group_members(tasks, week, day)
    if members:
        return plan_drop(tasks, task_id, members[-1].id)
    return DropPlan(
        DropKind.CROSS_GROUP,
        task_id=task_id,
        updates=((task_id, {"week": week, "day": day, "position": 0}),),
        target_day=day,
    )


def apply_drop(store: CollectionStore[Task], plan: DropPlan) -> bool:
    """Carry out a planned drop against the task store."""

    if plan.kind is DropKind.NOOP or not plan.updates:
        return True

    if plan.kind is DropKind.SAME_GROUP:
        return store.apply_batch(plan.updates, failure_message=REORDER_FAILED_MESSAGE)

    task_id, changes = plan.updates[0]
    if not store.update(task_id, changes, failure_message=MOVE_FAILED_MESSAGE):
        return False
    store.notifier.success(f"Task moved to {plan.target_day}")
    LOGGER.info("Moved task %s to week %s %s", task_id, changes.get("week"), plan.target_day)
    store.fetch_all()
    return True


__all__ = [
    "DropKind",
    "DropPlan",
    "apply_drop",
    "dense_position_updates",
    "group_members",
    "move_item",
    "plan_drop",
    "plan_move_to_group",
    "plan_shift",
]
