from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from memory_grove_tracker.constants import LAUNCH_WEEKS
from memory_grove_tracker.models import Task

UNASSIGNED_DAY = "Unassigned"

WEEK_TITLES: Dict[int, str] = {
    1: "Week 1: Foundation & Legal Setup",
    2: "Week 2: Product Development & Marketing",
    3: "Week 3: Launch Preparation",
    4: "Week 4: Launch & Scale",
}

TaskGroups = Dict[int, Dict[str, List[Task]]]


@dataclass(frozen=True)
class WeekProgress:
    week: int
    completed: int
    total: int

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 0
        return round(self.completed / self.total * 100)


def week_title(week: int) -> str:
    return WEEK_TITLES.get(week, f"Week {week}")


def first_day_label(week: int) -> str:
    """Day group a week's first task lands in, e.g. ``Day 8-9`` for week 2."""

    start = (week - 1) * 7 + 1
    return f"Day {start}-{start + 1}"


def filter_tasks(tasks: Iterable[Task], query: str) -> List[Task]:
    needle = query.strip().lower()
    if not needle:
        return list(tasks)
    return [
        task
        for task in tasks
        if needle in task.task.lower()
        or (task.notes and needle in task.notes.lower())
        or needle in task.priority.value
        or needle in task.status.value
    ]


def group_tasks(tasks: Iterable[Task]) -> TaskGroups:
    """Group tasks week -> day -> tasks, keeping the first-seen order of days.

    Tasks inside a day are ordered by position; ties keep their list order.
    """

    groups: TaskGroups = {}
    for task in tasks:
        week = task.week or 0
        day = task.day or UNASSIGNED_DAY
        groups.setdefault(week, {}).setdefault(day, []).append(task)

    for days in groups.values():
        for day, members in days.items():
            days[day] = sorted(members, key=lambda task: task.position or 0)
    return groups


def week_progress(groups: TaskGroups, week: int) -> WeekProgress:
    members = [task for day_tasks in groups.get(week, {}).values() for task in day_tasks]
    return WeekProgress(
        week=week,
        completed=sum(1 for task in members if task.completed),
        total=len(members),
    )


def launch_weeks() -> Sequence[int]:
    return tuple(range(1, LAUNCH_WEEKS + 1))


def day_options(tasks: Iterable[Task]) -> List[tuple[int, str]]:
    """Every (week, day) group currently in use plus each launch week's first day."""

    options = {(task.week, task.day) for task in tasks if task.week and task.day}
    options.update((week, first_day_label(week)) for week in launch_weeks())
    return sorted(options)


__all__ = [
    "TaskGroups",
    "UNASSIGNED_DAY",
    "WEEK_TITLES",
    "WeekProgress",
    "day_options",
    "filter_tasks",
    "first_day_label",
    "group_tasks",
    "launch_weeks",
    "week_progress",
    "week_title",
]
