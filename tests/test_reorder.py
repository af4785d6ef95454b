from __future__ import annotations

from memory_grove_tracker.models import TASKS, Task
from memory_grove_tracker.reorder import (
    DropKind,
    apply_drop,
    dense_position_updates,
    move_item,
    plan_drop,
    plan_move_to_group,
    plan_shift,
)
from memory_grove_tracker.sync import CollectionStore


def _task(task_id: str, position: int, *, week: int = 1, day: str = "Day 1-2") -> Task:
    return Task(id=task_id, task=f"Task {task_id}", week=week, day=day, position=position)


def test_move_item_returns_new_list() -> None:
    items = ["a", "b", "c", "d"]

    assert move_item(items, 0, 2) == ["b", "c", "a", "d"]
    assert move_item(items, 3, 0) == ["d", "a", "b", "c"]
    assert items == ["a", "b", "c", "d"]


def test_same_group_drop_writes_only_changed_positions() -> None:
    tasks = [_task("a", 0), _task("b", 1), _task("c", 2)]

    plan = plan_drop(tasks, "a", "c")

    assert plan.kind is DropKind.SAME_GROUP
    assert dict(plan.updates) == {"b": {"position": 0}, "c": {"position": 1}, "a": {"position": 2}}


def test_same_group_drop_densifies_gapped_positions() -> None:
    tasks = [_task("a", 0), _task("b", 5), _task("c", 9), _task("d", 12)]

    plan = plan_drop(tasks, "d", "c")

    assert dict(plan.updates) == {"b": {"position": 1}, "d": {"position": 2}, "c": {"position": 3}}


def test_drop_onto_itself_or_nothing_is_noop() -> None:
    tasks = [_task("a", 0), _task("b", 1)]

    assert plan_drop(tasks, "a", "a").kind is DropKind.NOOP
    assert plan_drop(tasks, "a", None).kind is DropKind.NOOP
    assert plan_drop(tasks, "a", "missing").kind is DropKind.NOOP


def test_cross_group_drop_places_after_target() -> None:
    tasks = [_task("a", 0), _task("x", 3, week=2, day="Day 8-9")]

    plan = plan_drop(tasks, "a", "x")

    assert plan.kind is DropKind.CROSS_GROUP
    assert plan.updates == (("a", {"week": 2, "day": "Day 8-9", "position": 4}),)
    assert plan.target_day == "Day 8-9"


def test_shift_respects_group_bounds() -> None:
    tasks = [_task("a", 0), _task("b", 1)]

    assert plan_shift(tasks, "a", -1).kind is DropKind.NOOP
    assert plan_shift(tasks, "b", 1).kind is DropKind.NOOP
    assert dict(plan_shift(tasks, "b", -1).updates) == {"b": {"position": 0}, "a": {"position": 1}}


def test_move_to_empty_group_starts_at_zero() -> None:
    tasks = [_task("a", 4)]

    plan = plan_move_to_group(tasks, "a", 3, "Day 15-16")

    assert plan.updates == (("a", {"week": 3, "day": "Day 15-16", "position": 0}),)
    assert plan_move_to_group(tasks, "a", 1, "Day 1-2").kind is DropKind.NOOP


def test_dense_updates_skip_unchanged() -> None:
    assert dense_position_updates([_task("a", 0), _task("b", 1)]) == []


def _task_store(local_backend, backend, notifier) -> tuple[CollectionStore, list[dict]]:
    rows = [
        local_backend.insert("tasks", {"task": name, "week": 1, "day": "Day 1-2", "position": index})
        for index, name in enumerate(["a", "b", "c"])
    ]
    store = CollectionStore(TASKS, backend, local_backend, notifier=notifier)
    store.mount()
    return store, rows


def test_apply_same_group_drop_persists_order(local_backend, notifier) -> None:
    store, rows = _task_store(local_backend, local_backend, notifier)
    a_id = rows[0]["id"]
    c_id = rows[2]["id"]

    assert apply_drop(store, plan_drop(store.records, a_id, c_id)) is True
    store.sync()
    store.fetch_all()

    assert [task.task for task in store.records] == ["b", "c", "a"]
    assert len(store.pending) == 0


def test_same_group_drop_leaves_other_groups_untouched(local_backend, notifier) -> None:
    store, rows = _task_store(local_backend, local_backend, notifier)
    other_ids = {
        local_backend.insert("tasks", {"task": name, "week": 2, "day": "Day 8-9", "position": position})["id"]
        for name, position in (("x", 0), ("y", 5))
    }
    store.fetch_all()

    def other_group() -> list[dict]:
        return [row for row in local_backend.fetch_all("tasks", TASKS.order) if row["id"] in other_ids]

    before_rows = other_group()
    before_records = [task for task in store.records if task.id in other_ids]

    plan = plan_drop(store.records, rows[0]["id"], rows[2]["id"])
    assert {task_id for task_id, _ in plan.updates}.isdisjoint(other_ids)
    assert apply_drop(store, plan) is True
    store.sync()
    store.fetch_all()

    assert other_group() == before_rows
    assert [task for task in store.records if task.id in other_ids] == before_records
    assert [(task.task, task.position) for task in store.records if task.id in other_ids] == [("x", 0), ("y", 5)]
    assert [task.task for task in store.records if task.id not in other_ids] == ["b", "c", "a"]


def test_apply_cross_group_drop_confirms_and_refetches(flaky_backend, local_backend, notifier) -> None:
    store, rows = _task_store(local_backend, flaky_backend, notifier)
    target = local_backend.insert("tasks", {"task": "z", "week": 2, "day": "Day 8-9", "position": 0})
    store.fetch_all()
    flaky_backend.calls.clear()

    assert apply_drop(store, plan_drop(store.records, rows[0]["id"], target["id"])) is True

    moved = store.get(rows[0]["id"])
    assert (moved.week, moved.day, moved.position) == (2, "Day 8-9", 1)
    assert notifier.successes == ["Task moved to Day 8-9"]
    assert [call[0] for call in flaky_backend.calls] == ["update", "fetch_all"]


def test_failed_reorder_reverts(flaky_backend, local_backend, notifier) -> None:
    store, rows = _task_store(local_backend, flaky_backend, notifier)
    flaky_backend.fail_on.add("update")

    assert apply_drop(store, plan_drop(store.records, rows[0]["id"], rows[2]["id"])) is False

    assert [task.task for task in store.records] == ["a", "b", "c"]
    assert notifier.errors == ["Error updating task order"]


def test_failed_move_reports_move_error(flaky_backend, local_backend, notifier) -> None:
    store, rows = _task_store(local_backend, flaky_backend, notifier)
    flaky_backend.fail_on.add("update")

    assert apply_drop(store, plan_move_to_group(store.records, rows[0]["id"], 4, "Day 29-30")) is False

    assert store.get(rows[0]["id"]).week == 1
    assert notifier.errors == ["Error moving task"]
