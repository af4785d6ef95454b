from __future__ import annotations

from typing import Any

import streamlit as st

from memory_grove_tracker.charts import build_week_progress_figure
from memory_grove_tracker.config import BackendBundle
from memory_grove_tracker.constants import SS_TASK_SEARCH
from memory_grove_tracker.csv_io import TaskImportResult, prepare_task_import, task_csv_template
from memory_grove_tracker.grouping import (
    day_options,
    filter_tasks,
    first_day_label,
    group_tasks,
    launch_weeks,
    week_progress,
    week_title,
)
from memory_grove_tracker.models import TASKS, Task, TaskPriority
from memory_grove_tracker.reorder import apply_drop, plan_move_to_group, plan_shift
from memory_grove_tracker.state import get_view
from memory_grove_tracker.sync import Notifier
from memory_grove_tracker.ui.common import (
    bound_checkbox,
    bound_date_input,
    bound_selectbox,
    connection_badge,
    delete_button,
    editable_input,
)
from memory_grove_tracker.views import CollectionView

CSV_UPLOAD_KEY = "task_csv_upload"


def _shift(view: CollectionView[Task], task_id: str, offset: int) -> None:
    apply_drop(view.store, plan_shift(view.records, task_id, offset))


def _move(view: CollectionView[Task], task_id: str, key: str) -> None:
    target = st.session_state.get(key)
    if not target:
        return
    st.session_state[key] = None
    week, day = target
    apply_drop(view.store, plan_move_to_group(view.records, task_id, week, day))


def _render_task(view: CollectionView[Task], task: Task, *, targets: list[tuple[int, str]]) -> None:
    with st.container(border=True):
        columns = st.columns([0.06, 0.44, 0.14, 0.16, 0.2])
        with columns[0]:
            bound_checkbox(view, task, "completed", "Done", label_visibility="collapsed")
        with columns[1]:
            editable_input(view, task, "task", "Task", max_chars=500)
        with columns[2]:
            bound_selectbox(
                view,
                task,
                "priority",
                "Priority",
                [priority.value for priority in TaskPriority],
                format_func=lambda value: TaskPriority(value).label,
            )
        with columns[3]:
            bound_date_input(view, task, "due_date", "Due date")
        with columns[4]:
            up, down, remove = st.columns(3)
            up.button("↑", key=f"task_up_{task.id}", on_click=_shift, args=(view, task.id, -1))
            down.button("↓", key=f"task_down_{task.id}", on_click=_shift, args=(view, task.id, 1))
            with remove:
                delete_button(view, task, label="✕")

        with st.expander("Notes & schedule", expanded=False):
            editable_input(view, task, "notes", "Notes", multiline=True, max_chars=1000)
            move_key = f"task_move_{task.id}"
            st.selectbox(
                "Move to",
                [None, *[target for target in targets if target != (task.week, task.day)]],
                key=move_key,
                format_func=lambda target: "Choose a day…" if target is None else f"Week {target[0]}, {target[1]}",
                on_change=_move,
                args=(view, task.id, move_key),
            )


def _render_import(view: CollectionView[Task]) -> None:
    with st.expander("Import tasks from CSV", expanded=False):
        st.download_button(
            "Download template",
            data=task_csv_template(),
            file_name="task_template.csv",
            mime="text/csv",
        )
        upload = st.file_uploader("CSV file", type=["csv"], key=CSV_UPLOAD_KEY)
        if upload is None:
            return

        text = upload.getvalue().decode("utf-8-sig")
        result: TaskImportResult = prepare_task_import(text, view.records)
        summary = result.summary
        st.caption(f"{summary['total']} rows · {summary['valid']} valid · {summary['invalid']} invalid")

        if result.has_errors:
            st.error("\n".join(f"- {message}" for message in result.errors))
        if result.has_duplicates:
            st.warning(
                "\n".join(f"- {duplicate.message}" for duplicate in result.duplicates)
                + "\n\nThese tasks will be skipped during import."
            )

        importable = result.importable()
        if importable:
            st.dataframe(importable, hide_index=True, use_container_width=True)
        if st.button(
            f"Import {len(importable)} Tasks",
            disabled=result.has_errors or not importable,
            key="task_csv_import",
        ):
            if view.store.create_many(importable):
                st.session_state.pop(CSV_UPLOAD_KEY, None)
                st.rerun()


def _render_week(view: CollectionView[Task], week: int, days: dict[str, list[Task]], **row_options: Any) -> None:
    progress = week_progress({week: days}, week)
    progress_text = f" · {progress.completed}/{progress.total} tasks · {progress.percent}%" if progress.total else ""
    st.markdown(
        f"<div class='grove-week-header'><b>{week_title(week)}</b>{progress_text}</div>",
        unsafe_allow_html=True,
    )

    if not days:
        st.info("No tasks for this week yet")
        if st.button("+ Add First Task", key=f"task_first_{week}"):
            view.store.create(week=week, day=first_day_label(week))
            st.rerun()
        return

    for day, tasks in days.items():
        header, action = st.columns([0.8, 0.2])
        header.markdown(f"#### {day}")
        if action.button("+ Add Task", key=f"task_add_{week}_{day}"):
            view.store.create(week=week, day=day)
            st.rerun()
        for task in tasks:
            _render_task(view, task, **row_options)


def render_tasks_tab(bundle: BackendBundle, notifier: Notifier) -> None:
    view: CollectionView[Task] = get_view(TASKS, bundle, notifier)

    title, status = st.columns([0.8, 0.2])
    title.subheader("Launch Tasks & Timeline")
    with status:
        connection_badge(view)

    query = st.text_input("Search tasks...", key=SS_TASK_SEARCH, placeholder="Search tasks...")
    visible = filter_tasks(view.records, query)
    if query.strip():
        st.caption(f"Found {len(visible)} task{'s' if len(visible) != 1 else ''} matching “{query.strip()}”")

    _render_import(view)

    groups = group_tasks(visible)
    st.plotly_chart(build_week_progress_figure(group_tasks(view.records)), use_container_width=True)

    targets = day_options(view.records)
    for week in launch_weeks():
        _render_week(view, week, groups.get(week, {}), targets=targets)

    stray = {week: days for week, days in groups.items() if week not in launch_weeks()}
    for week, days in stray.items():
        _render_week(view, week, days, targets=targets)


__all__ = ["render_tasks_tab"]
