from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Optional, Sequence

import streamlit as st

from memory_grove_tracker.field_controller import EditableField, FieldKind
from memory_grove_tracker.models import Record
from memory_grove_tracker.sync import ConnectionState
from memory_grove_tracker.views import CollectionView

LOGGER = logging.getLogger(__name__)

STATE_COLORS = {
    ConnectionState.CONNECTING: "#F59E0B",
    ConnectionState.CONNECTED: "#15803D",
    ConnectionState.TIMED_OUT: "#F59E0B",
    ConnectionState.ERROR: "#DC2626",
}


class StreamlitNotifier:
    """Surfaces store notifications as Streamlit toasts."""

    def success(self, message: str) -> None:
        st.toast(message, icon="✅")

    def error(self, message: str) -> None:
        st.toast(message, icon="⚠️")


def inject_theme_styles() -> None:
    st.markdown(
        """
        <style>
            :root {
                --grove-primary: #15803d;
                --grove-surface: #ffffff;
                --grove-border: #e5e7eb;
                --grove-muted: #6b7280;
            }

            .block-container {
                padding-top: 1.2rem;
                max-width: 1400px;
            }

            div[data-testid="stMetric"] {
                background: var(--grove-surface);
                border: 1px solid var(--grove-border);
                border-radius: 12px;
                padding: 12px;
            }

            .grove-badge {
                display: inline-block;
                border-radius: 999px;
                padding: 0.15rem 0.7rem;
                font-size: 0.8rem;
                font-weight: 600;
                color: #ffffff;
            }

            .grove-week-header {
                background: linear-gradient(90deg, #15803d, #16a34a);
                color: #ffffff;
                border-radius: 12px;
                padding: 0.8rem 1.1rem;
                margin-bottom: 0.6rem;
            }

            .stButton > button {
                font-weight: 600;
            }
        </style>
    """,
        unsafe_allow_html=True,
    )


def connection_badge(view: CollectionView[Any]) -> None:
    state = view.store.state
    color = STATE_COLORS[state]
    st.markdown(
        f"<span class='grove-badge' style='background:{color}'>{state.label}</span>",
        unsafe_allow_html=True,
    )


def widget_key(view: CollectionView[Any], record: Record, name: str) -> str:
    return f"{view.store.spec.name}:{record.id}:{name}"


def _display_value(value: Any, kind: FieldKind) -> Any:
    if kind is FieldKind.NUMBER:
        return float(value or 0)
    if kind is FieldKind.INTEGER:
        return int(value or 0)
    return "" if value is None else str(value)


def _commit_widget(field: EditableField, key: str) -> None:
    field.change(st.session_state[key])
    field.blur()


def editable_input(
    view: CollectionView[Any],
    record: Record,
    name: str,
    label: str,
    *,
    kind: FieldKind = FieldKind.TEXT,
    multiline: bool = False,
    **widget_options: Any,
) -> EditableField:
    """Render a text or number input backed by an :class:`EditableField`.

    Streamlit reports a changed value when the input loses focus, which is the
    field's blur commit.
    """

    field = view.field(record, name, kind=kind)
    key = widget_key(view, record, name)
    display = _display_value(field.value, kind)
    if not field.is_editing and st.session_state.get(key) != display:
        st.session_state[key] = display

    widget_options.setdefault("label_visibility", "collapsed")
    callback_kwargs = {"field": field, "key": key}
    if kind is FieldKind.TEXT:
        widget = st.text_area if multiline else st.text_input
        widget(label, key=key, on_change=_commit_widget, kwargs=callback_kwargs, **widget_options)
    else:
        step = 1 if kind is FieldKind.INTEGER else 1.0
        st.number_input(label, key=key, step=step, on_change=_commit_widget, kwargs=callback_kwargs, **widget_options)
    return field


def _write_bound_value(
    view: CollectionView[Any],
    record_id: str,
    name: str,
    key: str,
    convert: Optional[Callable[[Any], Any]],
) -> None:
    value = st.session_state[key]
    view.store.update(record_id, {name: convert(value) if convert else value})


def _bind_widget_state(key: str, value: Any) -> None:
    if st.session_state.get(key) != value:
        st.session_state[key] = value


def bound_selectbox(
    view: CollectionView[Any],
    record: Record,
    name: str,
    label: str,
    options: Sequence[Any],
    *,
    format_func: Callable[[Any], str] = str,
    **widget_options: Any,
) -> None:
    """Select box writing straight through the store on every change."""

    key = widget_key(view, record, name)
    current = getattr(record, name)
    current = getattr(current, "value", current)
    choices = list(options)
    if current not in choices and current is not None:
        choices.append(current)
    _bind_widget_state(key, current)
    widget_options.setdefault("label_visibility", "collapsed")
    st.selectbox(
        label,
        choices,
        key=key,
        format_func=format_func,
        on_change=_write_bound_value,
        kwargs={"view": view, "record_id": record.id, "name": name, "key": key, "convert": None},
        **widget_options,
    )


def bound_checkbox(view: CollectionView[Any], record: Record, name: str, label: str, **widget_options: Any) -> None:
    key = widget_key(view, record, name)
    _bind_widget_state(key, bool(getattr(record, name)))
    st.checkbox(
        label,
        key=key,
        on_change=_write_bound_value,
        kwargs={"view": view, "record_id": record.id, "name": name, "key": key, "convert": bool},
        **widget_options,
    )


def _iso_or_none(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def bound_date_input(view: CollectionView[Any], record: Record, name: str, label: str, **widget_options: Any) -> None:
    key = widget_key(view, record, name)
    _bind_widget_state(key, getattr(record, name))
    widget_options.setdefault("label_visibility", "collapsed")
    st.date_input(
        label,
        key=key,
        on_change=_write_bound_value,
        kwargs={"view": view, "record_id": record.id, "name": name, "key": key, "convert": _iso_or_none},
        **widget_options,
    )


def delete_button(view: CollectionView[Any], record: Record, *, label: str = "Delete") -> None:
    if st.button(label, key=f"delete:{widget_key(view, record, 'id')}", type="secondary"):
        view.store.delete(record.id)
        st.rerun()


def metric_value(value: float, *, prefix: str = "", suffix: str = "", decimals: int = 0) -> str:
    return f"{prefix}{value:,.{decimals}f}{suffix}"


__all__ = [
    "StreamlitNotifier",
    "bound_checkbox",
    "bound_date_input",
    "bound_selectbox",
    "connection_badge",
    "delete_button",
    "editable_input",
    "inject_theme_styles",
    "metric_value",
    "widget_key",
]
