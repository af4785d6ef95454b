from __future__ import annotations

import logging
import os

import streamlit as st

from memory_grove_tracker.config import BackendBundle, BackendSettings, build_backend, load_backend_settings
from memory_grove_tracker.constants import SS_BACKEND_NOTICE, SS_VIEWS
from memory_grove_tracker.state import reset_views
from memory_grove_tracker.sync import Notifier
from memory_grove_tracker.ui.budget import render_budget_tab
from memory_grove_tracker.ui.common import StreamlitNotifier, inject_theme_styles
from memory_grove_tracker.ui.contacts import render_contacts_tab
from memory_grove_tracker.ui.inventory import render_inventory_tab
from memory_grove_tracker.ui.marketing import render_marketing_tab
from memory_grove_tracker.ui.metrics import render_metrics_tab
from memory_grove_tracker.ui.partnerships import render_partnerships_tab
from memory_grove_tracker.ui.tasks import render_tasks_tab

LOGGER = logging.getLogger(__name__)

LIVE_UPDATES_KEY = "live_updates_enabled"

TABS = (
    ("📋 Tasks", render_tasks_tab),
    ("💰 Budget", render_budget_tab),
    ("🤝 Partnerships", render_partnerships_tab),
    ("📣 Marketing", render_marketing_tab),
    ("📈 Metrics", render_metrics_tab),
    ("👥 Contacts", render_contacts_tab),
    ("📦 Inventory", render_inventory_tab),
)


def _is_streamlit_cloud() -> bool:
    runtime_env = os.getenv("STREAMLIT_RUNTIME_ENVIRONMENT", "").lower()
    if runtime_env in {"streamlit-community-cloud", "communitycloud"}:
        return True
    return os.getenv("STREAMLIT_CLOUD", "").lower() in {"1", "true", "yes"}


@st.cache_resource(show_spinner=False)
def _backend() -> BackendBundle:
    return build_backend(load_backend_settings())


def _render_backend_notice(bundle: BackendBundle, settings: BackendSettings) -> None:
    if bundle.mode == "supabase":
        st.caption(f"Connected to Supabase · changes polled every {settings.poll_seconds:g}s")
        return

    path = getattr(bundle.collections, "path", None)
    note = f"No Supabase credentials found. Data is stored locally in {path}."
    if _is_streamlit_cloud():
        note += " Streamlit Community Cloud may discard local files after a restart."
    st.info(note)


def _render_sidebar(bundle: BackendBundle, settings: BackendSettings) -> None:
    with st.sidebar:
        st.header("Memory Grove")
        st.caption("30-day launch dashboard")
        st.toggle("Live updates", value=True, key=LIVE_UPDATES_KEY)
        if st.button("Reload all data", use_container_width=True):
            reset_views()
            st.rerun()
        if not st.checkbox("Hide storage notice", key=SS_BACKEND_NOTICE):
            _render_backend_notice(bundle, settings)


@st.fragment(run_every=2.0)
def _live_sync() -> None:
    """Pump change feeds between user interactions and rerun when something arrived."""

    if not st.session_state.get(LIVE_UPDATES_KEY, True):
        return
    views = st.session_state.get(SS_VIEWS) or {}
    delivered = sum(view.refresh() for view in views.values() if view.mounted)
    if delivered:
        LOGGER.debug("Live sync delivered %s change notifications", delivered)
        st.rerun(scope="app")


def main() -> None:
    st.set_page_config(
        page_title="Memory Grove Launch Tracker",
        page_icon="🌱",
        layout="wide",
        initial_sidebar_state="expanded",
    )
    inject_theme_styles()
    settings = load_backend_settings()
    bundle = _backend()
    notifier: Notifier = StreamlitNotifier()

    _render_sidebar(bundle, settings)
    st.title("Memory Grove Launch Tracker")

    tabs = st.tabs([label for label, _ in TABS])
    for tab, (_, render) in zip(tabs, TABS):
        with tab:
            render(bundle, notifier)

    _live_sync()


if __name__ == "__main__":
    main()
