from __future__ import annotations

import streamlit as st

from memory_grove_tracker.config import BackendBundle
from memory_grove_tracker.field_controller import FieldKind
from memory_grove_tracker.models import (
    MARKETING_CAMPAIGNS,
    PAID_PLATFORMS,
    SOCIAL_CONTENT_TYPES,
    SOCIAL_PLATFORMS,
    CampaignStatus,
    CampaignType,
    MarketingCampaign,
)
from memory_grove_tracker.state import get_view
from memory_grove_tracker.summaries import cost_per_acquisition, return_on_investment, split_campaigns
from memory_grove_tracker.sync import Notifier
from memory_grove_tracker.ui.common import (
    bound_date_input,
    bound_selectbox,
    connection_badge,
    delete_button,
    editable_input,
)
from memory_grove_tracker.views import CollectionView

STATUS_OPTIONS = [status.value for status in CampaignStatus]


def _status_select(view: CollectionView[MarketingCampaign], campaign: MarketingCampaign) -> None:
    bound_selectbox(
        view,
        campaign,
        "status",
        "Status",
        STATUS_OPTIONS,
        format_func=lambda value: CampaignStatus(value).label,
    )


def _render_social(view: CollectionView[MarketingCampaign], campaign: MarketingCampaign) -> None:
    with st.container(border=True):
        columns = st.columns([0.14, 0.16, 0.18, 0.32, 0.14, 0.06])
        with columns[0]:
            bound_date_input(view, campaign, "date", "Date")
        with columns[1]:
            bound_selectbox(view, campaign, "platform", "Platform", SOCIAL_PLATFORMS)
        with columns[2]:
            bound_selectbox(view, campaign, "content_type", "Content type", SOCIAL_CONTENT_TYPES)
        with columns[3]:
            editable_input(view, campaign, "caption", "Caption", placeholder="Caption")
        with columns[4]:
            _status_select(view, campaign)
        with columns[5]:
            delete_button(view, campaign, label="✕")


def _render_paid(view: CollectionView[MarketingCampaign], campaign: MarketingCampaign) -> None:
    with st.container(border=True):
        top = st.columns([0.26, 0.18, 0.14, 0.14, 0.14, 0.14])
        with top[0]:
            editable_input(view, campaign, "campaign_name", "Campaign")
        with top[1]:
            bound_selectbox(view, campaign, "platform", "Platform", PAID_PLATFORMS)
        with top[2]:
            editable_input(view, campaign, "budget", "Budget", kind=FieldKind.NUMBER, min_value=0.0)
        with top[3]:
            editable_input(view, campaign, "spend", "Spend", kind=FieldKind.NUMBER, min_value=0.0)
        with top[4]:
            editable_input(
                view, campaign, "conversions", "Conversions", kind=FieldKind.INTEGER, min_value=0
            )
        with top[5]:
            _status_select(view, campaign)

        bottom = st.columns([0.2, 0.2, 0.22, 0.22, 0.16])
        with bottom[0]:
            bound_date_input(view, campaign, "start_date", "Start")
        with bottom[1]:
            bound_date_input(view, campaign, "end_date", "End")
        cpa = cost_per_acquisition(campaign)
        roi = return_on_investment(campaign)
        bottom[2].metric("CPA", "-" if cpa is None else f"${cpa:,.2f}")
        bottom[3].metric("ROI", "-" if roi is None else f"{roi}%")
        with bottom[4]:
            delete_button(view, campaign)


def render_marketing_tab(bundle: BackendBundle, notifier: Notifier) -> None:
    view: CollectionView[MarketingCampaign] = get_view(MARKETING_CAMPAIGNS, bundle, notifier)

    title, status = st.columns([0.8, 0.2])
    title.subheader("Marketing Campaigns")
    with status:
        connection_badge(view)

    social, paid = split_campaigns(view.records)

    header, action = st.columns([0.8, 0.2])
    header.markdown(f"#### Social Media Content ({len(social)})")
    if action.button("+ Add Post", key="campaign_add_social"):
        view.store.create(campaign_type=CampaignType.SOCIAL)
        st.rerun()
    for campaign in social:
        _render_social(view, campaign)

    header, action = st.columns([0.8, 0.2])
    header.markdown(f"#### Paid Campaigns ({len(paid)})")
    if action.button("+ Add Campaign", key="campaign_add_paid"):
        view.store.create(campaign_type=CampaignType.PAID)
        st.rerun()
    for campaign in paid:
        _render_paid(view, campaign)
    st.caption("CPA (Cost Per Acquisition) = Spend ÷ Conversions | ROI assumes $50 average order value")


__all__ = ["render_marketing_tab"]
