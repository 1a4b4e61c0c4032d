"""Streamlit frontend for the CFO dashboard.

Thin presentation adapter: every computation lives in DashboardSession.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pandas as pd
import streamlit as st

from app.api.dependencies import get_record_store
from app.config import get_dashboard_settings, get_narrative_settings
from app.connectors.narrative_client import NarrativeClient
from app.services.dashboard_session import DashboardSession
from app.services.filter_engine import DEPARTMENTS, REGIONS, FilterCriteria
from app.services.insight_composer import InsightComposer
from app.services.rate_limiter import MinimumIntervalLimiter

st.set_page_config(page_title="CFO Dashboard", page_icon="CFO", layout="wide")


def _build_session() -> DashboardSession:
    settings = get_dashboard_settings()
    composer = InsightComposer(
        NarrativeClient(settings=get_narrative_settings()),
        limiter=MinimumIntervalLimiter(min_interval_seconds=settings.min_query_interval_seconds),
        min_query_length=settings.min_query_length,
        query_sample_size=settings.query_sample_size,
    )
    return DashboardSession(store=get_record_store(), composer=composer, settings=settings)


async def _refresh(session: DashboardSession) -> None:
    await session.refresh()
    await session.wait_idle()


def _frame(rows: list[dict[str, Any]], index: str | None = None) -> pd.DataFrame:
    frame = pd.DataFrame(rows)
    if index and not frame.empty:
        frame = frame.set_index(index)
    return frame


def _trend_label(value: float) -> str:
    return f"{value:+.1f}%"


if "dashboard" not in st.session_state:
    st.session_state.dashboard = _build_session()
    asyncio.run(_refresh(st.session_state.dashboard))

session: DashboardSession = st.session_state.dashboard


with st.sidebar:
    st.header("Filters")
    date_from = st.date_input("From", value=session.criteria.date_from)
    date_to = st.date_input("To", value=session.criteria.date_to)
    regions = st.multiselect(
        "Regions",
        options=list(REGIONS),
        default=list(session.criteria.selected_regions),
    )
    departments = st.multiselect(
        "Departments",
        options=list(DEPARTMENTS),
        default=list(session.criteria.selected_departments),
    )

    criteria = FilterCriteria(
        date_from=date_from,
        date_to=date_to,
        selected_regions=tuple(regions),
        selected_departments=tuple(departments),
    )
    if criteria != session.criteria:
        session.set_criteria(criteria, debounce=False)

    if st.button("Reset Filters", use_container_width=True):
        session.reset_filters()
        st.rerun()

    if st.button("Refresh Data", type="primary", use_container_width=True, disabled=session.is_loading):
        with st.spinner("Loading dashboard data..."):
            asyncio.run(_refresh(session))

    if session.last_updated is not None:
        st.caption(f"Last updated: {session.last_updated:%Y-%m-%d %H:%M:%S} UTC")

    if session.can_export:
        artifact = session.export()
        st.download_button(
            label="Export CSV",
            data=artifact.content_bytes,
            file_name=artifact.filename,
            mime="text/csv",
            use_container_width=True,
        )
    else:
        st.button("Export CSV", disabled=True, use_container_width=True)


st.title("CFO Dashboard")

for message in session.fetch_errors.values():
    st.error(message)

if session.view.is_empty:
    st.info("No data matches the current filters. Adjust the filters or refresh.")

kpis = session.kpis
row1 = st.columns(4)
row1[0].metric("Avg Close Days", f"{kpis.avg_close_days:.1f}", _trend_label(kpis.close_days_trend), delta_color="inverse")
row1[1].metric("Automation Rate", f"{kpis.avg_automation_rate:.1f}%", _trend_label(kpis.automation_trend))
row1[2].metric("Error Rate", f"{kpis.avg_error_rate:.2f}%", _trend_label(kpis.error_rate_change), delta_color="inverse")
row1[3].metric("Reconciliation Items", f"{kpis.total_reconciliation_items:,}")
row2 = st.columns(4)
row2[0].metric("Avg Cycle Time", f"{kpis.avg_cycle_time:.1f} hrs")
row2[1].metric("Total Cost", f"${kpis.total_cost:,.0f}")
row2[2].metric("Optimal Processes", kpis.optimal_processes)
row2[3].metric("Critical Processes", kpis.critical_processes)

charts = session.chart_data()
left, right = st.columns(2)
with left:
    st.subheader("Close Days Trend")
    st.line_chart(_frame(charts["close_trend"], "period"))
    st.subheader("Process Efficiency")
    bars = _frame(charts["process_efficiency"], "name")
    st.bar_chart(bars[["cycle_time", "error_rate"]] if not bars.empty else bars)
with right:
    st.subheader("Cost by Category")
    st.bar_chart(_frame(charts["cost_by_category"], "name"))
    st.subheader("Category Efficiency")
    st.dataframe(_frame(charts["category_efficiency"]), use_container_width=True)

st.subheader("Processes")
st.dataframe(_frame(charts["process_table"]), use_container_width=True)


st.subheader("AI Insights")
if st.button("Regenerate Insights", disabled=session.is_loading_insights or not session.has_records):
    with st.spinner("Generating insights..."):
        asyncio.run(session.generate_insights())

if session.insight_error:
    st.error(session.insight_error)

icol1, icol2, icol3 = st.columns(3)
for column, title, text in (
    (icol1, "Close Performance", session.insights.close_performance),
    (icol2, "Automation", session.insights.automation),
    (icol3, "Anomalies", session.insights.anomaly),
):
    with column:
        st.markdown(f"**{title}**")
        st.write(text or "Waiting for data...")

if session.recommendations:
    st.markdown("**Recommendations**")
    for recommendation in session.recommendations:
        with st.expander(f"[{recommendation.priority.upper()}] {recommendation.title}"):
            st.write(recommendation.description)
            st.caption(recommendation.details)


st.subheader("Ask About Your Data")
for message in session.transcript:
    with st.chat_message(message.role):
        st.write(message.content)

question = st.chat_input("e.g. Which department has the slowest close?")
if question:
    with st.spinner("Thinking..."):
        asyncio.run(session.send_query(question))
    st.rerun()

if session.chat_warning:
    st.warning(session.chat_warning)
