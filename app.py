"""
GridSurplus: Renewable Surplus Dashboard
Main Streamlit entry point.

Run:  streamlit run app.py
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timedelta, timezone

import plotly.express as px
import streamlit as st
from loguru import logger

from forecast import areas
from forecast.client import EntsoeClient, format_period
from forecast.config import get_settings
from forecast.errors import EntsoeError
from forecast.export import surplus_frame, to_csv
from forecast.surplus import filter_night, find_max, summarize

# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

settings = get_settings()

# Direct loguru output to stderr so it doesn't bleed into Streamlit's stdout
logger.remove()
logger.add(sys.stderr, level=settings.log_level)

st.set_page_config(
    page_title="GridSurplus | Renewable Surplus",
    page_icon="⚡",
    layout="wide",
    initial_sidebar_state="expanded",
)


async def _load_series(zone_code: str, hours: int):
    now = datetime.now(tz=timezone.utc)
    period_start, period_end = format_period(now, now + timedelta(hours=hours + 1))
    async with EntsoeClient.from_settings(settings) as client:
        return await client.get_renewable_surplus_series(zone_code, period_start, period_end)


# ---------------------------------------------------------------------------
# Sidebar: configuration
# ---------------------------------------------------------------------------

with st.sidebar:
    st.title("⚡ GridSurplus")
    st.caption("Day-ahead generation vs. load · ENTSO-E Transparency Platform")
    st.divider()

    if not settings.has_api_key:
        st.error("ENTSOE_API_KEY is not set. Add it to your environment or .env file.")
        st.stop()

    countries = areas.list_countries()
    country = st.selectbox(
        "Country",
        countries,
        index=countries.index("BE") if "BE" in countries else 0,
    )
    zone = areas.get_primary_zone(country)
    st.caption(f"Bidding zone: {zone} · {zone.code}")

    hours = st.slider("Look-ahead (hours)", min_value=6, max_value=72, value=24, step=6)

# ---------------------------------------------------------------------------
# Main content
# ---------------------------------------------------------------------------

st.title(f"Renewable Surplus · {zone.name}")

if st.button("Fetch Forecast", type="primary"):
    with st.spinner("Calling ENTSO-E…"):
        try:
            series = asyncio.run(_load_series(zone.code, hours))
        except EntsoeError as exc:
            logger.exception("Surplus fetch failed")
            st.error(f"Request failed: {exc}")
            st.stop()

    if not series:
        st.warning("ENTSO-E returned no overlapping generation/load points for this window.")
        st.stop()

    stats = summarize(series)
    peak = find_max(series)
    night_peak = find_max(filter_night(series))

    col_peak, col_night, col_excess = st.columns(3)
    col_peak.metric(
        "Peak surplus",
        f"{peak.surplus:,.0f} MW",
        f"{peak.surplus_percentage():.1f}% · {peak.timestamp:%a %H:%M} UTC",
    )
    if night_peak is not None:
        col_night.metric(
            "Best night hour",
            f"{night_peak.surplus:,.0f} MW",
            f"{night_peak.timestamp:%a %H:%M} UTC",
        )
    col_excess.metric("Points with excess", f"{stats.excess_hours} / {stats.count}")

    df = surplus_frame(series)
    st.plotly_chart(
        px.line(
            df,
            x="timestamp",
            y=["generation_mw", "load_mw", "surplus_mw"],
            title="Generation, load and surplus (MW)",
        ),
        use_container_width=True,
    )

    st.subheader("Data")
    st.dataframe(df, use_container_width=True, hide_index=True)
    st.download_button(
        "Download CSV",
        to_csv(series),
        file_name=f"surplus_{country}_{datetime.now(tz=timezone.utc):%Y%m%d%H%M}.csv",
        mime="text/csv",
    )

st.divider()
st.caption("GridSurplus v0.1 · Data © ENTSO-E Transparency Platform")
