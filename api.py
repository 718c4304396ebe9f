"""
GridSurplus: FastAPI server
Async service between dashboards/consumers and the ENTSO-E Transparency
Platform.  Answers "when is the renewable surplus (generation − load) highest?"
for a country's primary bidding zone.

Run:  uvicorn api:app --reload --port 3044
Docs: http://localhost:3044/docs
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Generic, Optional, TypeVar

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel

from forecast import areas
from forecast.areas import BiddingZone
from forecast.client import EntsoeClient, format_period
from forecast.config import get_settings
from forecast.errors import EntsoeError
from forecast.export import plot_payload
from forecast.surplus import (
    RenewableSurplus,
    filter_night,
    filter_next_hours,
    find_max,
    summarize,
)

_settings = get_settings()

logger.remove()
logger.add(sys.stderr, level=_settings.log_level)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NIGHT_LOOKAHEAD_HOURS = 48     # wide enough to always contain one full night
WINDOW_BUFFER_HOURS   = 1      # fetch one extra hour past the requested window
DEFAULT_WINDOW_HOURS  = 24
MAX_WINDOW_HOURS      = 168

# ---------------------------------------------------------------------------
# Application state: shared httpx client and the ENTSO-E client built on it
# ---------------------------------------------------------------------------

_http_client: Optional[httpx.AsyncClient] = None
_entsoe_client: Optional[EntsoeClient] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create a single shared httpx client for the lifetime of the process."""
    global _http_client, _entsoe_client
    settings = get_settings()
    _http_client = httpx.AsyncClient(timeout=settings.timeout)
    if settings.has_api_key:
        _entsoe_client = EntsoeClient.from_settings(settings, http_client=_http_client)
        logger.info("ENTSO-E client initialised ({}).", settings.base_url)
    else:
        logger.warning("ENTSOE_API_KEY not set; surplus endpoints will return 503.")
    yield
    _entsoe_client = None
    await _http_client.aclose()
    logger.info("httpx AsyncClient closed.")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="GridSurplus API",
    description=(
        "Renewable surplus (day-ahead generation forecast minus total load "
        "forecast) for ENTSO-E bidding zones."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

_T_data    = TypeVar("_T_data")
_T_summary = TypeVar("_T_summary")


class EnvelopeMeta(BaseModel):
    """Metadata block present on every surplus response."""
    api_version:      str = "1.0"
    country_code:     str
    zone:             str   # EIC code of the queried bidding zone
    zone_name:        str
    period_start:     str   # YYYYMMDDHHmm UTC, as sent to ENTSO-E
    period_end:       str
    filter_applied:   str
    units:            str = "MW"
    last_updated_utc: str


class ApiResponse(BaseModel, Generic[_T_data, _T_summary]):
    """Envelope for list endpoints."""
    meta:    EnvelopeMeta
    data:    list[_T_data]
    summary: _T_summary


# ---------------------------------------------------------------------------
# Record models
# ---------------------------------------------------------------------------

class SurplusRecord(BaseModel):
    timestamp:          str     # RFC 3339
    timestamp_utc:      str     # "YYYY-MM-DD HH:MM:SS UTC"
    generation_mw:      float
    load_mw:            float
    surplus_mw:         float   # generation − load
    surplus_percentage: float   # surplus / generation × 100, 0 when generation is 0
    has_excess:         bool


class SurplusSummaryModel(BaseModel):
    count:          int
    excess_hours:   int
    min_surplus:    float
    max_surplus:    float
    avg_surplus:    float
    total_surplus:  float
    avg_generation: float
    avg_load:       float
    peak_timestamp: Optional[str]


class MaxSurplusResponse(BaseModel):
    meta: EnvelopeMeta
    data: SurplusRecord


class PlotData(BaseModel):
    timestamps: list[str]
    generation: list[float]
    load:       list[float]
    surplus:    list[float]


class PlotApiResponse(BaseModel):
    meta: EnvelopeMeta
    data: PlotData


SurplusSeriesApiResponse = ApiResponse[SurplusRecord, SurplusSummaryModel]


class ZoneInfo(BaseModel):
    code: str
    name: str
    tso:  Optional[str]


class CountriesResponse(BaseModel):
    countries: list[str]


class HealthResponse(BaseModel):
    status:             str
    timestamp:          str
    api_key_configured: bool


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _get_client() -> EntsoeClient:
    if _entsoe_client is None:
        raise HTTPException(status_code=503, detail="ENTSOE_API_KEY is not configured.")
    return _entsoe_client


def _resolve_zone(country_code: str) -> BiddingZone:
    zone = areas.get_primary_zone(country_code)
    if zone is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown country code '{country_code}'. See /api/v1/countries.",
        )
    return zone


def _to_record(surplus: RenewableSurplus) -> SurplusRecord:
    return SurplusRecord(
        timestamp=surplus.timestamp.isoformat(),
        timestamp_utc=surplus.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"),
        generation_mw=surplus.generation,
        load_mw=surplus.load,
        surplus_mw=surplus.surplus,
        surplus_percentage=surplus.surplus_percentage(),
        has_excess=surplus.has_excess(),
    )


def _make_meta(
    *,
    country_code: str,
    zone: BiddingZone,
    period_start: str,
    period_end: str,
    filter_applied: str,
) -> EnvelopeMeta:
    return EnvelopeMeta(
        country_code=country_code.upper(),
        zone=zone.code,
        zone_name=zone.name,
        period_start=period_start,
        period_end=period_end,
        filter_applied=filter_applied,
        last_updated_utc=_utcnow().isoformat(),
    )


async def _fetch_series(
    zone: BiddingZone,
    start_dt: datetime,
    end_dt: datetime,
) -> tuple[list[RenewableSurplus], str, str]:
    """Fetch + join both forecasts for the window.  Upstream errors become 502."""
    client = _get_client()
    period_start, period_end = format_period(start_dt, end_dt)
    try:
        series = await client.get_renewable_surplus_series(zone.code, period_start, period_end)
    except EntsoeError as exc:
        logger.error("ENTSO-E error for {} ({} to {}): {}", zone.code, period_start, period_end, exc)
        raise HTTPException(status_code=502, detail=f"ENTSO-E API error: {exc}") from exc
    return series, period_start, period_end


async def _next_hours_max(country_code: str, hours: int) -> MaxSurplusResponse:
    zone = _resolve_zone(country_code)
    now = _utcnow()
    logger.info("GET next-{}h surplus | country={} | zone={}", hours, country_code, zone.code)

    series, period_start, period_end = await _fetch_series(
        zone, now, now + timedelta(hours=hours + WINDOW_BUFFER_HOURS)
    )
    best = find_max(filter_next_hours(series, hours, now=now))
    if best is None:
        raise HTTPException(status_code=404, detail=f"No data found for next {hours} hours")

    return MaxSurplusResponse(
        meta=_make_meta(
            country_code=country_code, zone=zone,
            period_start=period_start, period_end=period_end,
            filter_applied=f"Next {hours} hours from now",
        ),
        data=_to_record(best),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

_HOURS_QUERY = Query(
    default=DEFAULT_WINDOW_HOURS,
    ge=1,
    le=MAX_WINDOW_HOURS,
    description=f"Look-ahead window in hours (1–{MAX_WINDOW_HOURS}, default {DEFAULT_WINDOW_HOURS}).",
)


@app.get("/health", response_model=HealthResponse, tags=["Meta"])
async def health():
    """Service health and whether an ENTSO-E token is configured."""
    return HealthResponse(
        status="ok",
        timestamp=_utcnow().isoformat(),
        api_key_configured=_entsoe_client is not None,
    )


@app.get("/api/v1/countries", response_model=CountriesResponse, tags=["Reference"])
async def list_countries():
    """ISO country codes with at least one registered bidding zone."""
    return CountriesResponse(countries=areas.list_countries())


@app.get("/api/v1/zones/{country}", response_model=list[ZoneInfo], tags=["Reference"])
async def get_country_zones(country: str):
    """All bidding zones / control areas registered for a country."""
    zones = areas.get_zones_by_country(country)
    if zones is None:
        raise HTTPException(status_code=404, detail=f"No zones registered for '{country}'.")
    return [ZoneInfo(**z.to_dict()) for z in zones]


@app.get(
    "/api/v1/renewable-surplus/{country}/night",
    response_model=MaxSurplusResponse,
    tags=["Renewable Surplus"],
)
async def get_night_surplus(country: str):
    """
    Highest surplus during night hours (22:00–06:00 UTC) in the next 48 hours.

    Night-time surplus is mostly wind; useful for scheduling overnight loads.
    """
    zone = _resolve_zone(country)
    now = _utcnow()
    logger.info("GET night surplus | country={} | zone={}", country, zone.code)

    series, period_start, period_end = await _fetch_series(
        zone, now, now + timedelta(hours=NIGHT_LOOKAHEAD_HOURS)
    )
    best = find_max(filter_night(series))
    if best is None:
        raise HTTPException(status_code=404, detail="No night hours found in forecast period")

    return MaxSurplusResponse(
        meta=_make_meta(
            country_code=country, zone=zone,
            period_start=period_start, period_end=period_end,
            filter_applied="Night hours (22:00-06:00)",
        ),
        data=_to_record(best),
    )


@app.get(
    "/api/v1/renewable-surplus/{country}/next-6h",
    response_model=MaxSurplusResponse,
    tags=["Renewable Surplus"],
)
async def get_next_6h_surplus(country: str):
    """Highest surplus within the next 6 hours."""
    return await _next_hours_max(country, 6)


@app.get(
    "/api/v1/renewable-surplus/{country}/next-24h",
    response_model=MaxSurplusResponse,
    tags=["Renewable Surplus"],
)
async def get_next_24h_surplus(country: str):
    """Highest surplus within the next 24 hours."""
    return await _next_hours_max(country, 24)


@app.get(
    "/api/v1/renewable-surplus/{country}/next",
    response_model=MaxSurplusResponse,
    tags=["Renewable Surplus"],
)
async def get_custom_hours_surplus(country: str, hours: int = _HOURS_QUERY):
    """Highest surplus within the next ``hours`` hours."""
    return await _next_hours_max(country, hours)


@app.get(
    "/api/v1/renewable-surplus/{country}/series",
    response_model=SurplusSeriesApiResponse,
    tags=["Renewable Surplus"],
)
async def get_surplus_series(country: str, hours: int = _HOURS_QUERY):
    """
    Full hourly (or quarter-hourly) surplus series for the next ``hours`` hours.

    Records are sorted by timestamp; the summary carries min/max/avg surplus
    and the number of points with positive surplus.
    """
    zone = _resolve_zone(country)
    now = _utcnow()
    logger.info("GET surplus series | country={} | {}h", country, hours)

    series, period_start, period_end = await _fetch_series(
        zone, now, now + timedelta(hours=hours + WINDOW_BUFFER_HOURS)
    )
    stats = summarize(series)
    return SurplusSeriesApiResponse(
        meta=_make_meta(
            country_code=country, zone=zone,
            period_start=period_start, period_end=period_end,
            filter_applied="None",
        ),
        data=[_to_record(s) for s in series],
        summary=SurplusSummaryModel(**stats.to_dict()),
    )


@app.get(
    "/api/v1/renewable-surplus/{country}/plot-json",
    response_model=PlotApiResponse,
    tags=["Renewable Surplus"],
)
async def get_plot_json(country: str, hours: int = _HOURS_QUERY):
    """Columnar generation / load / surplus arrays for chart front-ends."""
    zone = _resolve_zone(country)
    now = _utcnow()
    logger.info("GET plot-json | country={} | {}h", country, hours)

    series, period_start, period_end = await _fetch_series(
        zone, now, now + timedelta(hours=hours + WINDOW_BUFFER_HOURS)
    )
    if not series:
        raise HTTPException(status_code=404, detail="No data available")

    return PlotApiResponse(
        meta=_make_meta(
            country_code=country, zone=zone,
            period_start=period_start, period_end=period_end,
            filter_applied="None",
        ),
        data=PlotData(**plot_payload(series)),
    )
