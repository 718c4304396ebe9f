"""
GridSurplus: ENTSO-E Transparency Platform client.

Fetches the two day-ahead documents the surplus engine needs:

    A65  total load forecast        outBiddingZone_Domain=<EIC>
    A71  generation forecast        in_Domain=<EIC>

Both use processType=A01 (day ahead) and a ``periodStart``/``periodEnd`` pair
in ``YYYYMMDDHHmm`` UTC.

How it works
------------
1. One ``httpx.AsyncClient`` is shared for the lifetime of the client (or
   injected by the caller, e.g. the FastAPI lifespan or a test transport).
2. The two documents are requested concurrently with ``asyncio.gather``.
   Either failure fails the pair; there is no retry and no partial result.
3. The platform reports "no data" and bad queries as an
   ``Acknowledgement_MarketDocument``, sometimes with HTTP 200 and sometimes
   with 400; both become ``InvalidResponse`` with the upstream reason.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from loguru import logger

from forecast.config import DEFAULT_BASE_URL, Settings, get_settings
from forecast.document import ACK_DOCUMENT_TAG, MarketDocument, parse_document
from forecast.errors import RequestError
from forecast.surplus import RenewableSurplus, join_surplus_max, join_surplus_series

DOC_TYPE_LOAD_FORECAST       = "A65"
DOC_TYPE_GENERATION_FORECAST = "A71"
PROCESS_TYPE_DAY_AHEAD       = "A01"

PERIOD_FORMAT = "%Y%m%d%H%M"


def format_period(start: datetime, end: datetime) -> tuple[str, str]:
    """Render a window as the ``YYYYMMDDHHmm`` UTC strings the API expects."""
    def _fmt(dt: datetime) -> str:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc).strftime(PERIOD_FORMAT)

    return _fmt(start), _fmt(end)


class EntsoeClient:
    """
    Async wrapper around the ENTSO-E REST API (web-api.tp.entsoe.eu/api).

    Parameters
    ----------
    api_key:
        Transparency Platform security token.
    base_url:
        API endpoint; override for a proxy or a test server.
    timeout:
        HTTP timeout in seconds for the internally created client.
        ``None`` (default) disables it.
    http_client:
        Optional pre-configured ``httpx.AsyncClient``.  It is not closed by
        ``aclose()``; its owner is responsible for it.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required (set ENTSOE_API_KEY)")
        self._api_key = api_key
        self._base_url = base_url
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "EntsoeClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.timeout,
            http_client=http_client,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "EntsoeClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Document fetchers
    # ------------------------------------------------------------------

    async def fetch_day_ahead_total_load_forecast(
        self,
        out_bidding_zone: str,
        period_start: str,
        period_end: str,
    ) -> MarketDocument:
        """Day-ahead total load forecast (A65), e.g. ``"10YCZ-CEPS-----N"``."""
        return await self._fetch_document({
            "documentType":          DOC_TYPE_LOAD_FORECAST,
            "processType":           PROCESS_TYPE_DAY_AHEAD,
            "outBiddingZone_Domain": out_bidding_zone,
            "periodStart":           period_start,
            "periodEnd":             period_end,
        })

    async def fetch_day_ahead_generation_forecast(
        self,
        in_domain: str,
        period_start: str,
        period_end: str,
    ) -> MarketDocument:
        """Day-ahead generation forecast (A71), e.g. ``"10YBE----------2"``."""
        return await self._fetch_document({
            "documentType": DOC_TYPE_GENERATION_FORECAST,
            "processType":  PROCESS_TYPE_DAY_AHEAD,
            "in_Domain":    in_domain,
            "periodStart":  period_start,
            "periodEnd":    period_end,
        })

    # ------------------------------------------------------------------
    # Surplus
    # ------------------------------------------------------------------

    async def fetch_forecast_pair(
        self,
        bidding_zone: str,
        period_start: str,
        period_end: str,
    ) -> tuple[MarketDocument, MarketDocument]:
        """Generation and load documents for the same window, fetched concurrently.

        If either request fails the other one is cancelled before the error
        propagates, so no request outlives the call.
        """
        generation = asyncio.create_task(
            self.fetch_day_ahead_generation_forecast(bidding_zone, period_start, period_end)
        )
        load = asyncio.create_task(
            self.fetch_day_ahead_total_load_forecast(bidding_zone, period_start, period_end)
        )
        try:
            generation_doc, load_doc = await asyncio.gather(generation, load)
        except BaseException:
            for task in (generation, load):
                task.cancel()
            await asyncio.gather(generation, load, return_exceptions=True)
            raise
        return generation_doc, load_doc

    async def find_max_renewable_surplus(
        self,
        bidding_zone: str,
        period_start: str,
        period_end: str,
    ) -> RenewableSurplus:
        """Hour with the highest generation − load in the window."""
        generation, load = await self.fetch_forecast_pair(bidding_zone, period_start, period_end)
        return join_surplus_max(generation, load)

    async def get_renewable_surplus_series(
        self,
        bidding_zone: str,
        period_start: str,
        period_end: str,
    ) -> list[RenewableSurplus]:
        """Every matched surplus point in the window, oldest first."""
        generation, load = await self.fetch_forecast_pair(bidding_zone, period_start, period_end)
        return join_surplus_series(generation, load)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _fetch_document(self, params: dict[str, str]) -> MarketDocument:
        logger.info(
            "Fetching {} | domain={} | {} to {}",
            params["documentType"],
            params.get("in_Domain") or params.get("outBiddingZone_Domain"),
            params["periodStart"],
            params["periodEnd"],
        )
        query = {"securityToken": self._api_key, **params}
        try:
            resp = await self._http.get(self._base_url, params=query)
        except httpx.HTTPError as exc:
            logger.error("ENTSO-E request failed: {}", exc)
            raise RequestError(f"ENTSO-E request failed: {exc}") from exc

        body = resp.content
        if resp.is_error and ACK_DOCUMENT_TAG.encode() not in body:
            logger.error("ENTSO-E returned {} for {}", resp.status_code, params["documentType"])
            raise RequestError(f"ENTSO-E API error {resp.status_code}")

        # Acknowledgement bodies raise InvalidResponse from here, whatever the status
        return parse_document(body)
