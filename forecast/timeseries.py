"""
GridSurplus: timestamp reconstruction and cross-series aggregation.

ENTSO-E does not send a timestamp per point.  Each ``Period`` carries a start
instant, a fixed step (``resolution``) and points numbered from 1:

    timestamp(p) = period.start + resolution * (p - 1)

A document usually holds several ``TimeSeries`` (one per production type or
per sub-area).  ``aggregate`` collapses them into one chronological series,
summing quantities that fall on the same instant and renumbering positions
1..N in time order.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from loguru import logger

from forecast.document import MarketDocument, Period
from forecast.errors import InvalidResolution, InvalidTimestamp

# Only whole-minute steps are published for forecast documents (PT15M, PT30M, PT60M)
_RESOLUTION_RE = re.compile(r"^PT(\d+)M$")

# "2023-08-14T00:00Z": minute precision, no seconds
_MINUTE_PRECISION_LEN = 17


@dataclass(frozen=True)
class TimestampedPoint:
    timestamp: datetime   # aware, UTC
    position: int         # wire position from reconstruct(), 1..N after aggregate()
    quantity: float       # MW


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_resolution(resolution: str) -> timedelta:
    """Convert ``PT<N>M`` into a timedelta.  Hour/day forms are rejected."""
    match = _RESOLUTION_RE.match(resolution or "")
    if not match:
        raise InvalidResolution(f"unsupported resolution {resolution!r}")
    minutes = int(match.group(1))
    if minutes == 0:
        raise InvalidResolution(f"resolution must be at least one minute, got {resolution!r}")
    return timedelta(minutes=minutes)


def parse_timestamp(value: str) -> datetime:
    """
    Parse a period start into an aware UTC datetime.

    ``YYYY-MM-DDTHH:MMZ`` gets implicit zero seconds; full RFC 3339 strings
    with seconds and an offset are accepted as well.
    """
    raw = (value or "").strip()
    if len(raw) == _MINUTE_PRECISION_LEN and raw.endswith("Z"):
        raw = f"{raw[:-1]}:00Z"
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"
    if "T" not in raw:
        raise InvalidTimestamp(f"not a date-time: {value!r}")
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise InvalidTimestamp(f"cannot parse {value!r}: {exc}") from exc
    if parsed.tzinfo is None:
        raise InvalidTimestamp(f"timestamp has no UTC offset: {value!r}")
    return parsed.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Reconstruction & aggregation
# ---------------------------------------------------------------------------


def reconstruct(period: Period) -> list[TimestampedPoint]:
    """One TimestampedPoint per raw point, in wire order, wire positions kept."""
    start = parse_timestamp(period.start)
    step = parse_resolution(period.resolution)
    return [
        TimestampedPoint(
            timestamp=start + step * (point.position - 1),
            position=point.position,
            quantity=point.quantity,
        )
        for point in period.points
    ]


def aggregate(document: MarketDocument) -> list[TimestampedPoint]:
    """
    Merge every series of ``document`` into a single chronological series.

    Quantities on identical timestamps are summed.  Output positions are
    reassigned 1..N in timestamp order.  A malformed period anywhere fails the
    whole call.
    """
    totals: dict[datetime, float] = defaultdict(float)
    for series in document.time_series:
        for point in reconstruct(series.period):
            totals[point.timestamp] += point.quantity

    merged = [
        TimestampedPoint(timestamp=ts, position=idx, quantity=totals[ts])
        for idx, ts in enumerate(sorted(totals), start=1)
    ]
    logger.debug(
        "Aggregated {} series into {} points.", len(document.time_series), len(merged)
    )
    return merged


# ---------------------------------------------------------------------------
# Extrema
# ---------------------------------------------------------------------------


def min_max_with_timestamps(
    points: Iterable[TimestampedPoint],
) -> Optional[tuple[TimestampedPoint, TimestampedPoint]]:
    """Lowest and highest point by quantity; the first one seen wins a tie.  None if empty."""
    points = list(points)
    if not points:
        return None
    lowest = highest = points[0]
    for point in points[1:]:
        if point.quantity < lowest.quantity:
            lowest = point
        if point.quantity > highest.quantity:
            highest = point
    return lowest, highest
