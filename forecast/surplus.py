"""
GridSurplus: renewable surplus engine.

Joins an aggregated generation forecast (A71) with an aggregated total load
forecast (A65) on exact timestamp equality:

    surplus  =  generation  −  load            (MW, no rounding)

Only timestamps present in *both* series produce a point.  Nothing is
zero-filled: a generation hour without a load value is simply dropped.

Interpretation
--------------
  surplus > 0  forecast generation exceeds demand; a good window for
               flexible consumption (EV charging, heat pumps, batteries).
  surplus < 0  demand must be covered by imports or dispatchable plants.

Ties on the maximum surplus go to the earliest timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from loguru import logger

from forecast.document import MarketDocument
from forecast.errors import InvalidResponse
from forecast.timeseries import TimestampedPoint, aggregate

NIGHT_START_HOUR = 22   # inclusive, UTC
NIGHT_END_HOUR   = 6    # exclusive, UTC

HIGH_SURPLUS_PCT: float = 10.0


# ---------------------------------------------------------------------------
# Derived point
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RenewableSurplus:
    """Generation, load and surplus for one instant."""

    timestamp: datetime
    generation: float   # MW
    load: float         # MW
    surplus: float      # generation − load

    def surplus_percentage(self) -> float:
        """Surplus as % of generation.  Only exact zero generation is guarded."""
        if self.generation == 0:
            return 0.0
        return (self.surplus / self.generation) * 100

    def has_excess(self) -> bool:
        return self.surplus > 0


@dataclass
class SurplusSummary:
    """Simple statistics over a derived series."""

    count: int
    excess_hours: int          # points with surplus > 0
    min_surplus: float
    max_surplus: float
    avg_surplus: float
    total_surplus: float
    avg_generation: float
    avg_load: float
    peak_timestamp: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "count":          self.count,
            "excess_hours":   self.excess_hours,
            "min_surplus":    self.min_surplus,
            "max_surplus":    self.max_surplus,
            "avg_surplus":    self.avg_surplus,
            "total_surplus":  self.total_surplus,
            "avg_generation": self.avg_generation,
            "avg_load":       self.avg_load,
            "peak_timestamp": self.peak_timestamp.isoformat() if self.peak_timestamp else None,
        }


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------


def join_surplus(
    generation: Iterable[TimestampedPoint],
    load: Iterable[TimestampedPoint],
) -> list[RenewableSurplus]:
    """
    Inner-join two aggregated series by timestamp.

    Output follows the iteration order of ``generation``; callers that need
    chronological order sort the result (see ``join_surplus_series``).
    """
    load_by_ts = {point.timestamp: point.quantity for point in load}
    return [
        RenewableSurplus(
            timestamp=point.timestamp,
            generation=point.quantity,
            load=load_by_ts[point.timestamp],
            surplus=point.quantity - load_by_ts[point.timestamp],
        )
        for point in generation
        if point.timestamp in load_by_ts
    ]


def find_max(series: Iterable[RenewableSurplus]) -> Optional[RenewableSurplus]:
    """Point with the greatest surplus (earliest on a tie), or None."""
    best: Optional[RenewableSurplus] = None
    for point in sorted(series, key=lambda s: s.timestamp):
        if best is None or point.surplus > best.surplus:
            best = point
    return best


def join_surplus_series(
    generation_doc: MarketDocument,
    load_doc: MarketDocument,
) -> list[RenewableSurplus]:
    """Aggregate both documents and return every matched point, oldest first."""
    generation = aggregate(generation_doc)
    load = aggregate(load_doc)
    surpluses = sorted(join_surplus(generation, load), key=lambda s: s.timestamp)

    if not surpluses:
        logger.warning(
            "No overlapping timestamps (generation={} points, load={} points).",
            len(generation), len(load),
        )
    else:
        logger.debug(
            "Joined {} generation and {} load points into {} surplus points.",
            len(generation), len(load), len(surpluses),
        )
    return surpluses


def join_surplus_max(
    generation_doc: MarketDocument,
    load_doc: MarketDocument,
) -> RenewableSurplus:
    """
    Highest-surplus point of the joined series.

    Raises ``InvalidResponse`` when the two documents share no timestamp.
    """
    best = find_max(join_surplus_series(generation_doc, load_doc))
    if best is None:
        raise InvalidResponse("No matching data points found")
    return best


# ---------------------------------------------------------------------------
# Window filters
# ---------------------------------------------------------------------------


def is_night_hour(ts: datetime) -> bool:
    hour = ts.astimezone(timezone.utc).hour
    return hour >= NIGHT_START_HOUR or hour < NIGHT_END_HOUR


def filter_night(series: Iterable[RenewableSurplus]) -> list[RenewableSurplus]:
    """Keep points between 22:00 and 06:00 UTC (06:00 itself excluded)."""
    return [s for s in series if is_night_hour(s.timestamp)]


def filter_next_hours(
    series: Iterable[RenewableSurplus],
    hours: int,
    now: Optional[datetime] = None,
) -> list[RenewableSurplus]:
    """Keep points inside ``[now, now + hours]``; ``now`` is read once."""
    if now is None:
        now = datetime.now(tz=timezone.utc)
    end = now + timedelta(hours=hours)
    return [s for s in series if now <= s.timestamp <= end]


def filter_high_surplus(
    series: Iterable[RenewableSurplus],
    min_percentage: float = HIGH_SURPLUS_PCT,
) -> list[RenewableSurplus]:
    """Points with positive surplus above ``min_percentage`` % of generation."""
    return [
        s for s in series
        if s.surplus > 0 and s.surplus_percentage() > min_percentage
    ]


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def summarize(series: Sequence[RenewableSurplus]) -> SurplusSummary:
    if not series:
        return SurplusSummary(
            count=0, excess_hours=0,
            min_surplus=0.0, max_surplus=0.0, avg_surplus=0.0, total_surplus=0.0,
            avg_generation=0.0, avg_load=0.0, peak_timestamp=None,
        )

    surpluses = [s.surplus for s in series]
    peak = find_max(series)
    return SurplusSummary(
        count=len(series),
        excess_hours=sum(1 for s in series if s.has_excess()),
        min_surplus=min(surpluses),
        max_surplus=max(surpluses),
        avg_surplus=sum(surpluses) / len(series),
        total_surplus=sum(surpluses),
        avg_generation=sum(s.generation for s in series) / len(series),
        avg_load=sum(s.load for s in series) / len(series),
        peak_timestamp=peak.timestamp if peak else None,
    )
