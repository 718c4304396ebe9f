"""
GridSurplus: tabular and console renderings of a surplus series.

Formatting only: timestamps as RFC 3339, MW and percentages with two
decimals.  Nothing here changes values.
"""

from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd

from forecast.surplus import RenewableSurplus

CSV_COLUMNS = ["Timestamp", "Generation (MW)", "Load (MW)", "Surplus (MW)", "Surplus %"]


def surplus_frame(series: Sequence[RenewableSurplus]) -> pd.DataFrame:
    """
    One row per point.

    Columns: timestamp (tz-aware UTC), generation_mw, load_mw, surplus_mw,
             surplus_pct, has_excess
    """
    if not series:
        return pd.DataFrame(
            columns=["timestamp", "generation_mw", "load_mw", "surplus_mw", "surplus_pct", "has_excess"]
        )
    df = pd.DataFrame({
        "timestamp":     pd.to_datetime([s.timestamp for s in series], utc=True),
        "generation_mw": [s.generation for s in series],
        "load_mw":       [s.load for s in series],
        "surplus_mw":    [s.surplus for s in series],
        "surplus_pct":   [s.surplus_percentage() for s in series],
        "has_excess":    [s.has_excess() for s in series],
    })
    return df


def to_csv(series: Sequence[RenewableSurplus], limit: Optional[int] = None) -> str:
    """CSV text with a header row; ``limit`` keeps only the first N points."""
    rows = list(series)[:limit] if limit is not None else list(series)
    df = pd.DataFrame(
        [
            (
                s.timestamp.isoformat(),
                s.generation,
                s.load,
                s.surplus,
                s.surplus_percentage(),
            )
            for s in rows
        ],
        columns=CSV_COLUMNS,
    )
    return df.to_csv(index=False, float_format="%.2f", lineterminator="\n")


def format_console_line(point: RenewableSurplus) -> str:
    indicator = "✓" if point.has_excess() else "✗"
    return (
        f"{point.timestamp:%Y-%m-%d %H:%M} {indicator} | "
        f"Gen: {point.generation:7.2f} MW | "
        f"Load: {point.load:7.2f} MW | "
        f"Surplus: {point.surplus:+7.2f} MW"
    )


def plot_payload(series: Sequence[RenewableSurplus]) -> dict[str, list]:
    """Columnar lists for chart front-ends."""
    return {
        "timestamps": [s.timestamp.isoformat() for s in series],
        "generation": [s.generation for s in series],
        "load":       [s.load for s in series],
        "surplus":    [s.surplus for s in series],
    }
