"""
GridSurplus: console report

Prints the peak renewable surplus, the first hours of the series, the
high-surplus periods and a CSV export for one bidding zone.

Run:  python report.py --country BE --hours 24
      python report.py --zone 10YBE----------2 --start 202308152200 --end 202308162200
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from typing import Optional

from loguru import logger

from forecast import areas
from forecast.client import EntsoeClient, format_period
from forecast.config import get_settings
from forecast.errors import EntsoeError
from forecast.export import format_console_line, to_csv
from forecast.surplus import HIGH_SURPLUS_PCT, filter_high_surplus, find_max


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Renewable surplus report from ENTSO-E forecasts.")
    target = p.add_mutually_exclusive_group()
    target.add_argument("--country", default="BE", help="ISO country code (primary zone is used). Default BE.")
    target.add_argument("--zone", help="Explicit EIC bidding-zone code.")
    p.add_argument("--hours", type=int, default=24, help="Look-ahead from now when --start/--end are absent.")
    p.add_argument("--start", help="Period start, YYYYMMDDHHmm UTC.")
    p.add_argument("--end", help="Period end, YYYYMMDDHHmm UTC.")
    p.add_argument("--show", type=int, default=10, help="Series rows to print (default 10).")
    p.add_argument("--csv-rows", type=int, default=24, help="Rows in the CSV section (default 24).")
    return p


def _resolve_zone(args: argparse.Namespace) -> Optional[str]:
    if args.zone:
        return args.zone
    zone = areas.get_primary_zone(args.country)
    return zone.code if zone else None


def _resolve_period(args: argparse.Namespace) -> tuple[str, str]:
    if args.start and args.end:
        return args.start, args.end
    now = datetime.now(tz=timezone.utc)
    return format_period(now, now + timedelta(hours=args.hours))


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    if not settings.has_api_key:
        logger.error("ENTSOE_API_KEY environment variable not set.")
        return 2

    zone_code = _resolve_zone(args)
    if zone_code is None:
        logger.error("Unknown country code '{}'.", args.country)
        return 2
    period_start, period_end = _resolve_period(args)

    async with EntsoeClient.from_settings(settings) as client:
        series = await client.get_renewable_surplus_series(zone_code, period_start, period_end)

    peak = find_max(series)
    if peak is None:
        logger.error("No matching data points found for {} ({} to {}).", zone_code, period_start, period_end)
        return 1

    print("=== Peak Renewable Energy Availability ===\n")
    print(f"  Time: {peak.timestamp:%Y-%m-%d %H:%M:%S} UTC")
    print(f"  Generation: {peak.generation:.2f} MW")
    print(f"  Load: {peak.load:.2f} MW")
    print(f"  Surplus: {peak.surplus:.2f} MW")
    print(f"  Surplus %: {peak.surplus_percentage():.2f}%")

    print("\n=== Full Renewable Surplus Time Series ===\n")
    print(f"Total data points: {len(series)}")
    print(f"\nFirst {args.show} points:")
    for point in series[: args.show]:
        print(f"  {format_console_line(point)}")

    high = filter_high_surplus(series)
    print(f"\n=== Periods with >{HIGH_SURPLUS_PCT:.0f}% Renewable Surplus ===\n({len(high)} points)")
    for point in high[:5]:
        print(
            f"  {point.timestamp:%Y-%m-%d %H:%M} | "
            f"Surplus: {point.surplus:.2f} MW ({point.surplus_percentage():.1f}%)"
        )

    print("\n=== CSV Export ===")
    print(to_csv(series, limit=args.csv_rows), end="")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if bool(args.start) != bool(args.end):
        parser.error("--start and --end must be given together")

    logger.remove()
    logger.add(sys.stderr, level=get_settings().log_level)

    try:
        return asyncio.run(run(args))
    except EntsoeError as exc:
        logger.error("ENTSO-E error: {}", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
