"""
GridSurplus: ENTSO-E bidding zone / control area registry.

Static reference data: EIC area codes grouped by ISO 3166-1 alpha-2 country
code.  When a country has several entries, the first one listed is its
*primary* zone (the whole-country area) and is the one used for forecast
queries.  The registry is read-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class BiddingZone:
    code:         str             # EIC area code, e.g. "10YBE----------2"
    country_code: str             # ISO alpha-2
    name:         str
    tso:          Optional[str] = None

    def __str__(self) -> str:
        if self.tso:
            return f"{self.name} ({self.country_code}) - {self.tso}"
        return f"{self.name} ({self.country_code})"

    def to_dict(self) -> dict:
        return {"code": self.code, "name": self.name, "tso": self.tso}


_ZONES: tuple[BiddingZone, ...] = (
    BiddingZone("10YAL-KESH-----5", "AL", "Albania"),
    BiddingZone("10YAT-APG------L", "AT", "Austria"),
    BiddingZone("10Y1001A1001A51S", "BY", "Belarus"),
    BiddingZone("10YBE----------2", "BE", "Belgium"),
    BiddingZone("10YBA-JPCC-----D", "BA", "Bosnia and Herzegovina"),
    BiddingZone("10YCA-BULGARIA-R", "BG", "Bulgaria"),
    BiddingZone("10YHR-HEP------M", "HR", "Croatia"),
    BiddingZone("10YCY-1001A0003J", "CY", "Cyprus"),
    BiddingZone("10YCZ-CEPS-----N", "CZ", "Czech Republic"),
    BiddingZone("10Y1001A1001A796", "DK", "Denmark"),
    BiddingZone("10Y1001A1001A39I", "EE", "Estonia"),
    BiddingZone("10YFI-1--------U", "FI", "Finland"),
    BiddingZone("10YFR-RTE------C", "FR", "France"),
    BiddingZone("10Y1001A1001A83F", "DE", "Germany"),
    BiddingZone("10YDE-VE-------2", "DE", "Germany", "50Hertz"),
    BiddingZone("10YDE-RWENET---I", "DE", "Germany", "Amprion"),
    BiddingZone("10YDE-EON------1", "DE", "Germany", "TenneT"),
    BiddingZone("10YDE-ENBW-----N", "DE", "Germany", "TransnetBW"),
    BiddingZone("10YGR-HTSO-----Y", "GR", "Greece"),
    BiddingZone("10YHU-MAVIR----U", "HU", "Hungary"),
    BiddingZone("IS",               "IS", "Iceland"),
    BiddingZone("10YIE-1001A00010", "IE", "Ireland"),
    BiddingZone("10Y1001A1001A016", "GB", "Northern Ireland"),
    BiddingZone("10YIT-GRTN-----B", "IT", "Italy"),
    BiddingZone("10Y1001A1001A885", "IT", "Italy", "Saco AC"),
    BiddingZone("10Y1001A1001A893", "IT", "Italy", "Saco DC"),
    BiddingZone("10Y1001A1001A50U", "RU", "Kaliningrad"),
    BiddingZone("10YLV-1001A00074", "LV", "Latvia"),
    BiddingZone("10YLT-1001A0008Q", "LT", "Lithuania"),
    BiddingZone("10YLU-CEGEDEL-NQ", "LU", "Luxembourg"),
    BiddingZone("10YMK-MEPSO----8", "MK", "North Macedonia"),
    BiddingZone("10Y1001A1001A93C", "MT", "Malta"),
    BiddingZone("10Y1001A1001A990", "MD", "Moldova"),
    BiddingZone("10YCS-CG-TSO---S", "ME", "Montenegro"),
    BiddingZone("10YNL----------L", "NL", "Netherlands"),
    BiddingZone("10YNO-0--------C", "NO", "Norway"),
    BiddingZone("10YPL-AREA-----S", "PL", "Poland"),
    BiddingZone("10YPT-REN------W", "PT", "Portugal"),
    BiddingZone("10YRO-TEL------P", "RO", "Romania"),
    BiddingZone("10Y1001A1001A49F", "RU", "Russia"),
    BiddingZone("10YCS-SERBIATSOV", "RS", "Serbia"),
    BiddingZone("10YSK-SEPS-----K", "SK", "Slovakia"),
    BiddingZone("10YSI-ELES-----O", "SI", "Slovenia"),
    BiddingZone("10YES-REE------0", "ES", "Spain"),
    BiddingZone("10YSE-1--------K", "SE", "Sweden"),
    BiddingZone("10YCH-SWISSGRIDZ", "CH", "Switzerland"),
    BiddingZone("10YTR-TEIAS----W", "TR", "Turkey"),
    BiddingZone("10Y1001C--00003F", "UA", "Ukraine"),
)


def _group_by_country(zones: tuple[BiddingZone, ...]) -> Mapping[str, tuple[BiddingZone, ...]]:
    grouped: dict[str, list[BiddingZone]] = {}
    for zone in zones:
        grouped.setdefault(zone.country_code, []).append(zone)
    return MappingProxyType({cc: tuple(z) for cc, z in grouped.items()})


BIDDING_ZONES: Mapping[str, tuple[BiddingZone, ...]] = _group_by_country(_ZONES)


def get_zones_by_country(country_code: str) -> Optional[tuple[BiddingZone, ...]]:
    """All zones registered for a country, or None if the code is unknown."""
    return BIDDING_ZONES.get(country_code.upper())


def get_zone_by_code(area_code: str) -> Optional[BiddingZone]:
    return next((z for z in _ZONES if z.code == area_code), None)


def get_primary_zone(country_code: str) -> Optional[BiddingZone]:
    """First listed zone of a country, the one used for forecast queries."""
    zones = get_zones_by_country(country_code)
    return zones[0] if zones else None


def list_countries() -> list[str]:
    return sorted(BIDDING_ZONES)
