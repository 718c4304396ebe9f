"""
GridSurplus: runtime configuration.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory.

    ENTSOE_API_KEY   security token for the Transparency Platform (required
                     for live calls)
    ENTSOE_BASE_URL  REST endpoint, defaults to the public web API
    ENTSOE_TIMEOUT   HTTP timeout in seconds; unset or empty = no timeout
    LOG_LEVEL        loguru level for the entry points (default INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BASE_URL = "https://web-api.tp.entsoe.eu/api"


@dataclass(frozen=True)
class Settings:
    api_key:   str
    base_url:  str = DEFAULT_BASE_URL
    timeout:   Optional[float] = None
    log_level: str = "INFO"

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"ENTSOE_TIMEOUT must be a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"ENTSOE_TIMEOUT must be positive, got {raw!r}")
    return value


def get_settings() -> Settings:
    """Read settings from the environment (re-evaluated on every call)."""
    return Settings(
        api_key=os.getenv("ENTSOE_API_KEY", "").strip(),
        base_url=os.getenv("ENTSOE_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        timeout=_parse_timeout(os.getenv("ENTSOE_TIMEOUT")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
