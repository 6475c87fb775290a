"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from datetime import tzinfo
from typing import Dict, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field


class PeriodConfig(BaseModel):
    label: str
    hours: Optional[int] = Field(default=None, description="Window length; None means all data")
    bucket_hours: float = Field(1.0, gt=0)
    cache_ttl_seconds: float = Field(60.0, ge=0)


PERIODS: Dict[str, PeriodConfig] = {
    "24h": PeriodConfig(label="24 hours", hours=24, bucket_hours=1),
    "7d": PeriodConfig(label="7 days", hours=24 * 7, bucket_hours=6),
    "30d": PeriodConfig(label="30 days", hours=24 * 30, bucket_hours=24),
    # widest window, so cached longer
    "all": PeriodConfig(label="All data", hours=None, bucket_hours=1, cache_ttl_seconds=300),
}


class Settings(BaseModel):
    store: str = "sql"
    firebase_url: Optional[str] = None
    firebase_auth: Optional[str] = None
    timezone: str = "America/Sao_Paulo"
    min_increase: float = 5.0
    expected_interval_hours: float = 72.0
    collapse_runs: bool = False
    low_level: float = 40.0
    medium_level: float = 80.0
    stats_period: str = "30d"
    recent_events_limit: int = 20
    default_cache_ttl_seconds: float = 60.0
    periods: Dict[str, PeriodConfig] = Field(default_factory=lambda: dict(PERIODS))

    def period(self, name: str) -> PeriodConfig:
        try:
            return self.periods[name]
        except KeyError:
            raise KeyError(f"Unknown period {name!r}") from None

    @property
    def tz(self) -> tzinfo:
        return ZoneInfo(self.timezone)


def load_settings() -> Settings:
    return Settings(
        store=os.getenv("TANKWATCH_STORE", "sql"),
        firebase_url=os.getenv("FIREBASE_DATABASE_URL"),
        firebase_auth=os.getenv("FIREBASE_AUTH"),
        timezone=os.getenv("TANKWATCH_TZ", "America/Sao_Paulo"),
        min_increase=float(os.getenv("TANKWATCH_MIN_INCREASE", "5")),
        expected_interval_hours=float(os.getenv("TANKWATCH_EXPECTED_INTERVAL_HOURS", "72")),
        collapse_runs=os.getenv("TANKWATCH_COLLAPSE_RUNS", "").lower() in {"1", "true", "yes"},
    )
