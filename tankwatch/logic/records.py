"""Immutable value objects passed between the engine stages."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional, Union

INFERRED = "inferred"
RECORDED = "recorded"

ACTIVATED = "activated"
DEACTIVATED = "deactivated"

MS_PER_HOUR = 3_600_000
# Largest epoch-ms value a dashboard Date can hold.
MAX_TIMESTAMP_MS = 8_640_000_000_000_000


@dataclass(frozen=True)
class Reading:
    timestamp_ms: int
    level_percent: float


@dataclass(frozen=True)
class DisplayPoint:
    timestamp_ms: int
    level_percent: float
    display_label: str


@dataclass(frozen=True)
class RefillEvent:
    timestamp_ms: int
    previous_level: float
    new_level: float
    increase: float
    source: str = INFERRED
    water_ended: Optional[bool] = None


@dataclass(frozen=True)
class PumpActivation:
    timestamp_ms: int
    action: str
    duration_ms: Optional[int] = None


@dataclass(frozen=True)
class Interval:
    start_ms: int
    end_ms: int

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


@dataclass(frozen=True)
class TrendPoint:
    x: int
    y: float


@dataclass(frozen=True)
class StatsSummary:
    average_level: float
    total_events: int
    last_event_timestamp: Optional[int] = None
    next_expected_timestamp: Optional[int] = None


@dataclass(frozen=True)
class LegacyMarker:
    """Refill record written before start/end marking existed."""

    timestamp_ms: int
    level: Optional[float] = None


@dataclass(frozen=True)
class IntervalBoundary:
    timestamp_ms: int
    is_end: bool


OverlayRecord = Union[LegacyMarker, IntervalBoundary]


def valid_timestamp(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and 0 < value <= MAX_TIMESTAMP_MS


def valid_level(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_well_formed(sample: Any) -> bool:
    """True when a reading-like object has a usable timestamp and level."""
    return valid_timestamp(getattr(sample, "timestamp_ms", None)) and valid_level(
        getattr(sample, "level_percent", None)
    )
