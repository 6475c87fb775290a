"""Summary numbers for the stats cards."""

from __future__ import annotations

import math
from typing import Any, Dict, Optional, Sequence

from .records import (
    INFERRED,
    MS_PER_HOUR,
    DisplayPoint,
    RefillEvent,
    StatsSummary,
    is_well_formed,
    valid_timestamp,
)

EXPECTED_INTERVAL_HOURS = 72.0
LOW_LEVEL = 40.0
MEDIUM_LEVEL = 80.0


def _round_half_up(value: float, digits: int = 1) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def aggregate(
    points: Sequence[DisplayPoint],
    events: Sequence[RefillEvent],
    recorded_last_event: Optional[Any] = None,
    *,
    expected_interval_hours: float = EXPECTED_INTERVAL_HOURS,
) -> StatsSummary:
    """Average level, last/next refill and event count for one window.

    ``recorded_last_event`` is anything carrying ``timestamp_ms``; when its
    timestamp is usable it wins over the inferred events.
    """
    levels = [p.level_percent for p in points if is_well_formed(p)]
    average = 0.0
    if levels:
        total = 0.0
        for level in levels:
            total += level
        average = _round_half_up(total / len(levels))

    # recorded marks only feed last_event_timestamp through recorded_last_event
    inferred = [e for e in events if e.source == INFERRED and valid_timestamp(e.timestamp_ms)]

    last_ts: Optional[int] = None
    recorded_ts = getattr(recorded_last_event, "timestamp_ms", None)
    if valid_timestamp(recorded_ts):
        last_ts = int(recorded_ts)
    elif inferred:
        last_ts = int(max(e.timestamp_ms for e in inferred))

    next_ts: Optional[int] = None
    if last_ts is not None and math.isfinite(expected_interval_hours):
        candidate = last_ts + expected_interval_hours * MS_PER_HOUR
        if valid_timestamp(candidate):
            next_ts = int(candidate)

    return StatsSummary(
        average_level=average,
        total_events=len(inferred),
        last_event_timestamp=last_ts,
        next_expected_timestamp=next_ts,
    )


def classify_level(level: float, low: float = LOW_LEVEL, medium: float = MEDIUM_LEVEL) -> str:
    if level < low:
        return "low"
    if level < medium:
        return "medium"
    return "high"


def refill_outlook(next_expected_timestamp: Optional[int], now_ms: int) -> Dict[str, Any]:
    """How far away the projected refill is, as shown on the "next refill" card.

    A projection in the past is reported as overdue, never clamped.
    """
    if next_expected_timestamp is None:
        return {"status": "unknown", "days": None, "hours": None}
    diff = next_expected_timestamp - now_ms
    if diff <= 0:
        return {"status": "overdue", "days": None, "hours": None}

    hours = diff // MS_PER_HOUR
    days = hours // 24
    if days > 0:
        status = "days"
    elif hours > 0:
        status = "hours"
    else:
        status = "soon"
    return {"status": status, "days": int(days), "hours": int(hours)}
