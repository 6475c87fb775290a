"""Reduce a raw reading stream to display points."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import List, Optional, Sequence, Union

from .records import MS_PER_HOUR, DisplayPoint, Reading, is_well_formed

# Series at or below this size are charted as-is.
PASSTHROUGH_MAX_POINTS = 50
# Day-scale buckets already yield few points.
PASSTHROUGH_BUCKET_HOURS = 24

Sample = Union[Reading, DisplayPoint]


INVALID_LABEL = "invalid date"


def format_label(timestamp_ms: int, tz: Optional[tzinfo] = None) -> str:
    try:
        moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=tz or timezone.utc)
    except (OverflowError, OSError, ValueError):
        return INVALID_LABEL
    return moment.strftime("%d/%m/%Y %H:%M")


def _point(sample: Sample, tz: Optional[tzinfo]) -> DisplayPoint:
    ts = int(sample.timestamp_ms)
    return DisplayPoint(
        timestamp_ms=ts,
        level_percent=float(sample.level_percent),
        display_label=format_label(ts, tz),
    )


def downsample(
    readings: Sequence[Sample],
    bucket_hours: float,
    *,
    tz: Optional[tzinfo] = None,
) -> List[DisplayPoint]:
    """Greedy forward sampler keeping at most one sample per bucket width.

    Kept points are original samples, never averaged. Input must already be
    sorted by time; malformed samples are dropped before anything else.
    """
    valid = [r for r in readings if is_well_formed(r)]
    if not valid:
        return []

    if len(valid) <= PASSTHROUGH_MAX_POINTS or bucket_hours >= PASSTHROUGH_BUCKET_HOURS:
        return [_point(r, tz) for r in valid]

    gap_ms = bucket_hours * MS_PER_HOUR
    first = valid[0]
    kept = [_point(first, tz)]
    last_kept = first.timestamp_ms
    for reading in valid[1:]:
        if reading.timestamp_ms - last_kept >= gap_ms:
            kept.append(_point(reading, tz))
            last_kept = reading.timestamp_ms
    return kept
