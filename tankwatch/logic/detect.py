"""Infer refill events from jumps in tank level."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .records import INFERRED, DisplayPoint, RefillEvent, is_well_formed

# Percentage points between neighbouring samples that count as a delivery.
MIN_INCREASE = 5.0
# Chart tooltips attach an event to a point within this distance.
TOOLTIP_TOLERANCE_MS = 300_000
RECENT_EVENTS_LIMIT = 20


def detect_events(
    points: Sequence[DisplayPoint],
    min_increase: float = MIN_INCREASE,
    *,
    collapse_runs: bool = False,
) -> List[RefillEvent]:
    """Emit one event per adjacent pair whose level rose by ``min_increase``.

    A refill spread across several samples yields one event per qualifying
    step. With ``collapse_runs`` consecutive qualifying steps are merged into
    a single event stamped at the first step.
    """
    valid = [p for p in points if is_well_formed(p)]
    if len(valid) < 2:
        return []

    events: List[RefillEvent] = []
    run_start: Optional[DisplayPoint] = None
    run_ts = 0
    for previous, current in zip(valid, valid[1:]):
        increase = current.level_percent - previous.level_percent
        qualifies = increase >= min_increase

        if not collapse_runs:
            if qualifies:
                events.append(_event(current.timestamp_ms, previous, current))
            continue

        if qualifies:
            if run_start is None:
                run_start, run_ts = previous, current.timestamp_ms
            run_end = current
        elif run_start is not None:
            events.append(_event(run_ts, run_start, run_end))
            run_start = None

    if collapse_runs and run_start is not None:
        events.append(_event(run_ts, run_start, run_end))
    return events


def _event(timestamp_ms: int, before: DisplayPoint, after: DisplayPoint) -> RefillEvent:
    return RefillEvent(
        timestamp_ms=timestamp_ms,
        previous_level=before.level_percent,
        new_level=after.level_percent,
        increase=after.level_percent - before.level_percent,
        source=INFERRED,
    )


def recent_events(events: Sequence[RefillEvent], limit: int = RECENT_EVENTS_LIMIT) -> List[RefillEvent]:
    """Newest first, capped at ``limit``."""
    if limit <= 0:
        return []
    return list(reversed(events[-limit:]))


def event_near(
    events: Sequence[RefillEvent],
    timestamp_ms: int,
    tolerance_ms: int = TOOLTIP_TOLERANCE_MS,
) -> Optional[RefillEvent]:
    for event in events:
        if abs(event.timestamp_ms - timestamp_ms) < tolerance_ms:
            return event
    return None
