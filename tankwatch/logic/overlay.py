"""Pair start/end records into shaded chart intervals.

Pump records and refill records share one pairing routine. Each record is
first classified into a tagged variant:

* ``IntervalBoundary(is_end=False)`` for a pump activation or a refill whose
  ``water_ended`` flag is ``False``;
* ``IntervalBoundary(is_end=True)`` for a pump deactivation or a refill whose
  flag is ``True``;
* ``LegacyMarker`` for refill records written before the flag existed. These
  are drawn as standalone markers and never paired.

A start pairs with the earliest end strictly after it, unless another start
sits strictly between the two. Starts without such an end produce nothing.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from functools import singledispatch
from typing import Callable, Iterable, List, Optional, Sequence

from .records import (
    ACTIVATED,
    DEACTIVATED,
    Interval,
    IntervalBoundary,
    LegacyMarker,
    OverlayRecord,
    PumpActivation,
    RefillEvent,
    valid_timestamp,
)

PairingStrategy = Callable[[Sequence[IntervalBoundary]], List[Interval]]


@singledispatch
def classify(record: object) -> Optional[OverlayRecord]:
    raise TypeError(f"Cannot build an overlay from {type(record).__name__}")


@classify.register
def _(record: PumpActivation) -> Optional[OverlayRecord]:
    if not valid_timestamp(record.timestamp_ms):
        return None
    if record.action == ACTIVATED:
        return IntervalBoundary(timestamp_ms=int(record.timestamp_ms), is_end=False)
    if record.action == DEACTIVATED:
        return IntervalBoundary(timestamp_ms=int(record.timestamp_ms), is_end=True)
    return None


@classify.register
def _(record: RefillEvent) -> Optional[OverlayRecord]:
    if not valid_timestamp(record.timestamp_ms):
        return None
    if record.water_ended is None:
        return LegacyMarker(timestamp_ms=int(record.timestamp_ms), level=record.new_level)
    return IntervalBoundary(timestamp_ms=int(record.timestamp_ms), is_end=bool(record.water_ended))


def _classified(records: Iterable[object]) -> List[OverlayRecord]:
    out: List[OverlayRecord] = []
    for record in records:
        tagged = classify(record)
        if tagged is not None:
            out.append(tagged)
    return out


def pair_nearest_following(boundaries: Sequence[IntervalBoundary]) -> List[Interval]:
    starts = sorted(b.timestamp_ms for b in boundaries if not b.is_end)
    ends = sorted(b.timestamp_ms for b in boundaries if b.is_end)

    intervals: List[Interval] = []
    for start in starts:
        idx = bisect_right(ends, start)
        if idx == len(ends):
            continue
        end = ends[idx]
        next_start_idx = bisect_right(starts, start)
        if next_start_idx < len(starts) and starts[next_start_idx] < end:
            continue
        intervals.append(Interval(start_ms=start, end_ms=end))
    return intervals


def reconcile_intervals(
    records: Iterable[object],
    *,
    strategy: PairingStrategy = pair_nearest_following,
) -> List[Interval]:
    """Intervals for pump or refill records; input order does not matter."""
    boundaries = [r for r in _classified(records) if isinstance(r, IntervalBoundary)]
    return strategy(boundaries)


def legacy_markers(records: Iterable[object]) -> List[LegacyMarker]:
    markers = [r for r in _classified(records) if isinstance(r, LegacyMarker)]
    return sorted(markers, key=lambda m: m.timestamp_ms)


@dataclass(frozen=True)
class Overlay:
    refill_intervals: List[Interval] = field(default_factory=list)
    pump_intervals: List[Interval] = field(default_factory=list)
    markers: List[LegacyMarker] = field(default_factory=list)


def build_overlay(
    refill_records: Sequence[RefillEvent],
    pump_records: Sequence[PumpActivation],
    *,
    strategy: PairingStrategy = pair_nearest_following,
) -> Overlay:
    return Overlay(
        refill_intervals=reconcile_intervals(refill_records, strategy=strategy),
        pump_intervals=reconcile_intervals(pump_records, strategy=strategy),
        markers=legacy_markers(refill_records),
    )
