"""Pump run bookkeeping."""

from __future__ import annotations

from typing import Optional, Sequence

from .records import ACTIVATED, DEACTIVATED, Interval, PumpActivation
from .overlay import reconcile_intervals


def pair_pump_duration(activation: PumpActivation, deactivation: PumpActivation) -> int:
    # callers reject deactivations that do not postdate the activation
    return deactivation.timestamp_ms - activation.timestamp_ms


def last_open_activation(records: Sequence[PumpActivation]) -> Optional[PumpActivation]:
    """Newest activation not followed by a deactivation, i.e. the pump is on."""
    ordered = sorted(records, key=lambda r: r.timestamp_ms)
    open_activation: Optional[PumpActivation] = None
    for record in ordered:
        if record.action == ACTIVATED:
            open_activation = record
        elif record.action == DEACTIVATED:
            open_activation = None
    return open_activation


def last_completed_run(records: Sequence[PumpActivation]) -> Optional[Interval]:
    intervals = reconcile_intervals(records)
    if not intervals:
        return None
    return max(intervals, key=lambda i: i.end_ms)


def format_duration(milliseconds: int) -> str:
    total_seconds = max(0, int(milliseconds)) // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
