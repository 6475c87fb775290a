"""Pure time-series routines behind the dashboard endpoints."""

from .detect import detect_events
from .downsample import downsample
from .overlay import build_overlay, reconcile_intervals
from .pump import pair_pump_duration
from .stats import aggregate
from .trend import fit_trend

__all__ = [
    "aggregate",
    "build_overlay",
    "detect_events",
    "downsample",
    "fit_trend",
    "pair_pump_duration",
    "reconcile_intervals",
]
