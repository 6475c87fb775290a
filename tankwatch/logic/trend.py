"""Least-squares trend line over the displayed series."""

from __future__ import annotations

from typing import List, Sequence

from .records import DisplayPoint, TrendPoint, is_well_formed


def _index_denominator(n: int) -> float:
    """``n·Σx² − (Σx)²`` for x = 0..n-1; positive for every n >= 2."""
    sum_x = sum_xx = 0.0
    for i in range(n):
        sum_x += i
        sum_xx += i * i
    return n * sum_xx - sum_x * sum_x


def fit_trend(points: Sequence[DisplayPoint]) -> List[TrendPoint]:
    """
    Regress level on point index (not time) and return the two endpoints of
    the fitted segment, x being the first and last timestamps.
    """
    valid = [p for p in points if is_well_formed(p)]
    n = len(valid)
    if n < 2:
        return []

    sum_x = sum_y = sum_xy = 0.0
    for i, point in enumerate(valid):
        sum_x += i
        sum_y += point.level_percent
        sum_xy += i * point.level_percent

    slope = (n * sum_xy - sum_x * sum_y) / _index_denominator(n)
    intercept = (sum_y - slope * sum_x) / n

    return [
        TrendPoint(x=valid[0].timestamp_ms, y=intercept),
        TrendPoint(x=valid[-1].timestamp_ms, y=intercept + slope * (n - 1)),
    ]
