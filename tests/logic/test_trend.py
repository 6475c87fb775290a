from __future__ import annotations

import math

import pytest

from conftest import make_points
from tankwatch.logic.records import DisplayPoint, TrendPoint
from tankwatch.logic.trend import _index_denominator, fit_trend

pytestmark = pytest.mark.logic


def test_linear_series_fits_exactly() -> None:
    points = make_points([10, 20, 30, 40])
    line = fit_trend(points)
    assert line == [
        TrendPoint(x=points[0].timestamp_ms, y=10.0),
        TrendPoint(x=points[-1].timestamp_ms, y=40.0),
    ]


def test_flat_series_has_zero_slope() -> None:
    line = fit_trend(make_points([55, 55, 55]))
    assert [p.y for p in line] == [55.0, 55.0]


def test_regression_is_over_index_not_time() -> None:
    # uneven spacing does not bend the line
    points = [
        DisplayPoint(1_000, 10.0, ""),
        DisplayPoint(2_000, 20.0, ""),
        DisplayPoint(90_000, 30.0, ""),
    ]
    line = fit_trend(points)
    assert line[0].y == pytest.approx(10.0)
    assert line[1].y == pytest.approx(30.0)
    assert line[1].x == 90_000


def test_fewer_than_two_points() -> None:
    assert fit_trend([]) == []
    assert fit_trend(make_points([42])) == []


def test_malformed_points_do_not_count() -> None:
    points = make_points([10, 20])
    points.append(DisplayPoint(points[-1].timestamp_ms + 1, math.nan, ""))
    line = fit_trend(points)
    assert len(line) == 2
    assert line[1].x == points[1].timestamp_ms
    assert all(math.isfinite(p.y) for p in line)


@pytest.mark.parametrize("n", [2, 3, 10, 50, 199, 200])
def test_index_denominator_is_positive(n: int) -> None:
    assert _index_denominator(n) > 0
    assert _index_denominator(n) == n * n * (n * n - 1) / 12


@pytest.mark.parametrize("n", range(2, 201))
def test_endpoints_finite_for_any_length(n: int) -> None:
    flat = fit_trend(make_points([50] * n))
    noisy = fit_trend(make_points([40 + (i * 37 % 23) for i in range(n)]))
    assert [p.y for p in flat] == pytest.approx([50.0, 50.0])
    assert all(math.isfinite(p.y) for p in noisy)
    assert len(noisy) == 2
