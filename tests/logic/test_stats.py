from __future__ import annotations

import math

import pytest

from conftest import NOW_MS, make_points
from tankwatch.logic.records import MS_PER_HOUR, RECORDED, DisplayPoint, RefillEvent
from tankwatch.logic.stats import aggregate, classify_level, refill_outlook

pytestmark = pytest.mark.logic


def _inferred(ts: int) -> RefillEvent:
    return RefillEvent(timestamp_ms=ts, previous_level=20.0, new_level=40.0, increase=20.0)


def test_average_is_rounded_to_one_decimal() -> None:
    summary = aggregate(make_points([20, 40, 60]), [])
    assert summary.average_level == 40.0
    assert summary.total_events == 0
    assert summary.last_event_timestamp is None
    assert summary.next_expected_timestamp is None


def test_average_rounds_half_up() -> None:
    assert aggregate(make_points([0.5, 0.0]), []).average_level == 0.3


def test_empty_window() -> None:
    summary = aggregate([], [])
    assert summary.average_level == 0.0
    assert summary.total_events == 0


def test_malformed_levels_are_excluded_from_average() -> None:
    points = make_points([30, 50])
    points.append(DisplayPoint(NOW_MS, math.inf, ""))
    assert aggregate(points, []).average_level == 40.0


def test_next_refill_projects_from_last_inferred_event() -> None:
    events = [_inferred(500), _inferred(1000)]
    summary = aggregate([], events, expected_interval_hours=72)
    assert summary.total_events == 2
    assert summary.last_event_timestamp == 1000
    assert summary.next_expected_timestamp == 1000 + 259_200_000


def test_recorded_event_wins_over_inferred() -> None:
    recorded = RefillEvent(2_000, 10.0, 90.0, 80.0, source=RECORDED)
    summary = aggregate([], [_inferred(5_000)], recorded)
    assert summary.last_event_timestamp == 2_000
    assert summary.next_expected_timestamp == 2_000 + 72 * MS_PER_HOUR
    # the recorded marker is not part of the inferred count
    assert summary.total_events == 1


def test_unusable_recorded_event_falls_back() -> None:
    recorded = RefillEvent(0, 10.0, 90.0, 80.0, source=RECORDED)
    summary = aggregate([], [_inferred(5_000)], recorded)
    assert summary.last_event_timestamp == 5_000


def test_projection_past_representable_range_is_dropped() -> None:
    summary = aggregate([], [_inferred(8_640_000_000_000_000)])
    assert summary.last_event_timestamp == 8_640_000_000_000_000
    assert summary.next_expected_timestamp is None


def test_past_projection_is_not_clamped() -> None:
    last = NOW_MS - 10 * 24 * MS_PER_HOUR
    summary = aggregate([], [_inferred(last)])
    assert summary.next_expected_timestamp < NOW_MS
    assert refill_outlook(summary.next_expected_timestamp, NOW_MS)["status"] == "overdue"


@pytest.mark.parametrize(
    ("level", "expected"),
    [(0, "low"), (39.9, "low"), (40, "medium"), (79.9, "medium"), (80, "high"), (100, "high")],
)
def test_classify_level(level: float, expected: str) -> None:
    assert classify_level(level) == expected


def test_refill_outlook_buckets() -> None:
    assert refill_outlook(None, NOW_MS) == {"status": "unknown", "days": None, "hours": None}
    assert refill_outlook(NOW_MS + 50 * MS_PER_HOUR, NOW_MS) == {"status": "days", "days": 2, "hours": 50}
    assert refill_outlook(NOW_MS + 5 * MS_PER_HOUR, NOW_MS)["status"] == "hours"
    assert refill_outlook(NOW_MS + 60_000, NOW_MS)["status"] == "soon"


def test_recorded_events_in_event_list_are_not_counted() -> None:
    events = [
        _inferred(1_000),
        RefillEvent(5_000, 20.0, 90.0, 70.0, source=RECORDED, water_ended=True),
    ]
    summary = aggregate([], events)
    assert summary.total_events == 1
    assert summary.last_event_timestamp == 1_000
    assert summary.next_expected_timestamp == 1_000 + 259_200_000


def test_only_recorded_events_leave_no_fallback() -> None:
    summary = aggregate([], [RefillEvent(5_000, 20.0, 90.0, 70.0, source=RECORDED)])
    assert summary.total_events == 0
    assert summary.last_event_timestamp is None
