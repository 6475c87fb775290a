from __future__ import annotations

import random

import pytest

from tankwatch.logic.overlay import build_overlay, classify, legacy_markers, reconcile_intervals
from tankwatch.logic.records import (
    ACTIVATED,
    DEACTIVATED,
    RECORDED,
    Interval,
    IntervalBoundary,
    LegacyMarker,
    PumpActivation,
    RefillEvent,
)

pytestmark = pytest.mark.logic


def _pump(ts: int, action: str) -> PumpActivation:
    return PumpActivation(timestamp_ms=ts, action=action)


def _refill(ts: int, water_ended, level: float = 50.0) -> RefillEvent:
    return RefillEvent(ts, level, level, 0.0, source=RECORDED, water_ended=water_ended)


def test_simple_pump_run() -> None:
    records = [_pump(100, ACTIVATED), _pump(300, DEACTIVATED)]
    assert reconcile_intervals(records) == [Interval(100, 300)]


def test_start_shadowed_by_later_start_is_dropped() -> None:
    records = [_pump(100, ACTIVATED), _pump(200, ACTIVATED), _pump(300, DEACTIVATED)]
    assert reconcile_intervals(records) == [Interval(200, 300)]


def test_unmatched_start_produces_nothing() -> None:
    records = [_pump(100, ACTIVATED), _pump(200, DEACTIVATED), _pump(400, ACTIVATED)]
    assert reconcile_intervals(records) == [Interval(100, 200)]


def test_end_before_any_start_is_ignored() -> None:
    records = [_pump(50, DEACTIVATED), _pump(100, ACTIVATED), _pump(150, DEACTIVATED)]
    assert reconcile_intervals(records) == [Interval(100, 150)]


def test_input_order_does_not_matter() -> None:
    records = []
    for i in range(20):
        base = 1_000 + i * 1_000
        records += [_pump(base, ACTIVATED), _pump(base + 400, DEACTIVATED)]
    expected = reconcile_intervals(records)
    assert len(expected) == 20

    rng = random.Random(7)
    for _ in range(5):
        shuffled = records[:]
        rng.shuffle(shuffled)
        assert reconcile_intervals(shuffled) == expected


def test_refills_pair_on_water_ended_flag() -> None:
    records = [_refill(1_000, False), _refill(5_000, True), _refill(3_000, None, level=77.0)]
    assert reconcile_intervals(records) == [Interval(1_000, 5_000)]
    assert legacy_markers(records) == [LegacyMarker(3_000, 77.0)]


def test_legacy_markers_are_sorted_and_never_paired() -> None:
    records = [_refill(9_000, None), _refill(2_000, None)]
    assert reconcile_intervals(records) == []
    assert [m.timestamp_ms for m in legacy_markers(records)] == [2_000, 9_000]


def test_invalid_records_are_dropped() -> None:
    assert classify(_pump(0, ACTIVATED)) is None
    assert classify(_pump(100, "paused")) is None
    assert classify(_refill(-1, True)) is None
    assert classify(_pump(100, DEACTIVATED)) == IntervalBoundary(100, is_end=True)


def test_unknown_record_type_is_rejected() -> None:
    with pytest.raises(TypeError):
        classify({"timestamp": 100})


def test_custom_pairing_strategy() -> None:
    def everything(boundaries):
        ts = sorted(b.timestamp_ms for b in boundaries)
        return [Interval(ts[0], ts[-1])] if ts else []

    records = [_pump(100, ACTIVATED), _pump(200, ACTIVATED), _pump(300, DEACTIVATED)]
    assert reconcile_intervals(records, strategy=everything) == [Interval(100, 300)]


def test_build_overlay_combines_both_sources() -> None:
    overlay = build_overlay(
        [_refill(1_000, False), _refill(2_000, True), _refill(1_500, None)],
        [_pump(3_000, ACTIVATED), _pump(3_600, DEACTIVATED)],
    )
    assert overlay.refill_intervals == [Interval(1_000, 2_000)]
    assert overlay.pump_intervals == [Interval(3_000, 3_600)]
    assert overlay.markers == [LegacyMarker(1_500, 50.0)]
