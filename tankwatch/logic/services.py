"""Business logic routines that power the dashboard endpoints.

These glue the reading store to the pure routines: fetch (through the period
cache), downsample, detect, fit, aggregate and reconcile. Every tunable is
taken from the ``Settings`` passed in and handed to the routines explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

from tankwatch.core.store import LatestState, ReadingCache, ReadingStore
from tankwatch.settings import PeriodConfig, Settings

from .detect import detect_events, recent_events
from .downsample import downsample
from .overlay import build_overlay
from .pump import format_duration, last_completed_run, last_open_activation
from .records import MS_PER_HOUR, RECORDED, PumpActivation, Reading, RefillEvent
from .stats import aggregate, classify_level, refill_outlook
from .trend import fit_trend

logger = logging.getLogger(__name__)

READINGS = "readings"
REFILLS = "refills"
PUMPS = "pumps"


def period_window(config: PeriodConfig, now_ms: int) -> Tuple[Optional[int], Optional[int]]:
    if config.hours is None:
        return None, None
    return now_ms - config.hours * MS_PER_HOUR, now_ms


async def load_period(
    store: ReadingStore,
    cache: ReadingCache,
    period: str,
    config: PeriodConfig,
    now_ms: int,
) -> Tuple[List[Reading], List[RefillEvent], List[PumpActivation]]:
    start_ms, end_ms = period_window(config, now_ms)
    ttl = config.cache_ttl_seconds
    readings = await cache.get_or_load(period, READINGS, lambda: store.fetch_readings(start_ms, end_ms), ttl)
    refills = await cache.get_or_load(period, REFILLS, lambda: store.fetch_refill_records(start_ms), ttl)
    pumps = await cache.get_or_load(period, PUMPS, lambda: store.fetch_pump_records(start_ms), ttl)
    return readings, refills, pumps


async def build_dashboard(
    store: ReadingStore,
    cache: ReadingCache,
    settings: Settings,
    period: str,
    now_ms: int,
) -> Dict[str, Any]:
    config = settings.period(period)
    tz = settings.tz

    readings, refills, pumps = await load_period(store, cache, period, config, now_ms)
    points = downsample(readings, config.bucket_hours, tz=tz)
    events = detect_events(points, settings.min_increase, collapse_runs=settings.collapse_runs)
    trend = fit_trend(points)
    overlay = build_overlay(refills, pumps)
    logger.debug("%s: %d raw readings -> %d points, %d events", period, len(readings), len(points), len(events))

    stats_name = settings.stats_period
    if stats_name == period:
        stats_points, stats_events = points, events
    else:
        stats_config = settings.period(stats_name)
        stats_readings, _, _ = await load_period(store, cache, stats_name, stats_config, now_ms)
        stats_points = downsample(stats_readings, stats_config.bucket_hours, tz=tz)
        stats_events = detect_events(stats_points, settings.min_increase, collapse_runs=settings.collapse_runs)

    history_config = settings.period("all")
    history_readings, _, _ = await load_period(store, cache, "all", history_config, now_ms)
    history_events = detect_events(
        downsample(history_readings, history_config.bucket_hours, tz=tz),
        settings.min_increase,
        collapse_runs=settings.collapse_runs,
    )

    latest = await store.fetch_latest()
    summary = aggregate(
        stats_points,
        stats_events,
        _recorded_last(latest),
        expected_interval_hours=settings.expected_interval_hours,
    )

    return {
        "period": period,
        "bucket_hours": config.bucket_hours,
        "points": [asdict(p) for p in points],
        "events": [asdict(e) for e in events],
        "trend": [asdict(t) for t in trend],
        "refill_intervals": [asdict(i) for i in overlay.refill_intervals],
        "pump_intervals": [asdict(i) for i in overlay.pump_intervals],
        "markers": [asdict(m) for m in overlay.markers],
        "stats": asdict(summary),
        "outlook": refill_outlook(summary.next_expected_timestamp, now_ms),
        "recent_events": [asdict(e) for e in recent_events(history_events, settings.recent_events_limit)],
    }


def _recorded_last(latest: LatestState) -> Optional[RefillEvent]:
    if latest.last_refill_ms is None:
        return None
    level = latest.last_refill_level if latest.last_refill_level is not None else 0.0
    return RefillEvent(
        timestamp_ms=latest.last_refill_ms,
        previous_level=level,
        new_level=level,
        increase=0.0,
        source=RECORDED,
    )


async def build_latest(store: ReadingStore, settings: Settings) -> Dict[str, Any]:
    latest = await store.fetch_latest()
    level = latest.level_percent
    return {
        "level_percent": level,
        "level_class": classify_level(level, settings.low_level, settings.medium_level) if level is not None else None,
        "reading_ms": latest.reading_ms,
        "last_refill_ms": latest.last_refill_ms,
        "last_refill_level": latest.last_refill_level,
        "pump_is_on": latest.pump_is_on,
        "pump_changed_ms": latest.pump_changed_ms,
    }


async def pump_status(store: ReadingStore, now_ms: int) -> Dict[str, Any]:
    records = await store.fetch_pump_records()
    open_activation = last_open_activation(records)
    last_run = last_completed_run(records)
    return {
        "is_on": open_activation is not None,
        "on_since_ms": open_activation.timestamp_ms if open_activation else None,
        "running_for": format_duration(now_ms - open_activation.timestamp_ms) if open_activation else None,
        "last_run": asdict(last_run) if last_run else None,
        "last_run_duration": format_duration(last_run.duration_ms) if last_run else None,
    }
