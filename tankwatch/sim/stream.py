"""Quick mock data generator for local testing."""

from __future__ import annotations

import logging
import random
import time
from typing import Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from tankwatch.core.db import SessionLocal, init_db, session_scope
from tankwatch.core.queries import record_readings, save_pump_activation, save_pump_deactivation, save_refill
from tankwatch.logic.records import MS_PER_HOUR, RECORDED, RefillEvent

logger = logging.getLogger(__name__)

SAMPLE_MINUTES = 10
DRAIN_PER_HOUR = 0.6
REFILL_EVERY_HOURS = 72
REFILL_STEPS = 3


def simulate_levels(
    days: int = 10,
    *,
    end_ms: Optional[int] = None,
    start_level: float = 70.0,
    seed: Optional[int] = None,
) -> Dict[str, List]:
    """Synthetic tank trace: steady drain, a refill every few days, nightly pump runs."""
    rng = random.Random(seed)
    end_ms = end_ms or int(time.time() * 1000)
    step_ms = SAMPLE_MINUTES * 60_000
    start_ms = end_ms - days * 24 * MS_PER_HOUR

    readings: List[Dict[str, float]] = []
    refills: List[RefillEvent] = []
    pump_runs: List[tuple] = []

    level = start_level
    next_refill = start_ms + rng.randint(12, REFILL_EVERY_HOURS) * MS_PER_HOUR
    refill_left = 0
    refill_began: Optional[float] = None
    ts = start_ms
    while ts <= end_ms:
        if refill_left == 0 and ts >= next_refill:
            refill_left = REFILL_STEPS
            refill_began = level
            refills.append(RefillEvent(ts, level, level, 0.0, source=RECORDED, water_ended=False))
        if refill_left:
            level = min(100.0, level + rng.uniform(8, 15))
            refill_left -= 1
            if refill_left == 0:
                refills.append(
                    RefillEvent(ts, refill_began, level, level - refill_began, source=RECORDED, water_ended=True)
                )
                next_refill = ts + REFILL_EVERY_HOURS * MS_PER_HOUR
        else:
            drift = -DRAIN_PER_HOUR * SAMPLE_MINUTES / 60 + rng.gauss(0.0, 0.15)
            level = min(100.0, max(0.0, level + drift))
        readings.append({"timestamp_ms": ts, "level_percent": round(level, 1)})
        ts += step_ms

    day = start_ms
    while day + 25 * MS_PER_HOUR < end_ms:
        begin = day + 20 * MS_PER_HOUR + rng.randint(0, 60) * 60_000
        pump_runs.append((begin, begin + rng.randint(15, 90) * 60_000))
        day += 24 * MS_PER_HOUR

    return {"readings": readings, "refills": refills, "pump_runs": pump_runs}


def seed_mock_data(days: int = 10, seed: Optional[int] = None, factory: sessionmaker = SessionLocal) -> Dict[str, int]:
    trace = simulate_levels(days, seed=seed)
    with session_scope(factory) as session:
        count = record_readings(session, trace["readings"])
        for event in trace["refills"]:
            save_refill(session, event)
        for begin, end in trace["pump_runs"]:
            save_pump_activation(session, begin)
            session.flush()
            save_pump_deactivation(session, end)
            session.flush()
    counts = {"readings": count, "refills": len(trace["refills"]), "pump_runs": len(trace["pump_runs"])}
    logger.info("Seeded %s", counts)
    return counts


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    init_db()
    seed_mock_data()
