"""High level query helpers."""

from __future__ import annotations

import math
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.orm import Session

from tankwatch.logic.pump import pair_pump_duration
from tankwatch.logic.records import (
    ACTIVATED,
    DEACTIVATED,
    RECORDED,
    PumpActivation,
    Reading,
    RefillEvent,
    valid_level,
    valid_timestamp,
)

from .models import PumpRecord, RefillRecord, SensorReading, TankState

STATE_ID = 1


def day_key(timestamp_ms: int, tz: Optional[tzinfo] = None) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=tz or timezone.utc)
    return moment.strftime("%Y-%m-%d")


def record_readings(session: Session, rows: Iterable[Dict[str, Any]], tz: Optional[tzinfo] = None) -> int:
    """Insert raw sensor rows, skipping malformed ones and known timestamps."""
    count = 0
    seen: set[int] = set()
    latest: Optional[SensorReading] = None
    for row in rows:
        ts = _safe_int(row.get("timestamp_ms") or row.get("timestamp"))
        level = _safe_float(row.get("level_percent") if "level_percent" in row else row.get("p"))
        if ts is None or level is None or not valid_timestamp(ts) or not valid_level(level):
            continue
        exists = session.execute(
            select(SensorReading.id).where(SensorReading.timestamp_ms == ts)
        ).first()
        if exists or ts in seen:
            continue
        seen.add(ts)
        reading = SensorReading(timestamp_ms=ts, day=day_key(ts, tz), level_percent=level)
        session.add(reading)
        if latest is None or ts > latest.timestamp_ms:
            latest = reading
        count += 1

    if latest is not None:
        state = get_state(session)
        if state.reading_ms is None or latest.timestamp_ms >= state.reading_ms:
            state.level_percent = latest.level_percent
            state.reading_ms = latest.timestamp_ms
    return count


def readings_between(
    session: Session, start_ms: Optional[int] = None, end_ms: Optional[int] = None
) -> List[Reading]:
    stmt = select(SensorReading).order_by(SensorReading.timestamp_ms)
    if start_ms is not None:
        stmt = stmt.where(SensorReading.timestamp_ms >= start_ms)
    if end_ms is not None:
        stmt = stmt.where(SensorReading.timestamp_ms <= end_ms)
    return [
        Reading(timestamp_ms=row.timestamp_ms, level_percent=row.level_percent)
        for row in session.execute(stmt).scalars()
    ]


def refill_records_since(session: Session, start_ms: Optional[int] = None) -> List[RefillEvent]:
    stmt = select(RefillRecord).order_by(RefillRecord.timestamp_ms)
    if start_ms is not None:
        stmt = stmt.where(RefillRecord.timestamp_ms >= start_ms)
    return [_refill_event(row) for row in session.execute(stmt).scalars()]


def pump_records_since(session: Session, start_ms: Optional[int] = None) -> List[PumpActivation]:
    stmt = select(PumpRecord).order_by(PumpRecord.timestamp_ms)
    if start_ms is not None:
        stmt = stmt.where(PumpRecord.timestamp_ms >= start_ms)
    return [
        PumpActivation(timestamp_ms=row.timestamp_ms, action=row.action, duration_ms=row.duration_ms)
        for row in session.execute(stmt).scalars()
    ]


def get_state(session: Session) -> TankState:
    state = session.get(TankState, STATE_ID)
    if state is None:
        state = TankState(id=STATE_ID, pump_is_on=False)
        session.add(state)
        session.flush()
    return state


def save_refill(session: Session, event: RefillEvent, tz: Optional[tzinfo] = None) -> RefillRecord:
    record = session.execute(
        select(RefillRecord).where(RefillRecord.timestamp_ms == event.timestamp_ms)
    ).scalar_one_or_none()
    if record is None:
        record = RefillRecord(timestamp_ms=event.timestamp_ms, day=day_key(event.timestamp_ms, tz))
        session.add(record)

    record.previous_level = event.previous_level
    record.new_level = event.new_level
    record.increase = event.increase
    record.water_ended = event.water_ended
    record.source = "manual" if event.source == RECORDED else event.source

    state = get_state(session)
    if state.last_refill_ms is None or event.timestamp_ms > state.last_refill_ms:
        state.last_refill_ms = event.timestamp_ms
        state.last_refill_level = event.new_level
    return record


def delete_refill(session: Session, timestamp_ms: int) -> bool:
    result = session.execute(delete(RefillRecord).where(RefillRecord.timestamp_ms == timestamp_ms))
    if not result.rowcount:
        return False
    session.flush()
    _refresh_last_refill(session)
    return True


def _refresh_last_refill(session: Session) -> None:
    newest = session.execute(
        select(RefillRecord).order_by(desc(RefillRecord.timestamp_ms)).limit(1)
    ).scalar_one_or_none()
    state = get_state(session)
    state.last_refill_ms = newest.timestamp_ms if newest else None
    state.last_refill_level = newest.new_level if newest else None


def open_pump_activation(session: Session) -> Optional[PumpRecord]:
    return session.execute(
        select(PumpRecord)
        .where(PumpRecord.action == ACTIVATED, PumpRecord.status == "on")
        .order_by(desc(PumpRecord.timestamp_ms))
        .limit(1)
    ).scalar_one_or_none()


def save_pump_activation(session: Session, now_ms: int, tz: Optional[tzinfo] = None) -> PumpRecord:
    record = PumpRecord(
        timestamp_ms=now_ms,
        day=day_key(now_ms, tz),
        action=ACTIVATED,
        status="on",
        user_triggered=True,
    )
    session.add(record)
    _set_pump_state(session, True, now_ms)
    return record


def save_pump_deactivation(session: Session, now_ms: int, tz: Optional[tzinfo] = None) -> PumpRecord:
    """Close the open activation (if any) and store the deactivation with its duration."""
    duration: Optional[int] = None
    activation = open_pump_activation(session)
    if activation is not None:
        candidate = pair_pump_duration(_pump_value(activation), PumpActivation(now_ms, DEACTIVATED))
        if candidate > 0:
            duration = candidate
            activation.duration_ms = duration
            activation.deactivated_at_ms = now_ms
        activation.status = "off"

    record = PumpRecord(
        timestamp_ms=now_ms,
        day=day_key(now_ms, tz),
        action=DEACTIVATED,
        status="off",
        duration_ms=duration,
        user_triggered=True,
    )
    session.add(record)
    _set_pump_state(session, False, now_ms)
    return record


def _set_pump_state(session: Session, is_on: bool, changed_ms: int) -> None:
    state = get_state(session)
    state.pump_is_on = is_on
    state.pump_changed_ms = changed_ms


def _pump_value(row: PumpRecord) -> PumpActivation:
    return PumpActivation(timestamp_ms=row.timestamp_ms, action=row.action, duration_ms=row.duration_ms)


def _refill_event(row: RefillRecord) -> RefillEvent:
    previous = row.previous_level if row.previous_level is not None else 0.0
    new = row.new_level if row.new_level is not None else previous
    increase = row.increase if row.increase is not None else new - previous
    return RefillEvent(
        timestamp_ms=row.timestamp_ms,
        previous_level=previous,
        new_level=new,
        increase=increase,
        source=RECORDED,
        water_ended=row.water_ended,
    )


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def _safe_int(value: Any) -> Optional[int]:
    number = _safe_float(value)
    if number is None or not math.isfinite(number):
        return None
    return int(number)
