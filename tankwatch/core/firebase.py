"""Firebase Realtime Database store (REST).

The database keeps one subtree per record kind, bucketed by local date::

    sensor_readings/<YYYY-MM-DD>/<ts>   {"p": 57.3}
    compesa_arrivals/<YYYY-MM-DD>/<ts>  {"previous_level", "new_level", "increase", "water_ended"?}
    pump_activations/<YYYY-MM-DD>/<ts>  {"action", "status", "duration", ...}
    latest                              {"percentage", "last_compesa_timestamp", "pump_is_on", ...}

The ``parse_*`` helpers turn those trees into engine records; they are shared
with the snapshot importer in :mod:`tankwatch.core.seed`.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, Iterator, List, Optional, Tuple

import httpx

from tankwatch.logic.pump import format_duration, last_open_activation, pair_pump_duration
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

from .queries import day_key
from .store import DataUnavailableError, LatestState, WriteResult

logger = logging.getLogger(__name__)

READINGS_PATH = "sensor_readings"
REFILLS_PATH = "compesa_arrivals"
PUMP_PATH = "pump_activations"
LATEST_PATH = "latest"


def _leaves(tree: Any) -> Iterator[Tuple[str, int, Dict[str, Any]]]:
    """Yield ``(date_key, timestamp_ms, payload)`` for every well-keyed leaf."""
    if not isinstance(tree, dict):
        return
    for date_key, bucket in tree.items():
        if not isinstance(bucket, dict):
            continue
        for raw_ts, payload in bucket.items():
            try:
                ts = int(raw_ts)
            except (TypeError, ValueError):
                logger.warning("Ignoring record with invalid timestamp key %r", raw_ts)
                continue
            if not valid_timestamp(ts) or not isinstance(payload, dict):
                continue
            yield date_key, ts, payload


def _in_range(ts: int, start_ms: Optional[int], end_ms: Optional[int]) -> bool:
    if start_ms is not None and ts < start_ms:
        return False
    if end_ms is not None and ts > end_ms:
        return False
    return True


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if valid_level(number) else None


def parse_readings(tree: Any, start_ms: Optional[int] = None, end_ms: Optional[int] = None) -> List[Reading]:
    """Ascending readings, one per timestamp (the first seen wins)."""
    by_ts: Dict[int, Reading] = {}
    for _, ts, payload in _leaves(tree):
        if not _in_range(ts, start_ms, end_ms) or ts in by_ts:
            continue
        level = _number(payload.get("p"))
        if level is None:
            continue
        by_ts[ts] = Reading(timestamp_ms=ts, level_percent=level)
    return [by_ts[ts] for ts in sorted(by_ts)]


def parse_refills(tree: Any, start_ms: Optional[int] = None) -> List[RefillEvent]:
    events: List[RefillEvent] = []
    for _, ts, payload in _leaves(tree):
        if not _in_range(ts, start_ms, None):
            continue
        previous = _number(payload.get("previous_level")) or 0.0
        new = _number(payload.get("new_level"))
        new = previous if new is None else new
        increase = _number(payload.get("increase"))
        ended = payload.get("water_ended")
        events.append(
            RefillEvent(
                timestamp_ms=ts,
                previous_level=previous,
                new_level=new,
                increase=new - previous if increase is None else increase,
                source=RECORDED,
                water_ended=ended if isinstance(ended, bool) else None,
            )
        )
    events.sort(key=lambda e: e.timestamp_ms)
    return events


def parse_pump_records(tree: Any, start_ms: Optional[int] = None) -> List[PumpActivation]:
    records: List[PumpActivation] = []
    for _, ts, payload in _leaves(tree):
        action = payload.get("action")
        if action not in (ACTIVATED, DEACTIVATED) or not _in_range(ts, start_ms, None):
            continue
        duration = payload.get("duration") if action == DEACTIVATED else None
        records.append(
            PumpActivation(
                timestamp_ms=ts,
                action=action,
                duration_ms=int(duration) if isinstance(duration, (int, float)) and duration > 0 else None,
            )
        )
    records.sort(key=lambda r: r.timestamp_ms)
    return records


def parse_latest(payload: Any) -> LatestState:
    if not isinstance(payload, dict):
        return LatestState()

    def _ts(value: Any) -> Optional[int]:
        try:
            ts = int(value)
        except (TypeError, ValueError):
            return None
        return ts if valid_timestamp(ts) else None

    return LatestState(
        level_percent=_number(payload.get("percentage")),
        reading_ms=_ts(payload.get("timestamp")),
        last_refill_ms=_ts(payload.get("last_compesa_timestamp")),
        last_refill_level=_number(payload.get("last_compesa_level")),
        pump_is_on=bool(payload.get("pump_is_on")),
        pump_changed_ms=_ts(payload.get("pump_last_activation")),
    )


def find_date_key(tree: Any, timestamp_ms: int) -> Optional[str]:
    for date_key, ts, _ in _leaves(tree):
        if ts == timestamp_ms:
            return date_key
    return None


def _format_datetime(timestamp_ms: int, tz: Optional[tzinfo]) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=tz or timezone.utc)
    return moment.strftime("%d/%m/%Y %H:%M")


class FirebaseReadingStore:
    """ReadingStore backed by the Realtime Database REST API."""

    def __init__(
        self,
        base_url: str,
        *,
        auth: Optional[str] = None,
        tz: Optional[tzinfo] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.tz = tz
        self.timeout = timeout
        self._client = client

    # ----------------------------
    # Transport
    # ----------------------------
    async def _request(self, method: str, path: str, *, params: Optional[Dict[str, str]] = None, body: Any = None) -> Any:
        url = f"{self.base_url}/{path}.json"
        query = dict(params or {})
        if self.auth:
            query["auth"] = self.auth
        try:
            if self._client is not None:
                response = await self._client.request(method, url, params=query, json=body)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, params=query, json=body)
            response.raise_for_status()
            return response.json() if response.content else None
        except httpx.HTTPError as exc:
            logger.error("Firebase %s %s failed: %s", method, path, exc)
            raise DataUnavailableError(f"Firebase {method} {path} failed") from exc
        except json.JSONDecodeError as exc:
            logger.error("Invalid JSON from %s: %s", path, exc)
            raise DataUnavailableError(f"Invalid JSON from {path}") from exc

    async def _tree(self, path: str, start_ms: Optional[int] = None) -> Any:
        params: Dict[str, str] = {}
        if start_ms is not None and valid_timestamp(start_ms):
            # date keys are local dates; one day of slack covers any offset
            first_day = day_key(start_ms, self.tz)
            slack = (datetime.strptime(first_day, "%Y-%m-%d") - timedelta(days=1)).strftime("%Y-%m-%d")
            params = {"orderBy": '"$key"', "startAt": json.dumps(slack)}
        return await self._request("GET", path, params=params)

    # ----------------------------
    # Reads
    # ----------------------------
    async def fetch_readings(self, start_ms: Optional[int] = None, end_ms: Optional[int] = None) -> List[Reading]:
        return parse_readings(await self._tree(READINGS_PATH, start_ms), start_ms, end_ms)

    async def fetch_refill_records(self, start_ms: Optional[int] = None) -> List[RefillEvent]:
        return parse_refills(await self._tree(REFILLS_PATH, start_ms), start_ms)

    async def fetch_pump_records(self, start_ms: Optional[int] = None) -> List[PumpActivation]:
        return parse_pump_records(await self._tree(PUMP_PATH, start_ms), start_ms)

    async def fetch_latest(self) -> LatestState:
        return parse_latest(await self._request("GET", LATEST_PATH))

    # ----------------------------
    # Writes
    # ----------------------------
    async def mark_refill(self, event: RefillEvent) -> WriteResult:
        ts = event.timestamp_ms
        payload: Dict[str, Any] = {
            "timestamp": ts,
            "previous_level": event.previous_level,
            "new_level": event.new_level,
            "increase": event.increase,
            "datetime": _format_datetime(ts, self.tz),
            "type": "manual",
        }
        if event.water_ended is not None:
            payload["water_ended"] = event.water_ended
        await self._request("PUT", f"{REFILLS_PATH}/{day_key(ts, self.tz)}/{ts}", body=payload)

        latest = await self.fetch_latest()
        if latest.last_refill_ms is None or ts > latest.last_refill_ms:
            await self._request(
                "PATCH",
                LATEST_PATH,
                body={
                    "last_compesa_level": event.new_level,
                    "last_compesa_timestamp": ts,
                    "last_compesa_datetime": payload["datetime"],
                },
            )
        logger.info("Refill marked at %s", ts)
        return WriteResult(success=True, timestamp_ms=ts)

    async def delete_refill(self, timestamp_ms: int) -> WriteResult:
        tree = await self._request("GET", REFILLS_PATH)
        date_key = find_date_key(tree, timestamp_ms)
        if date_key is None:
            return WriteResult(success=False, timestamp_ms=timestamp_ms, detail="not found")
        await self._request("DELETE", f"{REFILLS_PATH}/{date_key}/{timestamp_ms}")

        remaining = [e for e in parse_refills(tree) if e.timestamp_ms != timestamp_ms]
        newest = remaining[-1] if remaining else None
        await self._request(
            "PATCH",
            LATEST_PATH,
            body={
                "last_compesa_level": newest.new_level if newest else None,
                "last_compesa_timestamp": newest.timestamp_ms if newest else None,
                "last_compesa_datetime": _format_datetime(newest.timestamp_ms, self.tz) if newest else None,
            },
        )
        logger.info("Refill %s deleted", timestamp_ms)
        return WriteResult(success=True, timestamp_ms=timestamp_ms)

    async def activate_pump(self, now_ms: int) -> WriteResult:
        payload = {
            "timestamp": now_ms,
            "date": _format_datetime(now_ms, self.tz),
            "type": "manual_pump",
            "action": ACTIVATED,
            "user_triggered": True,
            "status": "on",
        }
        await self._request("PUT", f"{PUMP_PATH}/{day_key(now_ms, self.tz)}/{now_ms}", body=payload)
        await self._set_pump_state(True, now_ms)
        logger.info("Pump activated at %s", now_ms)
        return WriteResult(success=True, timestamp_ms=now_ms)

    async def deactivate_pump(self, now_ms: int) -> WriteResult:
        duration: Optional[int] = None
        activation = last_open_activation(await self.fetch_pump_records())
        if activation is not None:
            candidate = pair_pump_duration(activation, PumpActivation(now_ms, DEACTIVATED))
            update: Dict[str, Any] = {"status": "off"}
            if candidate > 0:
                duration = candidate
                update.update(
                    {
                        "deactivated_at": now_ms,
                        "deactivated_date": _format_datetime(now_ms, self.tz),
                        "duration": duration,
                        "duration_string": format_duration(duration),
                    }
                )
            path = f"{PUMP_PATH}/{day_key(activation.timestamp_ms, self.tz)}/{activation.timestamp_ms}"
            await self._request("PATCH", path, body=update)

        payload = {
            "timestamp": now_ms,
            "date": _format_datetime(now_ms, self.tz),
            "type": "manual_pump",
            "action": DEACTIVATED,
            "user_triggered": True,
            "status": "off",
            "duration": duration,
            "duration_string": format_duration(duration) if duration else None,
        }
        await self._request("PUT", f"{PUMP_PATH}/{day_key(now_ms, self.tz)}/{now_ms}", body=payload)
        await self._set_pump_state(False, now_ms)
        logger.info("Pump deactivated at %s (duration %s ms)", now_ms, duration)
        return WriteResult(success=True, timestamp_ms=now_ms, duration_ms=duration)

    async def _set_pump_state(self, is_on: bool, timestamp_ms: int) -> None:
        await self._request(
            "PATCH",
            LATEST_PATH,
            body={
                "pump_is_on": is_on,
                "pump_last_activation": timestamp_ms,
                "pump_last_update": _format_datetime(timestamp_ms, self.tz),
            },
        )
