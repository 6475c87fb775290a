"""Reading store contract, its SQL implementation and the period cache."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tankwatch.logic.records import PumpActivation, Reading, RefillEvent

from . import queries
from .db import SessionLocal, session_scope

logger = logging.getLogger(__name__)


class DataUnavailableError(RuntimeError):
    """Raised when the backing store cannot be read or written."""


@dataclass(frozen=True)
class LatestState:
    level_percent: Optional[float] = None
    reading_ms: Optional[int] = None
    last_refill_ms: Optional[int] = None
    last_refill_level: Optional[float] = None
    pump_is_on: bool = False
    pump_changed_ms: Optional[int] = None


@dataclass(frozen=True)
class WriteResult:
    success: bool
    timestamp_ms: Optional[int] = None
    detail: Optional[str] = None
    duration_ms: Optional[int] = None


class ReadingStore(Protocol):
    async def fetch_readings(self, start_ms: Optional[int] = None, end_ms: Optional[int] = None) -> List[Reading]: ...

    async def fetch_refill_records(self, start_ms: Optional[int] = None) -> List[RefillEvent]: ...

    async def fetch_pump_records(self, start_ms: Optional[int] = None) -> List[PumpActivation]: ...

    async def fetch_latest(self) -> LatestState: ...

    async def mark_refill(self, event: RefillEvent) -> WriteResult: ...

    async def activate_pump(self, now_ms: int) -> WriteResult: ...

    async def deactivate_pump(self, now_ms: int) -> WriteResult: ...

    async def delete_refill(self, timestamp_ms: int) -> WriteResult: ...


class ReadingCache:
    """TTL cache keyed by ``(period, kind)``.

    Owned by whoever builds the store (the app keeps one on ``app.state``);
    writes through the store must call :meth:`invalidate`.
    """

    def __init__(self, default_ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str], Tuple[float, Any]] = {}

    def get(self, period: str, kind: str) -> Optional[Any]:
        entry = self._entries.get((period, kind))
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[(period, kind)]
            return None
        return value

    def put(self, period: str, kind: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[(period, kind)] = (self._clock() + ttl, value)

    async def get_or_load(
        self,
        period: str,
        kind: str,
        loader: Callable[[], Awaitable[Any]],
        ttl_seconds: Optional[float] = None,
    ) -> Any:
        cached = self.get(period, kind)
        if cached is not None:
            return cached
        value = await loader()
        self.put(period, kind, value, ttl_seconds)
        return value

    def invalidate(self, period: Optional[str] = None, kind: Optional[str] = None) -> int:
        """Drop matching entries (all of them when called bare); returns the count."""
        doomed = [
            key
            for key in self._entries
            if (period is None or key[0] == period) and (kind is None or key[1] == kind)
        ]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)


class SqlReadingStore:
    """ReadingStore over the SQLAlchemy models; blocking work runs in a thread."""

    def __init__(self, session_factory: sessionmaker = SessionLocal, tz: Optional[tzinfo] = None) -> None:
        self.session_factory = session_factory
        self.tz = tz

    async def _run(self, action: str, work: Callable[[Session], Any]) -> Any:
        def _call() -> Any:
            with session_scope(self.session_factory) as session:
                return work(session)

        try:
            return await asyncio.to_thread(_call)
        except SQLAlchemyError as exc:
            logger.error("SQL store failed to %s: %s", action, exc)
            raise DataUnavailableError(f"Unable to {action}") from exc

    async def fetch_readings(self, start_ms: Optional[int] = None, end_ms: Optional[int] = None) -> List[Reading]:
        return await self._run("fetch readings", lambda s: queries.readings_between(s, start_ms, end_ms))

    async def fetch_refill_records(self, start_ms: Optional[int] = None) -> List[RefillEvent]:
        return await self._run("fetch refill records", lambda s: queries.refill_records_since(s, start_ms))

    async def fetch_pump_records(self, start_ms: Optional[int] = None) -> List[PumpActivation]:
        return await self._run("fetch pump records", lambda s: queries.pump_records_since(s, start_ms))

    async def fetch_latest(self) -> LatestState:
        def work(session: Session) -> LatestState:
            state = queries.get_state(session)
            return LatestState(
                level_percent=state.level_percent,
                reading_ms=state.reading_ms,
                last_refill_ms=state.last_refill_ms,
                last_refill_level=state.last_refill_level,
                pump_is_on=bool(state.pump_is_on),
                pump_changed_ms=state.pump_changed_ms,
            )

        return await self._run("fetch latest state", work)

    async def mark_refill(self, event: RefillEvent) -> WriteResult:
        await self._run("save refill", lambda s: queries.save_refill(s, event, self.tz))
        logger.info("Refill marked at %s", event.timestamp_ms)
        return WriteResult(success=True, timestamp_ms=event.timestamp_ms)

    async def activate_pump(self, now_ms: int) -> WriteResult:
        await self._run("activate pump", lambda s: queries.save_pump_activation(s, now_ms, self.tz))
        logger.info("Pump activated at %s", now_ms)
        return WriteResult(success=True, timestamp_ms=now_ms)

    async def deactivate_pump(self, now_ms: int) -> WriteResult:
        duration = await self._run(
            "deactivate pump",
            lambda s: queries.save_pump_deactivation(s, now_ms, self.tz).duration_ms,
        )
        logger.info("Pump deactivated at %s (duration %s ms)", now_ms, duration)
        return WriteResult(success=True, timestamp_ms=now_ms, duration_ms=duration)

    async def delete_refill(self, timestamp_ms: int) -> WriteResult:
        deleted = await self._run("delete refill", lambda s: queries.delete_refill(s, timestamp_ms))
        if not deleted:
            return WriteResult(success=False, timestamp_ms=timestamp_ms, detail="not found")
        logger.info("Refill %s deleted", timestamp_ms)
        return WriteResult(success=True, timestamp_ms=timestamp_ms)
