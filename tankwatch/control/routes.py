"""Write-side routes: pump switching and manual refill marks."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from tankwatch.core.store import DataUnavailableError, ReadingCache, ReadingStore, WriteResult
from tankwatch.dependencies import get_cache, get_now_ms, get_store
from tankwatch.logic import services
from tankwatch.logic.pump import format_duration, last_open_activation
from tankwatch.logic.records import RECORDED, RefillEvent


class WriteResponse(BaseModel):
    success: bool
    timestamp_ms: Optional[int] = None
    duration_ms: Optional[int] = None
    duration: Optional[str] = None


class MarkRefillRequest(BaseModel):
    timestamp_ms: Optional[int] = Field(default=None, gt=0, description="Defaults to now")
    previous_level: float = Field(..., ge=0, le=100)
    new_level: float = Field(..., ge=0, le=100)
    water_ended: Optional[bool] = Field(
        default=None, description="False marks water arriving, True marks it stopping; omit for a point marker"
    )


pump_router = APIRouter(prefix="/pump", tags=["pump"])
refill_router = APIRouter(prefix="/refills", tags=["refills"])


def _response(result: WriteResult) -> WriteResponse:
    return WriteResponse(
        success=result.success,
        timestamp_ms=result.timestamp_ms,
        duration_ms=result.duration_ms,
        duration=format_duration(result.duration_ms) if result.duration_ms else None,
    )


async def _pump_is_on(store: ReadingStore) -> bool:
    return last_open_activation(await store.fetch_pump_records()) is not None


@pump_router.get("/status")
async def pump_status(store: ReadingStore = Depends(get_store), now_ms: int = Depends(get_now_ms)) -> dict:
    try:
        return await services.pump_status(store, now_ms)
    except DataUnavailableError as exc:
        raise HTTPException(status_code=503, detail="data unavailable") from exc


@pump_router.post("/activate", response_model=WriteResponse)
async def activate_pump(
    store: ReadingStore = Depends(get_store),
    cache: ReadingCache = Depends(get_cache),
    now_ms: int = Depends(get_now_ms),
) -> WriteResponse:
    try:
        if await _pump_is_on(store):
            raise HTTPException(status_code=409, detail="Pump is already on")
        result = await store.activate_pump(now_ms)
    except DataUnavailableError as exc:
        raise HTTPException(status_code=503, detail="data unavailable") from exc
    cache.invalidate()
    return _response(result)


@pump_router.post("/deactivate", response_model=WriteResponse)
async def deactivate_pump(
    store: ReadingStore = Depends(get_store),
    cache: ReadingCache = Depends(get_cache),
    now_ms: int = Depends(get_now_ms),
) -> WriteResponse:
    try:
        if not await _pump_is_on(store):
            raise HTTPException(status_code=409, detail="Pump is already off")
        result = await store.deactivate_pump(now_ms)
    except DataUnavailableError as exc:
        raise HTTPException(status_code=503, detail="data unavailable") from exc
    cache.invalidate()
    return _response(result)


@pump_router.post("/toggle", response_model=WriteResponse)
async def toggle_pump(
    store: ReadingStore = Depends(get_store),
    cache: ReadingCache = Depends(get_cache),
    now_ms: int = Depends(get_now_ms),
) -> WriteResponse:
    try:
        if await _pump_is_on(store):
            result = await store.deactivate_pump(now_ms)
        else:
            result = await store.activate_pump(now_ms)
    except DataUnavailableError as exc:
        raise HTTPException(status_code=503, detail="data unavailable") from exc
    cache.invalidate()
    return _response(result)


@refill_router.post("", response_model=WriteResponse)
async def mark_refill(
    payload: MarkRefillRequest,
    store: ReadingStore = Depends(get_store),
    cache: ReadingCache = Depends(get_cache),
    now_ms: int = Depends(get_now_ms),
) -> WriteResponse:
    event = RefillEvent(
        timestamp_ms=payload.timestamp_ms or now_ms,
        previous_level=payload.previous_level,
        new_level=payload.new_level,
        increase=payload.new_level - payload.previous_level,
        source=RECORDED,
        water_ended=payload.water_ended,
    )
    try:
        result = await store.mark_refill(event)
    except DataUnavailableError as exc:
        raise HTTPException(status_code=503, detail="data unavailable") from exc
    cache.invalidate()
    return _response(result)


@refill_router.delete("/{timestamp_ms}", response_model=WriteResponse)
async def delete_refill(
    timestamp_ms: int,
    store: ReadingStore = Depends(get_store),
    cache: ReadingCache = Depends(get_cache),
) -> WriteResponse:
    try:
        result = await store.delete_refill(timestamp_ms)
    except DataUnavailableError as exc:
        raise HTTPException(status_code=503, detail="data unavailable") from exc
    if not result.success:
        raise HTTPException(status_code=404, detail="Unknown refill record")
    cache.invalidate()
    return _response(result)
