"""Dashboard endpoints consumed by the chart and stats cards."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from tankwatch.core.store import DataUnavailableError, ReadingCache, ReadingStore
from tankwatch.dependencies import get_cache, get_now_ms, get_settings, get_store
from tankwatch.logic import services
from tankwatch.settings import Settings

router = APIRouter(prefix="/state", tags=["state"])


@router.get("/dashboard")
async def dashboard(
    period: str = Query("24h", description="One of the configured periods, e.g. 24h, 7d, 30d, all"),
    store: ReadingStore = Depends(get_store),
    cache: ReadingCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
    now_ms: int = Depends(get_now_ms),
) -> dict:
    if period not in settings.periods:
        raise HTTPException(status_code=404, detail=f"Unknown period {period}")
    try:
        return await services.build_dashboard(store, cache, settings, period, now_ms)
    except DataUnavailableError as exc:
        raise HTTPException(status_code=503, detail="data unavailable") from exc


@router.get("/latest")
async def latest(
    store: ReadingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> dict:
    try:
        return await services.build_latest(store, settings)
    except DataUnavailableError as exc:
        raise HTTPException(status_code=503, detail="data unavailable") from exc
