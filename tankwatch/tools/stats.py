"""Summary statistics endpoint."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from tankwatch.logic import stats as stats_logic
from tankwatch.logic.records import RECORDED, RefillEvent

from .schemas import PointModel, RefillModel, StatsModel, points_from

router = APIRouter()


class StatsRequest(BaseModel):
    points: List[PointModel] = Field(default_factory=list)
    events: List[RefillModel] = Field(default_factory=list)
    recorded_last_event_ms: Optional[int] = Field(None, description="Authoritative last refill, if known")
    expected_interval_hours: float = Field(stats_logic.EXPECTED_INTERVAL_HOURS, gt=0)


class StatsResponse(BaseModel):
    stats: StatsModel


@router.post("/stats", response_model=StatsResponse)
def run_stats(payload: StatsRequest) -> StatsResponse:
    recorded = None
    if payload.recorded_last_event_ms is not None:
        ts = payload.recorded_last_event_ms
        recorded = RefillEvent(timestamp_ms=ts, previous_level=0.0, new_level=0.0, increase=0.0, source=RECORDED)
    summary = stats_logic.aggregate(
        points_from(payload.points),
        [e.to_record() for e in payload.events],
        recorded,
        expected_interval_hours=payload.expected_interval_hours,
    )
    return StatsResponse(stats=StatsModel.model_validate(summary))
