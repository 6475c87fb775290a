"""Detect refill events from display points."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter
from pydantic import BaseModel, Field

from tankwatch.logic import detect as detect_logic

from .schemas import PointModel, RefillModel, points_from

router = APIRouter()


class DetectRequest(BaseModel):
    points: List[PointModel] = Field(default_factory=list)
    min_increase: float = Field(detect_logic.MIN_INCREASE, description="Level jump in percentage points")
    collapse_runs: bool = Field(False, description="Merge consecutive rising steps into one event")


class DetectResponse(BaseModel):
    events: List[RefillModel]


@router.post("/detect", response_model=DetectResponse)
def run_detect(payload: DetectRequest) -> DetectResponse:
    events = detect_logic.detect_events(
        points_from(payload.points),
        payload.min_increase,
        collapse_runs=payload.collapse_runs,
    )
    return DetectResponse(events=[RefillModel.model_validate(e) for e in events])
