"""Interval overlay endpoint for refill and pump shading."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter
from pydantic import BaseModel, Field

from tankwatch.logic.overlay import build_overlay

from .schemas import IntervalModel, MarkerModel, PumpModel, RefillModel

router = APIRouter()


class OverlayRequest(BaseModel):
    refill_records: List[RefillModel] = Field(default_factory=list)
    pump_records: List[PumpModel] = Field(default_factory=list)


class OverlayResponse(BaseModel):
    refill_intervals: List[IntervalModel]
    pump_intervals: List[IntervalModel]
    markers: List[MarkerModel]


@router.post("/overlay", response_model=OverlayResponse)
def run_overlay(payload: OverlayRequest) -> OverlayResponse:
    overlay = build_overlay(
        [r.to_record() for r in payload.refill_records],
        [p.to_record() for p in payload.pump_records],
    )
    return OverlayResponse(
        refill_intervals=[IntervalModel.model_validate(i) for i in overlay.refill_intervals],
        pump_intervals=[IntervalModel.model_validate(i) for i in overlay.pump_intervals],
        markers=[MarkerModel.model_validate(m) for m in overlay.markers],
    )
