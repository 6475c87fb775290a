"""Trend line endpoint."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter
from pydantic import BaseModel, Field

from tankwatch.logic.trend import fit_trend

from .schemas import PointModel, TrendPointModel, points_from

router = APIRouter()


class TrendRequest(BaseModel):
    points: List[PointModel] = Field(default_factory=list)


class TrendResponse(BaseModel):
    line: List[TrendPointModel]


@router.post("/trend", response_model=TrendResponse)
def run_trend(payload: TrendRequest) -> TrendResponse:
    line = fit_trend(points_from(payload.points))
    return TrendResponse(line=[TrendPointModel.model_validate(p) for p in line])
