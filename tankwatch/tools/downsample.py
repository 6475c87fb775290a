"""Downsample endpoint."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter
from pydantic import BaseModel, Field

from tankwatch.logic.downsample import downsample

from .schemas import PointModel, ReadingModel

router = APIRouter()


class DownsampleRequest(BaseModel):
    readings: List[ReadingModel] = Field(default_factory=list)
    bucket_hours: float = Field(..., gt=0, description="Minimum gap between kept points")


class DownsampleResponse(BaseModel):
    points: List[PointModel]


@router.post("/downsample", response_model=DownsampleResponse)
def run_downsample(payload: DownsampleRequest) -> DownsampleResponse:
    points = downsample([r.to_record() for r in payload.readings], payload.bucket_hours)
    return DownsampleResponse(points=[PointModel.model_validate(p) for p in points])
