"""Wire models shared by the tool endpoints."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from tankwatch.logic.records import DisplayPoint, PumpActivation, Reading, RefillEvent


class _Wire(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ReadingModel(_Wire):
    timestamp_ms: int
    level_percent: float

    def to_record(self) -> Reading:
        return Reading(timestamp_ms=self.timestamp_ms, level_percent=self.level_percent)


class PointModel(_Wire):
    timestamp_ms: int
    level_percent: float
    display_label: str = ""

    def to_record(self) -> DisplayPoint:
        return DisplayPoint(
            timestamp_ms=self.timestamp_ms,
            level_percent=self.level_percent,
            display_label=self.display_label,
        )


class RefillModel(_Wire):
    timestamp_ms: int
    previous_level: float
    new_level: float
    increase: float
    source: Literal["inferred", "recorded"] = "inferred"
    water_ended: Optional[bool] = None

    def to_record(self) -> RefillEvent:
        return RefillEvent(
            timestamp_ms=self.timestamp_ms,
            previous_level=self.previous_level,
            new_level=self.new_level,
            increase=self.increase,
            source=self.source,
            water_ended=self.water_ended,
        )


class PumpModel(_Wire):
    timestamp_ms: int
    action: Literal["activated", "deactivated"]
    duration_ms: Optional[int] = None

    def to_record(self) -> PumpActivation:
        return PumpActivation(timestamp_ms=self.timestamp_ms, action=self.action, duration_ms=self.duration_ms)


class IntervalModel(_Wire):
    start_ms: int
    end_ms: int


class MarkerModel(_Wire):
    timestamp_ms: int
    level: Optional[float] = None


class TrendPointModel(_Wire):
    x: int
    y: float


class StatsModel(_Wire):
    average_level: float
    total_events: int
    last_event_timestamp: Optional[int] = None
    next_expected_timestamp: Optional[int] = None


__all__ = [
    "IntervalModel",
    "MarkerModel",
    "PointModel",
    "PumpModel",
    "ReadingModel",
    "RefillModel",
    "StatsModel",
    "TrendPointModel",
]


def points_from(models: List[PointModel]) -> List[DisplayPoint]:
    return [m.to_record() for m in models]
