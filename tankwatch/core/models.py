"""SQLAlchemy ORM models for the tank store."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


class TimestampMixin:
    """Shared timestamp columns for auditing."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class SensorReading(Base):
    __tablename__ = "sensor_readings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp_ms: Mapped[int] = mapped_column(BigInteger, unique=True, index=True, nullable=False)
    # YYYY-MM-DD bucket, mirrors the date keys of the Firebase tree
    day: Mapped[str] = mapped_column(String(10), index=True, nullable=False)
    level_percent: Mapped[float] = mapped_column(Float, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"SensorReading(ts={self.timestamp_ms!r}, level={self.level_percent!r})"


class RefillRecord(Base, TimestampMixin):
    __tablename__ = "refill_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp_ms: Mapped[int] = mapped_column(BigInteger, unique=True, index=True, nullable=False)
    day: Mapped[str] = mapped_column(String(10), index=True, nullable=False)
    previous_level: Mapped[Optional[float]] = mapped_column(Float)
    new_level: Mapped[Optional[float]] = mapped_column(Float)
    increase: Mapped[Optional[float]] = mapped_column(Float)
    # NULL on legacy point markers
    water_ended: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    source: Mapped[str] = mapped_column(String, default="manual")


class PumpRecord(Base, TimestampMixin):
    __tablename__ = "pump_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp_ms: Mapped[int] = mapped_column(BigInteger, unique=True, index=True, nullable=False)
    day: Mapped[str] = mapped_column(String(10), index=True, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    duration_ms: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    deactivated_at_ms: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    user_triggered: Mapped[bool] = mapped_column(Boolean, default=True)


class TankState(Base, TimestampMixin):
    """Single "latest" row the sensor and the dashboard keep current."""

    __tablename__ = "tank_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    level_percent: Mapped[Optional[float]] = mapped_column(Float)
    reading_ms: Mapped[Optional[int]] = mapped_column(BigInteger)
    last_refill_ms: Mapped[Optional[int]] = mapped_column(BigInteger)
    last_refill_level: Mapped[Optional[float]] = mapped_column(Float)
    pump_is_on: Mapped[bool] = mapped_column(Boolean, default=False)
    pump_changed_ms: Mapped[Optional[int]] = mapped_column(BigInteger)


__all__ = [
    "PumpRecord",
    "RefillRecord",
    "SensorReading",
    "TankState",
]
