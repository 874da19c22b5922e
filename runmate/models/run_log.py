# runmate/models/run_log.py
# -----------------------------------------------------------------------------
# MODEL: RunLog (a run the user recorded: manual entry or imported)
# -----------------------------------------------------------------------------
# Served under /api/activities. Not to be confused with ActivityLog, the
# feed of domain events.

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from runmate.db import Base, utcnow


class RunType(enum.Enum):
    easy = "easy"
    tempo = "tempo"
    interval = "interval"
    long = "long"
    recovery = "recovery"
    race = "race"
    hill = "hill"
    track = "track"


class RunSource(enum.Enum):
    manual = "manual"
    strava = "strava"
    garmin = "garmin"
    polar = "polar"
    fitbit = "fitbit"
    app = "app"
    apple_health = "apple_health"


class RunLogStatus(enum.Enum):
    draft = "draft"
    completed = "completed"
    paused = "paused"


def _values(e):
    return [m.value for m in e]


class RunLog(Base):
    __tablename__ = "run_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    run_type = Column(Enum(RunType, name="run_type", values_callable=_values), nullable=False)

    distance = Column(Float, nullable=False, comment="km")
    duration = Column(Integer, nullable=False, comment="seconds")
    average_pace = Column(Float, nullable=True, comment="seconds per km")
    average_speed = Column(Float, nullable=True, comment="km/h")
    elevation_gain = Column(Float, nullable=False, default=0.0, comment="meters")
    calories = Column(Integer, nullable=False, default=0)
    average_heart_rate = Column(Integer, nullable=True)
    max_heart_rate = Column(Integer, nullable=True)

    location_name = Column(String(255), nullable=True)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)

    source = Column(
        Enum(RunSource, name="run_source", values_callable=_values),
        nullable=False,
        default=RunSource.manual,
    )
    status = Column(
        Enum(RunLogStatus, name="run_log_status", values_callable=_values),
        nullable=False,
        default=RunLogStatus.completed,
    )
    is_public = Column(Boolean, nullable=False, default=True)

    start_time = Column(DateTime, nullable=False)
    points_earned = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User")

    __table_args__ = (
        CheckConstraint("distance > 0", name="ck_run_logs_distance_positive"),
        CheckConstraint("duration > 0", name="ck_run_logs_duration_positive"),
        Index("ix_run_logs_user_start", "user_id", "start_time"),
    )

    def __repr__(self):
        return f"<RunLog(id={self.id}, user_id={self.user_id}, distance={self.distance}, duration={self.duration})>"
