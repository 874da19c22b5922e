# runmate/models/run_event.py
# -----------------------------------------------------------------------------
# MODELS: RunEvent + participants + pending join requests
# -----------------------------------------------------------------------------

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from runmate.db import Base, utcnow


class RunEventStatus(enum.Enum):
    open = "open"
    full = "full"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"


LOCKED_STATUSES = (RunEventStatus.cancelled, RunEventStatus.completed)


class RunEvent(Base):
    __tablename__ = "run_events"

    id = Column(Integer, primary_key=True, index=True)
    host_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)

    location_name = Column(String(255), nullable=False)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)

    distance = Column(Float, nullable=False, comment="km")
    pace = Column(Integer, nullable=False, comment="seconds per km")
    date = Column(DateTime, nullable=False, index=True)
    max_participants = Column(Integer, nullable=False, default=4)

    status = Column(
        Enum(
            RunEventStatus,
            name="run_event_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=RunEventStatus.open,
    )

    chat_id = Column(Integer, ForeignKey("chats.id"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    host = relationship("User")
    participants = relationship(
        "RunEventParticipant",
        back_populates="run_event",
        order_by="RunEventParticipant.id",
        cascade="all, delete-orphan",
    )
    pending_requests = relationship(
        "RunEventRequest",
        back_populates="run_event",
        order_by="RunEventRequest.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("distance > 0", name="ck_run_events_distance_positive"),
        CheckConstraint("pace > 0", name="ck_run_events_pace_positive"),
        CheckConstraint("max_participants >= 2", name="ck_run_events_max_participants"),
        Index("ix_run_events_status_date", "status", "date"),
    )

    @property
    def participant_ids(self):
        return [p.user_id for p in self.participants]

    @property
    def pending_ids(self):
        return [r.user_id for r in self.pending_requests]

    def __repr__(self) -> str:
        return f"<RunEvent id={self.id} host={self.host_id} status={self.status}>"


class RunEventParticipant(Base):
    __tablename__ = "run_event_participants"

    id = Column(Integer, primary_key=True, index=True)
    run_event_id = Column(Integer, ForeignKey("run_events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    joined_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("run_event_id", "user_id", name="uq_run_event_participants_event_user"),
    )

    run_event = relationship("RunEvent", back_populates="participants")
    user = relationship("User")


class RunEventRequest(Base):
    __tablename__ = "run_event_requests"

    id = Column(Integer, primary_key=True, index=True)
    run_event_id = Column(Integer, ForeignKey("run_events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    requested_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("run_event_id", "user_id", name="uq_run_event_requests_event_user"),
    )

    run_event = relationship("RunEvent", back_populates="pending_requests")
    user = relationship("User")
