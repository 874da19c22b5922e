# runmate/models/rating.py

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from runmate.db import Base, utcnow

# Positive-only traits; a rating just flags which ones applied.
RATING_CATEGORIES = (
    "punctual",
    "fitting_pace",
    "good_communication",
    "motivating",
    "knowledgeable",
    "friendly",
    "well_prepared",
    "flexible",
)


class ReportReason(enum.Enum):
    late = "late"
    inappropriate_behavior = "inappropriate_behavior"
    safety_concern = "safety_concern"
    misrepresentation = "misrepresentation"
    other = "other"


class Rating(Base):
    """
    Peer feedback after a shared run: at most one row per (rater, ratee, event).
    Support reports reuse the table with is_approved = false, which keeps them
    out of every public listing and statistic.
    """
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, index=True)
    rater_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    ratee_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    run_event_id = Column(Integer, ForeignKey("run_events.id"), nullable=False, index=True)

    punctual = Column(Boolean, nullable=False, default=False)
    fitting_pace = Column(Boolean, nullable=False, default=False)
    good_communication = Column(Boolean, nullable=False, default=False)
    motivating = Column(Boolean, nullable=False, default=False)
    knowledgeable = Column(Boolean, nullable=False, default=False)
    friendly = Column(Boolean, nullable=False, default=False)
    well_prepared = Column(Boolean, nullable=False, default=False)
    flexible = Column(Boolean, nullable=False, default=False)

    comment = Column(String(500), nullable=True)
    overall_rating = Column(Integer, nullable=False)
    is_approved = Column(Boolean, nullable=False, default=True)

    # --- hidden support report ---
    has_report = Column(Boolean, nullable=False, default=False)
    report_reason = Column(Enum(ReportReason, name="report_reason"), nullable=True)
    report_details = Column(String(1000), nullable=True)
    report_handled = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("rater_id", "ratee_id", "run_event_id", name="uq_ratings_rater_ratee_event"),
        CheckConstraint("overall_rating BETWEEN 1 AND 5", name="ck_ratings_overall_1_5"),
        CheckConstraint("rater_id <> ratee_id", name="ck_ratings_not_self"),
        Index("ix_ratings_ratee_approved", "ratee_id", "is_approved"),
    )

    rater = relationship("User", foreign_keys=[rater_id])
    ratee = relationship("User", foreign_keys=[ratee_id])
    run_event = relationship("RunEvent")

    @property
    def categories(self) -> dict:
        return {name: bool(getattr(self, name)) for name in RATING_CATEGORIES}

    def __repr__(self) -> str:
        return f"<Rating id={self.id} {self.rater_id}->{self.ratee_id} event={self.run_event_id} {self.overall_rating}>"
