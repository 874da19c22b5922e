# runmate/schemas/rating.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field
from pydantic.alias_generators import to_camel

from runmate.models.rating import Rating, ReportReason
from runmate.schemas.common import CamelModel
from runmate.schemas.run_event import RunEventBrief
from runmate.schemas.user import UserBrief


class RatingCategories(CamelModel):
    punctual: bool = False
    fitting_pace: bool = False
    good_communication: bool = False
    motivating: bool = False
    knowledgeable: bool = False
    friendly: bool = False
    well_prepared: bool = False
    flexible: bool = False


class RatingCreate(CamelModel):
    ratee_id: int
    event_id: int
    categories: RatingCategories = Field(default_factory=RatingCategories)
    comment: Optional[str] = Field(default=None, max_length=500)
    overall_rating: int = Field(ge=1, le=5)


class ReportCreate(CamelModel):
    reported_user_id: int
    event_id: int
    reason: ReportReason
    details: Optional[str] = Field(default=None, max_length=1000)


class RatingOut(CamelModel):
    id: int
    rater: UserBrief
    ratee_id: int
    event: Optional[RunEventBrief] = None
    categories: RatingCategories
    comment: Optional[str] = None
    overall_rating: int
    created_at: datetime

    @classmethod
    def from_rating(cls, rating: Rating, *, with_event: bool = True) -> "RatingOut":
        return cls(
            id=rating.id,
            rater=UserBrief.model_validate(rating.rater),
            ratee_id=rating.ratee_id,
            event=RunEventBrief.model_validate(rating.run_event) if with_event and rating.run_event else None,
            categories=RatingCategories(**rating.categories),
            comment=rating.comment,
            overall_rating=rating.overall_rating,
            created_at=rating.created_at,
        )


class RatingStatsOut(CamelModel):
    average_rating: float
    total_ratings: int
    category_stats: Dict[str, int]
    level: str
    badge: Optional[str] = None
    recent_ratings: List[RatingOut]

    @classmethod
    def from_stats(cls, stats: Dict[str, Any]) -> "RatingStatsOut":
        # category keys are data, not fields, so they are camelCased by hand
        return cls(
            average_rating=stats["average_rating"],
            total_ratings=stats["total_ratings"],
            category_stats={to_camel(k): v for k, v in stats["category_stats"].items()},
            level=stats["level"],
            badge=stats["badge"],
            recent_ratings=[RatingOut.from_rating(r, with_event=False) for r in stats["recent_ratings"]],
        )


class PendingRatingOut(CamelModel):
    event: RunEventBrief
    participant: UserBrief
