# runmate/repositories/ratings.py
"""
Data access for ratings and the rating-stats cache on users.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from runmate.db import utcnow
from runmate.models.rating import Rating
from runmate.models.user import User
from runmate.utils.pagination import offset_for


class RatingRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields) -> Rating:
        rating = Rating(**fields)
        self.db.add(rating)
        self.db.flush()
        return rating

    def exists(self, rater_id: int, ratee_id: int, run_event_id: int) -> bool:
        stmt = select(Rating.id).where(
            Rating.rater_id == rater_id,
            Rating.ratee_id == ratee_id,
            Rating.run_event_id == run_event_id,
        )
        return self.db.scalar(stmt) is not None

    def rated_pairs(self, rater_id: int, run_event_ids: List[int]) -> set:
        """{(run_event_id, ratee_id)} already rated (or reported) by this rater."""
        if not run_event_ids:
            return set()
        rows = self.db.execute(
            select(Rating.run_event_id, Rating.ratee_id).where(
                Rating.rater_id == rater_id,
                Rating.run_event_id.in_(run_event_ids),
            )
        ).all()
        return {(eid, uid) for (eid, uid) in rows}

    def _approved_for(self, ratee_id: int):
        return select(Rating).where(Rating.ratee_id == ratee_id, Rating.is_approved.is_(True))

    def all_approved_for_ratee(self, ratee_id: int) -> List[Rating]:
        stmt = (
            self._approved_for(ratee_id)
            .options(selectinload(Rating.rater))
            .order_by(Rating.created_at.asc(), Rating.id.asc())
        )
        return list(self.db.scalars(stmt).all())

    def list_approved_for_ratee(self, ratee_id: int, page: int = 1, limit: int = 10) -> List[Rating]:
        stmt = (
            self._approved_for(ratee_id)
            .options(selectinload(Rating.rater), selectinload(Rating.run_event))
            .order_by(Rating.created_at.desc(), Rating.id.desc())
            .offset(offset_for(page, limit))
            .limit(limit)
        )
        return list(self.db.scalars(stmt).all())

    def count_approved_for_ratee(self, ratee_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(Rating)
            .where(Rating.ratee_id == ratee_id, Rating.is_approved.is_(True))
        )
        return int(self.db.scalar(stmt) or 0)

    def cache_stats_on_user(self, user_id: int, stats: Dict[str, Any]) -> Optional[User]:
        user = self.db.get(User, user_id)
        if user is None:
            return None
        user.rating_average = stats["average_rating"]
        user.rating_total = stats["total_ratings"]
        user.rating_level = stats["level"]
        user.rating_badge = stats["badge"]
        user.rating_updated_at = utcnow()
        self.db.flush()
        return user
