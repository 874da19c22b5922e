# runmate/repositories/users.py
"""
Blocks between users. Flushes, never commits.
"""

from __future__ import annotations

from typing import List

from sqlalchemy import or_, select

from runmate.models.user import User, UserBlock


class UserBlockRepository:
    def __init__(self, db):
        self.db = db

    def _get(self, blocker_id: int, blocked_id: int):
        return self.db.scalar(
            select(UserBlock).where(UserBlock.blocker_id == blocker_id, UserBlock.blocked_id == blocked_id)
        )

    def block(self, blocker_id: int, blocked_id: int) -> bool:
        """Idempotent; True when a new block was stored."""
        if self._get(blocker_id, blocked_id) is not None:
            return False
        self.db.add(UserBlock(blocker_id=blocker_id, blocked_id=blocked_id))
        self.db.flush()
        return True

    def unblock(self, blocker_id: int, blocked_id: int) -> bool:
        row = self._get(blocker_id, blocked_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.flush()
        return True

    def blocked_users(self, blocker_id: int) -> List[User]:
        stmt = (
            select(User)
            .join(UserBlock, UserBlock.blocked_id == User.id)
            .where(UserBlock.blocker_id == blocker_id)
            .order_by(UserBlock.created_at.desc(), UserBlock.id.desc())
        )
        return list(self.db.scalars(stmt).all())

    def either_blocked(self, user_a: int, user_b: int) -> bool:
        stmt = select(UserBlock.id).where(
            or_(
                (UserBlock.blocker_id == user_a) & (UserBlock.blocked_id == user_b),
                (UserBlock.blocker_id == user_b) & (UserBlock.blocked_id == user_a),
            )
        )
        return self.db.scalar(stmt.limit(1)) is not None
