# runmate/models/user.py

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from runmate.db import Base, utcnow


class User(Base):
    """
    Runner account. Other aggregates only reference it by id; the writes
    from outside the auth/profile routes are the cached rating stats and
    the points earned by logged runs.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    bio = Column(Text, nullable=True)
    profile_photo = Column(String(512), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    last_active = Column(DateTime, nullable=True)

    # --- Cached rating stats (rewritten after every new rating) ---
    rating_average = Column(Float, nullable=False, default=0.0)
    rating_total = Column(Integer, nullable=False, default=0)
    rating_level = Column(String(32), nullable=False, default="Ny löpare")
    rating_badge = Column(String(32), nullable=True)
    rating_updated_at = Column(DateTime, nullable=True)

    # --- Training points (sum of points_earned over the user's run logs) ---
    points = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, name={self.first_name} {self.last_name})>"


class UserBlock(Base):
    """blocker_id no longer wants direct contact with blocked_id."""
    __tablename__ = "user_blocks"

    id = Column(Integer, primary_key=True)
    blocker_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    blocked_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("blocker_id", "blocked_id", name="uq_user_blocks_pair"),
        CheckConstraint("blocker_id <> blocked_id", name="ck_user_blocks_not_self"),
    )
