# runmate/models/activity_log.py
from sqlalchemy import Column, DateTime, Index, Integer, String, UniqueConstraint

from runmate.db import Base, JSONType, utcnow


class ActivityLog(Base):
    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True, index=True)

    # who acted
    actor_id = Column(Integer, nullable=False)

    # who the action was about (applicant, ratee, ...), may be NULL
    target_user_id = Column(Integer, nullable=True)

    run_event_id = Column(Integer, nullable=True)
    chat_id = Column(Integer, nullable=True)

    type = Column(String(64), nullable=False)
    data = Column(JSONType, nullable=True, default=dict)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    # retries must not write the same entry twice
    idempotency_key = Column(String(128), nullable=True)

    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_activity_log_idempotency_key"),
        Index("ix_activity_log_actor", "actor_id"),
        Index("ix_activity_log_target", "target_user_id"),
        Index("ix_activity_log_run_event", "run_event_id"),
    )

    def __repr__(self) -> str:
        return f"<ActivityLog id={self.id} type={self.type} actor={self.actor_id}>"
