# runmate/services/activity_log.py
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from runmate.db import utcnow
from runmate.models.activity_log import ActivityLog

# Activity types (use these constants in services/routers)
RUN_EVENT_CREATED = "run_event_created"
RUN_EVENT_UPDATED = "run_event_updated"
RUN_EVENT_CANCELLED = "run_event_cancelled"
RUN_EVENT_COMPLETED = "run_event_completed"

JOIN_REQUESTED = "join_requested"
JOIN_APPROVED = "join_approved"
JOIN_REJECTED = "join_rejected"
PARTICIPANT_LEFT = "participant_left"

CHAT_CREATED = "chat_created"
CHAT_MEMBER_ADDED = "chat_member_added"
CHAT_MEMBER_REMOVED = "chat_member_removed"

RATING_CREATED = "rating_created"
REPORT_SUBMITTED = "report_submitted"

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def log_activity(
    db: Session,
    *,
    type: str,
    actor_id: int,
    target_user_id: Optional[int] = None,
    run_event_id: Optional[int] = None,
    chat_id: Optional[int] = None,
    data: Optional[Dict[str, Any]] = None,
    idempotency_key: Optional[str] = None,
) -> ActivityLog:
    """
    Single entry point for the activity log. Runs inside the caller's
    transaction and never commits. With an idempotency_key a repeated call
    returns the existing row instead of raising IntegrityError.
    """
    payload = {
        "type": type,
        "actor_id": actor_id,
        "target_user_id": target_user_id,
        "run_event_id": run_event_id,
        "chat_id": chat_id,
        "data": (data or {}),
        "idempotency_key": idempotency_key,
        "created_at": utcnow(),
    }

    if idempotency_key:
        insert_fn = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
        if insert_fn is not None:
            # ON CONFLICT DO NOTHING on the unique idempotency_key
            stmt = (
                insert_fn(ActivityLog.__table__)
                .values(**payload)
                .on_conflict_do_nothing(index_elements=["idempotency_key"])
                .returning(ActivityLog.id)
            )
            inserted_id = db.execute(stmt).scalar_one_or_none()
            if inserted_id is not None:
                return db.get(ActivityLog, inserted_id)

        existing = db.query(ActivityLog).filter(ActivityLog.idempotency_key == idempotency_key).first()
        if existing:
            return existing

    entry = ActivityLog(**payload)
    db.add(entry)
    return entry


def make_diff(before: Dict[str, Any], after: Dict[str, Any]) -> Dict[str, Any]:
    """
    Field diff for *_UPDATED entries: { changed: [...], diff: {field: {old, new}} }.
    """
    changed = []
    diff: Dict[str, Any] = {}
    for k in sorted(set(before.keys()) | set(after.keys())):
        if before.get(k) != after.get(k):
            changed.append(k)
            diff[k] = {"old": before.get(k), "new": after.get(k)}
    return {"changed": changed, "diff": diff}
