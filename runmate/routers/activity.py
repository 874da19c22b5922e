# runmate/routers/activity.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, exists, or_, select
from sqlalchemy.orm import Session

from runmate.db import get_db
from runmate.models.activity_log import ActivityLog
from runmate.models.run_event import RunEventParticipant
from runmate.models.user import User
from runmate.schemas.activity import ActivityOut
from runmate.schemas.common import ok
from runmate.services.activity_log import REPORT_SUBMITTED
from runmate.utils.auth_dep import get_current_user

router = APIRouter()

# filter chips -> type prefixes; anything else is matched as an exact type
_CHIP_PREFIXES = {
    "runevent": ("run_event_%", "join_%", "participant_%"),
    "chat": ("chat_%",),
    "rating": ("rating_%",),
}


def _apply_types_filter(q, types: Optional[List[str]]):
    if not types:
        return q

    tset = {t.lower().strip() for t in types if t and t.strip()}
    if not tset:
        return q

    clauses = []
    for chip, prefixes in _CHIP_PREFIXES.items():
        if chip in tset:
            clauses.extend(ActivityLog.type.like(p) for p in prefixes)

    other_exact = [t for t in tset if t not in _CHIP_PREFIXES]
    if other_exact:
        clauses.append(ActivityLog.type.in_(other_exact))

    if clauses:
        q = q.where(or_(*clauses))
    return q


@router.get("/")
def list_activity(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    types: Optional[List[str]] = Query(None, description="Filter chips (runevent, chat, rating) or exact types"),
    run_event_id: Optional[int] = Query(None, alias="runEventId"),
    since: Optional[datetime] = Query(None, description="created_at >= since"),
    before: Optional[datetime] = Query(None, description="created_at < before"),
):
    """
    Activity visible to the caller:
      - actor == me or target == me
      - OR the entry belongs to a run event I currently take part in
    Support reports are only visible to their author.
    """
    me = current_user

    base = select(ActivityLog).where(
        or_(
            ActivityLog.actor_id == me.id,
            and_(
                ActivityLog.type != REPORT_SUBMITTED,
                or_(
                    ActivityLog.target_user_id == me.id,
                    and_(
                        ActivityLog.run_event_id.isnot(None),
                        exists(
                            select(1).where(
                                and_(
                                    RunEventParticipant.run_event_id == ActivityLog.run_event_id,
                                    RunEventParticipant.user_id == me.id,
                                )
                            )
                        ),
                    ),
                ),
            ),
        )
    )

    if run_event_id is not None:
        base = base.where(ActivityLog.run_event_id == run_event_id)
    if since is not None:
        base = base.where(ActivityLog.created_at >= since)
    if before is not None:
        base = base.where(ActivityLog.created_at < before)

    base = _apply_types_filter(base, types)
    base = base.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).offset(offset).limit(limit)

    rows = db.execute(base).scalars().all()
    return ok([ActivityOut.model_validate(r) for r in rows])
