# runmate/routers/dashboard.py
"""
Home screen in one request: the caller's level and points, this ISO week's
and this calendar month's training totals, personal bests, the latest runs
and the next run events they are part of.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from runmate.db import get_db, utcnow
from runmate.models.user import User
from runmate.repositories.run_events import RunEventRepository
from runmate.repositories.run_logs import RunLogRepository
from runmate.schemas.common import ok
from runmate.schemas.run_event import RunEventOut
from runmate.schemas.run_log import RunLogOut
from runmate.services import run_logs as training
from runmate.utils.auth_dep import get_current_user
from runmate.utils.user import get_display_name

router = APIRouter()

RECENT_RUNS = 4
UPCOMING_EVENTS = 3


@router.get("/")
def get_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    now = utcnow()
    runs = RunLogRepository(db)

    week_start, week_end = training.iso_week_bounds(now)
    month_start, month_end = training.month_bounds(now)
    records = training.personal_records(runs.list_for_user(current_user.id))

    return ok(
        {
            "user": {
                "id": current_user.id,
                "firstName": current_user.first_name,
                "displayName": get_display_name(current_user.first_name, current_user.last_name, current_user.email),
                "profilePhoto": current_user.profile_photo,
                "level": current_user.level,
                "points": current_user.points,
            },
            "weeklyStats": training.summarize(runs.list_for_user(current_user.id, week_start, week_end)),
            "monthlyStats": training.summarize(runs.list_for_user(current_user.id, month_start, month_end)),
            "personalBests": [
                {
                    "distance": name,
                    "time": records[name]["duration"] if name in records else None,
                    "date": records[name]["date"] if name in records else None,
                }
                for name in training.RECORD_WINDOWS
            ],
            "recentActivities": [
                RunLogOut.from_run_log(r) for r in runs.list_for_user(current_user.id, limit=RECENT_RUNS)
            ],
            "upcomingRuns": [
                RunEventOut.from_event(e)
                for e in RunEventRepository(db).list_upcoming_for_user(current_user.id, now, limit=UPCOMING_EVENTS)
            ],
        }
    )
