# runmate/routers/run_logs.py
# -----------------------------------------------------------------------------
# RUN LOG ROUTER (/api/activities)
# -----------------------------------------------------------------------------
# The caller's own training log: record, list, edit and delete runs, plus the
# personal records derived from them. Points earned move with each change.

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from runmate.db import get_db
from runmate.models.user import User
from runmate.repositories.run_logs import RunLogRepository
from runmate.schemas.common import ok
from runmate.schemas.run_log import RunLogCreate, RunLogOut, RunLogUpdate
from runmate.services import run_logs as training
from runmate.utils.auth_dep import get_current_user

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def log_run(
    payload: RunLogCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    run_log = training.log_run(db, current_user, payload.to_fields())
    db.commit()
    db.refresh(run_log)
    return ok(
        RunLogOut.from_run_log(run_log),
        pointsEarned=run_log.points_earned,
        newUserLevel=current_user.level,
        totalUserPoints=current_user.points,
    )


@router.get("/")
def list_runs(
    period: Optional[Literal["today", "week", "month", "year", "all"]] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Newest first; period narrows to today, the last 7/30/365 days, or all."""
    runs = RunLogRepository(db).list_for_user(current_user.id, since=training.period_start(period))
    return ok([RunLogOut.from_run_log(r) for r in runs], total=len(runs))


@router.get("/personal-records")
def personal_records(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    runs = RunLogRepository(db).list_for_user(current_user.id)
    return ok(training.personal_records(runs))


@router.get("/{run_log_id}")
def get_run(
    run_log_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ok(RunLogOut.from_run_log(training.get_own_run_log(db, run_log_id, current_user.id)))


@router.put("/{run_log_id}")
def update_run(
    run_log_id: int,
    payload: RunLogUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    run_log = training.get_own_run_log(db, run_log_id, current_user.id)
    training.update_run(db, run_log, current_user, payload.to_changes())
    db.commit()
    db.refresh(run_log)
    return ok(RunLogOut.from_run_log(run_log), totalUserPoints=current_user.points)


@router.delete("/{run_log_id}")
def delete_run(
    run_log_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    run_log = training.get_own_run_log(db, run_log_id, current_user.id)
    training.delete_run(db, run_log, current_user)
    db.commit()
    return ok(message="Activity removed")
