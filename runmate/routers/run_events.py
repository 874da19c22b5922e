# runmate/routers/run_events.py
# -----------------------------------------------------------------------------
# RUN EVENT ROUTER
# -----------------------------------------------------------------------------
# Thin HTTP layer over services.run_events: load, call the workflow, commit
# once. A raised error leaves the session uncommitted, so a failed approval
# does not touch the pending list or the chat.

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from runmate.db import get_db
from runmate.models.user import User
from runmate.repositories.run_events import RunEventRepository
from runmate.schemas.common import ok
from runmate.schemas.run_event import JoinDecision, RunEventCreate, RunEventOut, RunEventUpdate
from runmate.services import run_events as workflow
from runmate.utils.auth_dep import get_current_user
from runmate.utils.guards import get_run_event_or_404

router = APIRouter()


def _reloaded(db: Session, run_event_id: int) -> RunEventOut:
    return RunEventOut.from_event(get_run_event_or_404(db, run_event_id))


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_run_event(
    payload: RunEventCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    run_event = workflow.create_run_event(db, current_user.id, payload.to_fields())
    db.commit()
    return ok(_reloaded(db, run_event.id))


@router.get("/")
def list_run_events(
    limit: int = Query(100, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Upcoming events that still accept join requests, soonest first."""
    events = RunEventRepository(db).list_upcoming_open(limit=limit)
    return ok([RunEventOut.from_event(e) for e in events])


@router.get("/{run_event_id}")
def get_run_event(
    run_event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ok(_reloaded(db, run_event_id))


@router.put("/{run_event_id}")
def update_run_event(
    run_event_id: int,
    payload: RunEventUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    run_event = get_run_event_or_404(db, run_event_id)
    workflow.update_run_event(db, run_event, current_user.id, payload.to_changes())
    db.commit()
    return ok(_reloaded(db, run_event_id))


@router.delete("/{run_event_id}")
def cancel_run_event(
    run_event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    run_event = get_run_event_or_404(db, run_event_id)
    workflow.cancel_run_event(db, run_event, current_user.id)
    db.commit()
    return ok(_reloaded(db, run_event_id), message="Run event has been cancelled.")


@router.post("/{run_event_id}/join")
def request_to_join(
    run_event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    run_event = get_run_event_or_404(db, run_event_id)
    workflow.request_join(db, run_event, current_user.id)
    db.commit()
    return ok(_reloaded(db, run_event_id), message="Your request to join has been sent.")


@router.put("/{run_event_id}/requests")
def handle_join_request(
    run_event_id: int,
    payload: JoinDecision,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Host approves or rejects {applicantId, action}."""
    run_event = get_run_event_or_404(db, run_event_id)
    workflow.decide_request(db, run_event, current_user.id, payload.applicant_id, payload.action)
    db.commit()

    message = "Request approved." if payload.action == workflow.APPROVE else "Request rejected."
    return ok(_reloaded(db, run_event_id), message=message)


@router.post("/{run_event_id}/leave")
def leave_run_event(
    run_event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    run_event = get_run_event_or_404(db, run_event_id)
    workflow.leave_run_event(db, run_event, current_user.id)
    db.commit()
    return ok(_reloaded(db, run_event_id), message="You have left the event.")
