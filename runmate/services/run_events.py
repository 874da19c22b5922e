# runmate/services/run_events.py
# -----------------------------------------------------------------------------
# Run event workflow: create, join request, approve/reject, leave, cancel, update.
# -----------------------------------------------------------------------------
# Every function works inside the caller's session and never commits, so an
# approval together with its chat creation lands in one transaction.

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from runmate.core.exceptions import BadRequestError, NotFoundError
from runmate.models.chat import Chat
from runmate.models.run_event import RunEvent, RunEventStatus
from runmate.repositories.chats import ChatRepository
from runmate.repositories.run_events import RunEventRepository
from runmate.services.activity_log import (
    CHAT_CREATED,
    CHAT_MEMBER_ADDED,
    CHAT_MEMBER_REMOVED,
    JOIN_APPROVED,
    JOIN_REJECTED,
    JOIN_REQUESTED,
    PARTICIPANT_LEFT,
    RUN_EVENT_CANCELLED,
    RUN_EVENT_CREATED,
    RUN_EVENT_UPDATED,
    log_activity,
    make_diff,
)
from runmate.utils.guards import ensure_not_locked, require_host

log = logging.getLogger(__name__)

APPROVE = "approve"
REJECT = "reject"

UPDATABLE_FIELDS = (
    "title",
    "description",
    "location_name",
    "location_lat",
    "location_lng",
    "distance",
    "pace",
    "date",
    "max_participants",
)


def _sync_capacity_status(run_event: RunEvent) -> None:
    """status == full exactly when the participant list is at capacity."""
    if run_event.status in (RunEventStatus.open, RunEventStatus.full):
        if len(run_event.participants) >= run_event.max_participants:
            run_event.status = RunEventStatus.full
        else:
            run_event.status = RunEventStatus.open


def _snapshot(run_event: RunEvent) -> Dict[str, Any]:
    out = {name: getattr(run_event, name) for name in UPDATABLE_FIELDS}
    out["date"] = run_event.date.isoformat() if run_event.date else None
    out["status"] = run_event.status.value
    return out


def create_run_event(db: Session, host_id: int, fields: Dict[str, Any]) -> RunEvent:
    run_event = RunEventRepository(db).create(host_id, **fields)
    log_activity(
        db,
        type=RUN_EVENT_CREATED,
        actor_id=host_id,
        run_event_id=run_event.id,
        data={"title": run_event.title},
    )
    log.info("run event %s created by user %s", run_event.id, host_id)
    return run_event


def request_join(db: Session, run_event: RunEvent, user_id: int) -> RunEvent:
    if run_event.status != RunEventStatus.open:
        raise BadRequestError("This run is no longer open for requests.", "EVENT_NOT_OPEN")
    if run_event.host_id == user_id:
        raise BadRequestError("You cannot join your own event.", "IS_HOST")
    repo = RunEventRepository(db)
    if user_id in repo.participant_ids(run_event):
        raise BadRequestError("You are already part of this event.", "ALREADY_PARTICIPANT")
    if user_id in repo.pending_ids(run_event):
        raise BadRequestError("You have already sent a request to join.", "ALREADY_PENDING")

    repo.add_request(run_event, user_id)
    log_activity(
        db,
        type=JOIN_REQUESTED,
        actor_id=user_id,
        target_user_id=run_event.host_id,
        run_event_id=run_event.id,
    )
    return run_event


def _attach_to_event_chat(db: Session, run_event: RunEvent, applicant_id: int) -> Tuple[Chat, bool]:
    """
    First approval creates the event's group chat (host + applicant);
    later approvals add the applicant to it. Returns (chat, created).
    """
    chats = ChatRepository(db)
    chat = chats.get(run_event.chat_id) if run_event.chat_id else None

    if chat is None:
        chat = chats.create_event_chat(run_event, applicant_id)
        run_event.chat_id = chat.id
        log_activity(
            db,
            type=CHAT_CREATED,
            actor_id=run_event.host_id,
            run_event_id=run_event.id,
            chat_id=chat.id,
            data={"chat_type": "group"},
        )
        return chat, True

    if chats.add_participant(chat, applicant_id):
        log_activity(
            db,
            type=CHAT_MEMBER_ADDED,
            actor_id=run_event.host_id,
            target_user_id=applicant_id,
            run_event_id=run_event.id,
            chat_id=chat.id,
        )
    return chat, False


def decide_request(
    db: Session,
    run_event: RunEvent,
    host_id: int,
    applicant_id: int,
    action: str,
) -> Optional[Chat]:
    """
    Host approves or rejects a pending request. The request is always taken
    off the pending list; an approval that would exceed capacity raises, and
    because nothing is committed the request stays pending.
    Returns the event chat on approval.
    """
    require_host(run_event, host_id)
    ensure_not_locked(run_event)

    repo = RunEventRepository(db)
    if not repo.remove_request(run_event, applicant_id):
        raise NotFoundError("Pending request", applicant_id)

    if action == REJECT:
        log_activity(
            db,
            type=JOIN_REJECTED,
            actor_id=host_id,
            target_user_id=applicant_id,
            run_event_id=run_event.id,
        )
        return None

    if len(run_event.participants) >= run_event.max_participants:
        raise BadRequestError("Event is already full.", "EVENT_FULL")

    repo.add_participant(run_event, applicant_id)
    _sync_capacity_status(run_event)

    chat, _ = _attach_to_event_chat(db, run_event, applicant_id)
    log_activity(
        db,
        type=JOIN_APPROVED,
        actor_id=host_id,
        target_user_id=applicant_id,
        run_event_id=run_event.id,
        chat_id=chat.id,
        data={"participants": len(run_event.participants), "status": run_event.status.value},
    )
    db.flush()
    return chat


def leave_run_event(db: Session, run_event: RunEvent, user_id: int) -> RunEvent:
    ensure_not_locked(run_event)
    if run_event.host_id == user_id:
        raise BadRequestError("Host cannot leave the event, you must cancel it.", "HOST_CANNOT_LEAVE")

    repo = RunEventRepository(db)
    if not repo.remove_participant(run_event, user_id):
        raise BadRequestError("You are not a participant in this event.", "NOT_PARTICIPANT")

    if run_event.status == RunEventStatus.full:
        run_event.status = RunEventStatus.open

    if run_event.chat_id:
        chats = ChatRepository(db)
        chat = chats.get(run_event.chat_id)
        if chat is not None and chats.remove_participant(chat, user_id):
            log_activity(
                db,
                type=CHAT_MEMBER_REMOVED,
                actor_id=user_id,
                target_user_id=user_id,
                run_event_id=run_event.id,
                chat_id=chat.id,
            )

    log_activity(
        db,
        type=PARTICIPANT_LEFT,
        actor_id=user_id,
        target_user_id=run_event.host_id,
        run_event_id=run_event.id,
    )
    db.flush()
    return run_event


def cancel_run_event(db: Session, run_event: RunEvent, host_id: int) -> RunEvent:
    require_host(run_event, host_id)
    ensure_not_locked(run_event)

    run_event.status = RunEventStatus.cancelled
    log_activity(db, type=RUN_EVENT_CANCELLED, actor_id=host_id, run_event_id=run_event.id)
    db.flush()
    log.info("run event %s cancelled by host %s", run_event.id, host_id)
    return run_event


def update_run_event(db: Session, run_event: RunEvent, host_id: int, changes: Dict[str, Any]) -> RunEvent:
    """
    Host-only field patch. The new capacity may not drop below the current
    participant count, and the open/full status follows the new capacity.
    """
    require_host(run_event, host_id)
    ensure_not_locked(run_event)

    before = _snapshot(run_event)

    new_max = changes.get("max_participants")
    if new_max is not None and new_max < len(run_event.participants):
        raise BadRequestError(
            f"maxParticipants cannot be lower than the current participant count ({len(run_event.participants)}).",
            "CAPACITY_BELOW_PARTICIPANTS",
        )

    for name, value in changes.items():
        if name in UPDATABLE_FIELDS:
            setattr(run_event, name, value)
    _sync_capacity_status(run_event)

    diff = make_diff(before, _snapshot(run_event))
    if diff["changed"]:
        log_activity(db, type=RUN_EVENT_UPDATED, actor_id=host_id, run_event_id=run_event.id, data=diff)
    db.flush()
    return run_event
