# runmate/repositories/run_events.py
"""
Data access for the RunEvent aggregate. Flushes, never commits.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from runmate.db import utcnow
from runmate.models.run_event import RunEvent, RunEventParticipant, RunEventRequest, RunEventStatus


class RunEventRepository:
    def __init__(self, db: Session):
        self.db = db

    def _with_members(self, stmt):
        return stmt.options(
            selectinload(RunEvent.host),
            selectinload(RunEvent.participants).selectinload(RunEventParticipant.user),
            selectinload(RunEvent.pending_requests).selectinload(RunEventRequest.user),
        )

    def get(self, run_event_id: int) -> Optional[RunEvent]:
        return self.db.scalar(self._with_members(select(RunEvent).where(RunEvent.id == run_event_id)))

    def create(self, host_id: int, **fields) -> RunEvent:
        """The host is always the first participant."""
        run_event = RunEvent(host_id=host_id, status=RunEventStatus.open, **fields)
        run_event.participants = [RunEventParticipant(user_id=host_id)]
        self.db.add(run_event)
        self.db.flush()
        return run_event

    def list_upcoming_open(self, now: Optional[datetime] = None, *, limit: int = 100) -> List[RunEvent]:
        now = now or utcnow()
        stmt = (
            select(RunEvent)
            .where(RunEvent.date >= now, RunEvent.status == RunEventStatus.open)
            .order_by(RunEvent.date.asc(), RunEvent.id.asc())
            .limit(limit)
        )
        return list(self.db.scalars(self._with_members(stmt)).all())

    def list_past_for_user(self, user_id: int, now: Optional[datetime] = None) -> List[RunEvent]:
        """Events the user took part in whose date has passed (cancelled ones excluded)."""
        now = now or utcnow()
        stmt = (
            select(RunEvent)
            .join(RunEventParticipant, RunEventParticipant.run_event_id == RunEvent.id)
            .where(
                RunEventParticipant.user_id == user_id,
                RunEvent.date < now,
                RunEvent.status != RunEventStatus.cancelled,
            )
            .order_by(RunEvent.date.desc(), RunEvent.id.desc())
        )
        return list(self.db.scalars(self._with_members(stmt)).all())

    def list_upcoming_for_user(self, user_id: int, now: Optional[datetime] = None, *, limit: int = 3) -> List[RunEvent]:
        """Events the user is in that have not started yet, soonest first."""
        now = now or utcnow()
        stmt = (
            select(RunEvent)
            .join(RunEventParticipant, RunEventParticipant.run_event_id == RunEvent.id)
            .where(
                RunEventParticipant.user_id == user_id,
                RunEvent.date >= now,
                RunEvent.status != RunEventStatus.cancelled,
            )
            .order_by(RunEvent.date.asc(), RunEvent.id.asc())
            .limit(limit)
        )
        return list(self.db.scalars(self._with_members(stmt)).all())

    def list_due_for_completion(self, cutoff: datetime) -> List[RunEvent]:
        stmt = (
            select(RunEvent)
            .where(
                RunEvent.status.in_([RunEventStatus.open, RunEventStatus.full, RunEventStatus.in_progress]),
                RunEvent.date < cutoff,
            )
            .order_by(RunEvent.date.asc(), RunEvent.id.asc())
        )
        return list(self.db.scalars(stmt).all())

    # --- membership ---

    def participant_ids(self, run_event: RunEvent) -> List[int]:
        return run_event.participant_ids

    def pending_ids(self, run_event: RunEvent) -> List[int]:
        return run_event.pending_ids

    def add_participant(self, run_event: RunEvent, user_id: int) -> None:
        if user_id not in run_event.participant_ids:
            run_event.participants.append(RunEventParticipant(user_id=user_id))
            self.db.flush()

    def remove_participant(self, run_event: RunEvent, user_id: int) -> bool:
        row = next((p for p in run_event.participants if p.user_id == user_id), None)
        if row is None:
            return False
        run_event.participants.remove(row)
        self.db.flush()
        return True

    def add_request(self, run_event: RunEvent, user_id: int) -> None:
        if user_id not in run_event.pending_ids:
            run_event.pending_requests.append(RunEventRequest(user_id=user_id))
            self.db.flush()

    def remove_request(self, run_event: RunEvent, user_id: int) -> bool:
        row = next((r for r in run_event.pending_requests if r.user_id == user_id), None)
        if row is None:
            return False
        run_event.pending_requests.remove(row)
        self.db.flush()
        return True
