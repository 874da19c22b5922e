# runmate/jobs/auto_complete.py
# AUTO-COMPLETE OF RUN EVENTS WHOSE DATE HAS PASSED
# -----------------------------------------------------------------------------
# Finds events that are still open / full / in-progress although their date
# lies more than AUTO_COMPLETE_GRACE_HOURS in the past, and marks them
# completed. Completed events are locked for membership changes but can
# still be rated.
#
# How to run:
#   One-off pass (script, CI runner, test):
#       >>> from runmate.jobs.auto_complete import auto_complete_once
#       >>> auto_complete_once()
#
#   Background loop, started from the FastAPI startup hook when
#   AUTO_COMPLETE_ENABLED=1:
#       >>> start_auto_complete_loop()

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from runmate.core.config import settings
from runmate.db import SessionLocal, utcnow
from runmate.models.run_event import RunEvent, RunEventStatus
from runmate.repositories.run_events import RunEventRepository
from runmate.services.activity_log import RUN_EVENT_COMPLETED, log_activity

log = logging.getLogger(__name__)


def _cutoff(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) - timedelta(hours=settings.AUTO_COMPLETE_GRACE_HOURS)


def _complete_event(db: Session, run_event: RunEvent) -> bool:
    # status may have changed since the candidate query
    if run_event.status not in (RunEventStatus.open, RunEventStatus.full, RunEventStatus.in_progress):
        return False

    run_event.status = RunEventStatus.completed
    log_activity(
        db,
        type=RUN_EVENT_COMPLETED,
        actor_id=run_event.host_id,
        run_event_id=run_event.id,
        idempotency_key=f"run_event_completed:{run_event.id}",
    )
    return True


def auto_complete_once(
    session_factory: Callable[[], Session] = SessionLocal,
    now: Optional[datetime] = None,
) -> dict:
    """
    One pass: new session, find candidates, complete them, commit once,
    return a summary.
    """
    with session_factory() as db:
        candidates = RunEventRepository(db).list_due_for_completion(_cutoff(now))
        completed_ids: list[int] = []
        skipped_ids: list[int] = []

        for ev in candidates:
            done = _complete_event(db, ev)
            (completed_ids if done else skipped_ids).append(ev.id)

        db.commit()

    summary = {
        "completed_count": len(completed_ids),
        "completed_ids": completed_ids,
        "skipped_count": len(skipped_ids),
        "skipped_ids": skipped_ids,
    }
    log.info("auto-complete summary: %s", summary)
    return summary


async def _loop_every(minutes: int) -> None:
    """Run a pass, sleep, repeat; a failed pass is logged and the loop goes on."""
    while True:
        try:
            await asyncio.to_thread(auto_complete_once)
        except Exception:
            log.exception("auto-complete loop iteration failed")
        await asyncio.sleep(minutes * 60)


def start_auto_complete_loop() -> None:
    """Schedules the loop on the running event loop (call from the startup hook)."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # no running loop, e.g. imported from a one-off script
        return
    loop.create_task(_loop_every(settings.AUTO_COMPLETE_INTERVAL_MINUTES))
