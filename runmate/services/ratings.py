# runmate/services/ratings.py
# -----------------------------------------------------------------------------
# Ratings: creation after a shared run, hidden support reports, the
# "who can I still rate" list, and stats with the cache on the user row.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from runmate.core.exceptions import BadRequestError, ConflictError
from runmate.db import utcnow
from runmate.models.rating import RATING_CATEGORIES, Rating, ReportReason
from runmate.models.run_event import RunEventStatus
from runmate.repositories.ratings import RatingRepository
from runmate.repositories.run_events import RunEventRepository
from runmate.services.activity_log import RATING_CREATED, REPORT_SUBMITTED, log_activity
from runmate.services.rating_stats import compute_rating_stats
from runmate.utils.guards import get_run_event_or_404, get_user_or_404

log = logging.getLogger(__name__)


def get_user_rating_stats(db: Session, user_id: int) -> Dict[str, Any]:
    return compute_rating_stats(RatingRepository(db).all_approved_for_ratee(user_id))


def refresh_cached_stats(db: Session, user_id: int) -> Dict[str, Any]:
    stats = get_user_rating_stats(db, user_id)
    RatingRepository(db).cache_stats_on_user(user_id, stats)
    return stats


def create_rating(
    db: Session,
    rater_id: int,
    *,
    ratee_id: int,
    run_event_id: int,
    overall_rating: int,
    categories: Optional[Mapping[str, bool]] = None,
    comment: Optional[str] = None,
) -> Rating:
    """
    Both users must have run the event together and its date must have
    passed. One rating per (rater, ratee, event).
    """
    if rater_id == ratee_id:
        raise BadRequestError("You cannot rate yourself.", "SELF_RATING")

    run_event = get_run_event_or_404(db, run_event_id)
    if run_event.status == RunEventStatus.cancelled:
        raise ConflictError("Cancelled events cannot be rated.", "EVENT_CANCELLED")

    participants = run_event.participant_ids
    if rater_id not in participants or ratee_id not in participants:
        raise BadRequestError("Both users must have taken part in the event.", "NOT_PARTICIPANTS")

    if run_event.date > utcnow():
        raise BadRequestError("You can only rate after the event has taken place.", "EVENT_NOT_FINISHED")

    repo = RatingRepository(db)
    if repo.exists(rater_id, ratee_id, run_event_id):
        raise ConflictError("You have already rated this person for this event.", "ALREADY_RATED")

    flags = {name: bool((categories or {}).get(name, False)) for name in RATING_CATEGORIES}
    rating = repo.create(
        rater_id=rater_id,
        ratee_id=ratee_id,
        run_event_id=run_event_id,
        overall_rating=overall_rating,
        comment=comment or "",
        is_approved=True,
        **flags,
    )

    stats = refresh_cached_stats(db, ratee_id)
    log_activity(
        db,
        type=RATING_CREATED,
        actor_id=rater_id,
        target_user_id=ratee_id,
        run_event_id=run_event_id,
        data={"overall_rating": overall_rating, "level": stats["level"]},
    )
    log.info("rating %s: user %s -> user %s (event %s)", rating.id, rater_id, ratee_id, run_event_id)
    return rating


def submit_report(
    db: Session,
    reporter_id: int,
    *,
    reported_user_id: int,
    run_event_id: int,
    reason: ReportReason,
    details: Optional[str] = None,
) -> Rating:
    """
    Stored as a hidden rating (is_approved = false), so it never shows up in
    listings or stats and takes the reporter's single slot for that event.
    """
    if reporter_id == reported_user_id:
        raise BadRequestError("You cannot report yourself.", "SELF_REPORT")

    get_run_event_or_404(db, run_event_id)
    get_user_or_404(db, reported_user_id)

    repo = RatingRepository(db)
    if repo.exists(reporter_id, reported_user_id, run_event_id):
        raise ConflictError("You have already rated or reported this person for this event.", "ALREADY_RATED")

    report = repo.create(
        rater_id=reporter_id,
        ratee_id=reported_user_id,
        run_event_id=run_event_id,
        overall_rating=1,
        is_approved=False,
        has_report=True,
        report_reason=reason,
        report_details=details,
        report_handled=False,
    )
    log_activity(
        db,
        type=REPORT_SUBMITTED,
        actor_id=reporter_id,
        target_user_id=reported_user_id,
        run_event_id=run_event_id,
        data={"reason": reason.value},
    )
    log.warning("support report %s filed by user %s against user %s", report.id, reporter_id, reported_user_id)
    return report


def pending_ratings(db: Session, user_id: int) -> List[Dict[str, Any]]:
    """
    For every past (not cancelled) event the user took part in, the other
    participants they have not rated yet: [{"event": RunEvent, "participant": User}].
    """
    events = RunEventRepository(db).list_past_for_user(user_id)
    done = RatingRepository(db).rated_pairs(user_id, [e.id for e in events])

    out: List[Dict[str, Any]] = []
    for run_event in events:
        for p in run_event.participants:
            if p.user_id == user_id or (run_event.id, p.user_id) in done:
                continue
            out.append({"event": run_event, "participant": p.user})
    return out
