# runmate/routers/ratings.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from runmate.db import get_db
from runmate.models.user import User
from runmate.repositories.ratings import RatingRepository
from runmate.schemas.common import ok
from runmate.schemas.rating import PendingRatingOut, RatingCreate, RatingOut, RatingStatsOut, ReportCreate
from runmate.schemas.run_event import RunEventBrief
from runmate.schemas.user import UserBrief
from runmate.services import ratings as rating_service
from runmate.utils.auth_dep import get_current_user
from runmate.utils.pagination import total_pages

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_rating(
    payload: RatingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rating = rating_service.create_rating(
        db,
        current_user.id,
        ratee_id=payload.ratee_id,
        run_event_id=payload.event_id,
        overall_rating=payload.overall_rating,
        categories=payload.categories.model_dump(),
        comment=payload.comment,
    )
    db.commit()
    db.refresh(rating)
    return ok(RatingOut.from_rating(rating), message="Rating created")


@router.get("/pending")
def pending_ratings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Participants of the caller's past events that the caller has not rated yet."""
    items = rating_service.pending_ratings(db, current_user.id)
    return ok(
        [
            PendingRatingOut(
                event=RunEventBrief.model_validate(item["event"]),
                participant=UserBrief.model_validate(item["participant"]),
            )
            for item in items
        ]
    )


@router.get("/user/{user_id}/stats")
def user_rating_stats(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ok(RatingStatsOut.from_stats(rating_service.get_user_rating_stats(db, user_id)))


@router.get("/user/{user_id}")
def user_ratings(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Approved ratings only, newest first."""
    repo = RatingRepository(db)
    ratings = repo.list_approved_for_ratee(user_id, page, limit)
    total = repo.count_approved_for_ratee(user_id)
    return ok(
        {
            "ratings": [RatingOut.from_rating(r) for r in ratings],
            "totalPages": total_pages(total, limit),
            "currentPage": page,
            "total": total,
        }
    )


@router.post("/report")
def report_to_support(
    payload: ReportCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rating_service.submit_report(
        db,
        current_user.id,
        reported_user_id=payload.reported_user_id,
        run_event_id=payload.event_id,
        reason=payload.reason,
        details=payload.details,
    )
    db.commit()
    return ok(message="Report sent to support")
