# runmate/routers/users.py
"""
Own profile and account (password, deactivation, blocks), training
summary, and other runners' public profiles.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from runmate.core.exceptions import BadRequestError
from runmate.core.security import get_password_hash, verify_password
from runmate.db import get_db
from runmate.models.user import User
from runmate.repositories.run_logs import RunLogRepository
from runmate.repositories.users import UserBlockRepository
from runmate.schemas.common import ok
from runmate.schemas.run_log import RunTotals
from runmate.schemas.user import PasswordChange, UserBrief, UserOut, UserUpdate
from runmate.utils.auth_dep import get_current_user
from runmate.utils.guards import get_user_or_404

log = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    return ok(UserOut.model_validate(current_user))


@router.put("/me")
def update_me(
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Profile patch: only the fields present in the body change.
    Email and password are not editable here.
    """
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field in ("first_name", "last_name") and value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
        setattr(current_user, field, value)

    db.commit()
    db.refresh(current_user)
    return ok(UserOut.model_validate(current_user), message="Profile updated successfully")


@router.put("/password")
def change_password(
    payload: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(payload.current_password, current_user.password_hash):
        raise BadRequestError("Current password is incorrect", "INVALID_PASSWORD")

    current_user.password_hash = get_password_hash(payload.new_password)
    db.commit()
    log.info("user %s changed password", current_user.id)
    return ok(message="Password updated")


@router.delete("/account")
def deactivate_account(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Soft delete: the account can no longer log in or be looked up, while
    chats, events and ratings that reference it stay intact.
    """
    current_user.is_active = False
    db.commit()
    log.info("user %s deactivated their account", current_user.id)
    return ok(message="Account deactivated")


@router.get("/stats/summary")
def stats_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Lifetime training totals and the caller's national points rank."""
    runs = RunLogRepository(db)
    return ok(
        {
            "user": {
                "id": current_user.id,
                "firstName": current_user.first_name,
                "lastName": current_user.last_name,
                "points": current_user.points,
                "level": current_user.level,
                "profilePhoto": current_user.profile_photo,
            },
            "stats": RunTotals(**runs.totals_for_user(current_user.id)),
            "rankings": {"national": runs.national_rank(current_user)},
        }
    )


@router.get("/blocked")
def list_blocked(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    users = UserBlockRepository(db).blocked_users(current_user.id)
    return ok([UserBrief.model_validate(u) for u in users])


@router.post("/block/{user_id}")
def block_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if user_id == current_user.id:
        raise BadRequestError("Cannot block yourself", "SELF_BLOCK")
    get_user_or_404(db, user_id)

    UserBlockRepository(db).block(current_user.id, user_id)
    db.commit()
    return ok(message="User blocked")


@router.delete("/block/{user_id}")
def unblock_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    UserBlockRepository(db).unblock(current_user.id, user_id)
    db.commit()
    return ok(message="User unblocked")


@router.get("/{user_id}")
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Public profile with the cached rating stats."""
    return ok(UserOut.model_validate(get_user_or_404(db, user_id)))
