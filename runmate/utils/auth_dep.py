# runmate/utils/auth_dep.py
"""
Authentication dependencies.
- user_from_token: resolves a JWT to an active user and lazily bumps last_active
- get_current_user: FastAPI dependency for protected routes (Authorization: Bearer <jwt>)
"""

from datetime import timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from runmate.core.exceptions import UnauthorizedError
from runmate.core.security import get_user_id_from_token
from runmate.db import get_db, utcnow
from runmate.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)

# last_active is written at most once per window
LAST_ACTIVE_RESOLUTION = timedelta(minutes=5)


def user_from_token(token: Optional[str], db: Session) -> User:
    if not token:
        raise UnauthorizedError("Not authorized, no token")

    user_id = get_user_id_from_token(token)
    if user_id is None:
        raise UnauthorizedError("Not authorized, invalid token")

    user: Optional[User] = db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    if not user.is_active:
        raise UnauthorizedError("Account is deactivated", "ACCOUNT_INACTIVE")

    now = utcnow()
    if user.last_active is None or now - user.last_active > LAST_ACTIVE_RESOLUTION:
        user.last_active = now
        db.commit()
        db.refresh(user)

    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials if credentials else None
    return user_from_token(token, db)
