# runmate/routers/auth.py
"""
Email/password authentication. Register and login return a JWT access token
together with the user; every other route expects it as a Bearer token.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from runmate.core.exceptions import BadRequestError, UnauthorizedError
from runmate.core.security import create_access_token, get_password_hash, verify_password
from runmate.db import get_db, utcnow
from runmate.models.user import User
from runmate.schemas.common import ok
from runmate.schemas.user import AuthOut, UserLogin, UserOut, UserRegister
from runmate.utils.auth_dep import get_current_user

log = logging.getLogger(__name__)

router = APIRouter()


def _auth_payload(user: User) -> AuthOut:
    token = create_access_token({"sub": str(user.id)})
    return AuthOut(token=token, user=UserOut.model_validate(user))


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == payload.email).first():
        raise BadRequestError("User already exists with this email", "EMAIL_TAKEN")

    user = User(
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        bio=payload.bio,
        last_active=utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    log.info("user %s registered", user.id)
    return ok(_auth_payload(user), message="User registered successfully")


@router.post("/login")
def login(payload: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email).first()
    # same answer for unknown email and wrong password
    if user is None or not verify_password(payload.password, user.password_hash):
        raise UnauthorizedError("Invalid credentials", "INVALID_CREDENTIALS")
    if not user.is_active:
        raise UnauthorizedError("Account is deactivated", "ACCOUNT_INACTIVE")

    user.last_active = utcnow()
    db.commit()
    db.refresh(user)
    return ok(_auth_payload(user))


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return ok(UserOut.model_validate(current_user))
