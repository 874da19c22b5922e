# runmate/core/security.py
"""
Password hashing (bcrypt) and JWT access tokens (python-jose).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import bcrypt
from jose import JWTError, jwt

from runmate.core.config import settings

log = logging.getLogger(__name__)

_DEV_SECRET = "dev-secret-change-this-in-production-minimum-32-characters"


def _jwt_secret() -> str:
    secret = settings.JWT_SECRET
    if secret and len(secret) >= 32:
        return secret
    if settings.is_production:
        raise RuntimeError("JWT_SECRET must be set (32+ chars) in production")
    log.warning("JWT_SECRET is not set or too short, using the development fallback")
    return _DEV_SECRET


SECRET_KEY = _jwt_secret()
ALGORITHM = settings.JWT_ALGORITHM


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # malformed hash in the DB
        return False


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict]:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def get_user_id_from_token(token: str) -> Optional[int]:
    payload = decode_access_token(token)
    if not payload:
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
