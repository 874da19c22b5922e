# runmate/utils/guards.py
# Shared loaders and access guards for routers and services.

from __future__ import annotations

from sqlalchemy.orm import Session

from runmate.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from runmate.models.chat import Chat
from runmate.models.run_event import LOCKED_STATUSES, RunEvent
from runmate.models.user import User
from runmate.repositories.chats import ChatRepository
from runmate.repositories.run_events import RunEventRepository

# =========================
# USERS
# =========================

def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise NotFoundError("User", user_id)
    return user


# =========================
# RUN EVENTS
# =========================

def get_run_event_or_404(db: Session, run_event_id: int) -> RunEvent:
    run_event = RunEventRepository(db).get(run_event_id)
    if run_event is None:
        raise NotFoundError("Run event", run_event_id)
    return run_event


def require_host(run_event: RunEvent, user_id: int) -> RunEvent:
    if run_event.host_id != user_id:
        raise ForbiddenError("Only the host can perform this action", "NOT_HOST")
    return run_event


def ensure_not_locked(run_event: RunEvent) -> None:
    """Cancelled and completed events accept no membership changes."""
    if run_event.status in LOCKED_STATUSES:
        raise ConflictError(f"Run event is {run_event.status.value}", "EVENT_LOCKED")


# =========================
# CHATS
# =========================

def get_chat_or_404(db: Session, chat_id: int) -> Chat:
    chat = ChatRepository(db).get(chat_id)
    if chat is None:
        raise NotFoundError("Chat", chat_id)
    return chat


def require_chat_participant(db: Session, chat_id: int, user_id: int) -> Chat:
    chat = get_chat_or_404(db, chat_id)
    if not ChatRepository(db).is_participant(chat, user_id):
        raise ForbiddenError("Access denied", "NOT_PARTICIPANT")
    return chat
