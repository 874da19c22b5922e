# runmate/routers/chats.py
# -----------------------------------------------------------------------------
# CHAT ROUTER
# -----------------------------------------------------------------------------
# Direct and group chats, message history, sending, read receipts and soft
# deletion. Every mutation commits once and only then pushes real-time events
# (new_message / message_read / message_deleted) to the other participants.

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from runmate.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from runmate.db import get_db
from runmate.models.chat import Chat
from runmate.models.user import User
from runmate.repositories.chats import ChatRepository
from runmate.repositories.users import UserBlockRepository
from runmate.schemas.chat import (
    ChatOut,
    DirectChatCreate,
    GroupChatCreate,
    MarkReadIn,
    MessageCreate,
    MessageOut,
)
from runmate.schemas.common import ok
from runmate.services.activity_log import CHAT_CREATED, log_activity
from runmate.services.realtime import (
    MESSAGE_DELETED,
    MESSAGE_READ,
    NEW_MESSAGE,
    PushChannel,
    get_push_channel,
    notify,
)
from runmate.utils.auth_dep import get_current_user
from runmate.utils.guards import get_chat_or_404, get_user_or_404, require_chat_participant

log = logging.getLogger(__name__)

router = APIRouter()


def _chat_summary(chat: Chat) -> dict:
    out = ChatOut.from_chat(chat)
    return {"id": chat.id, "lastMessage": out.last_message, "lastActivity": chat.last_activity}


def _open_direct_chat(db: Session, me: User, other_id: int):
    if other_id == me.id:
        raise BadRequestError("Cannot create chat with yourself", "SELF_CHAT")
    get_user_or_404(db, other_id)
    if UserBlockRepository(db).either_blocked(me.id, other_id):
        raise ForbiddenError("Cannot message this user", "USER_BLOCKED")

    chat, created = ChatRepository(db).find_or_create_direct_chat(me.id, other_id)
    if created:
        log.info("direct chat %s opened by user %s with user %s", chat.id, me.id, other_id)
        log_activity(
            db,
            type=CHAT_CREATED,
            actor_id=me.id,
            target_user_id=other_id,
            chat_id=chat.id,
            data={"chat_type": "direct"},
        )
    return chat


def _send(db: Session, chat: Chat, sender_id: int, payload: MessageCreate):
    repo = ChatRepository(db)
    if payload.reply_to is not None and repo.get_message(chat.id, payload.reply_to) is None:
        raise NotFoundError("Message", payload.reply_to)
    try:
        return repo.add_message(chat, sender_id, payload.content, payload.message_type, payload.reply_to)
    except ValueError as e:
        raise BadRequestError(str(e), "INVALID_MESSAGE")


def _push_new_message(push: Optional[PushChannel], chat: Chat, message, sender_id: int) -> None:
    notify(
        push,
        [m.user_id for m in chat.active_members],
        NEW_MESSAGE,
        jsonable_encoder(
            {"chatId": chat.id, "message": MessageOut.model_validate(message), "chat": _chat_summary(chat)}
        ),
        exclude=sender_id,
    )


@router.get("/")
def list_chats(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Active chats of the caller, most recent activity first, each with its unreadCount."""
    repo = ChatRepository(db)
    chats, has_more = repo.get_user_chats(current_user.id, page, limit)
    data = [ChatOut.from_chat(c, repo.get_unread_count(c.id, current_user.id)) for c in chats]
    return ok(data, page=page, hasMore=has_more)


@router.post("/direct/{user_id}")
def get_or_create_direct_chat(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    chat = _open_direct_chat(db, current_user, user_id)
    db.commit()
    chat = ChatRepository(db).get(chat.id)
    unread = ChatRepository(db).get_unread_count(chat.id, current_user.id)
    return ok(ChatOut.from_chat(chat, unread))


@router.post("/create")
def create_chat_with_message(
    payload: DirectChatCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: Optional[PushChannel] = Depends(get_push_channel),
):
    """Find or create the direct chat with participantId and send initialMessage to it."""
    if not (payload.initial_message or "").strip():
        raise BadRequestError("Initial message cannot be empty", "INVALID_MESSAGE")

    chat = _open_direct_chat(db, current_user, payload.participant_id)
    message = _send(db, chat, current_user.id, MessageCreate(content=payload.initial_message))
    db.commit()

    chat = ChatRepository(db).get(chat.id)
    _push_new_message(push, chat, message, current_user.id)

    unread = ChatRepository(db).get_unread_count(chat.id, current_user.id)
    return ok(ChatOut.from_chat(chat, unread), chatId=chat.id)


@router.post("/group")
def create_group_chat(
    payload: GroupChatCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    others = [uid for uid in dict.fromkeys(payload.participant_ids) if uid != current_user.id]
    if not others:
        raise BadRequestError("A group chat needs at least one other participant", "NO_PARTICIPANTS")
    for uid in others:
        get_user_or_404(db, uid)

    repo = ChatRepository(db)
    chat = repo.create_group_chat(current_user.id, others, payload.name, payload.description)
    log_activity(
        db,
        type=CHAT_CREATED,
        actor_id=current_user.id,
        chat_id=chat.id,
        data={"chat_type": "group", "participants": len(others) + 1},
    )
    db.commit()
    return ok(ChatOut.from_chat(repo.get(chat.id), 0))


@router.get("/{chat_id}")
def get_chat(
    chat_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    chat = require_chat_participant(db, chat_id, current_user.id)
    unread = ChatRepository(db).get_unread_count(chat.id, current_user.id)
    return ok(ChatOut.from_chat(chat, unread))


@router.get("/{chat_id}/messages")
def get_messages(
    chat_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Page 1 is the newest `limit` messages; higher pages walk back in time.
    Messages inside a page are in chronological order.
    """
    chat = require_chat_participant(db, chat_id, current_user.id)
    messages, has_more, total = ChatRepository(db).get_messages_page(chat.id, page, limit)
    return ok(
        [MessageOut.model_validate(m) for m in messages],
        chat=ChatOut.from_chat(chat),
        pagination={"page": page, "hasMore": has_more, "totalMessages": total},
    )


@router.post("/{chat_id}/messages")
def send_message(
    chat_id: int,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: Optional[PushChannel] = Depends(get_push_channel),
):
    chat = require_chat_participant(db, chat_id, current_user.id)
    message = _send(db, chat, current_user.id, payload)
    db.commit()

    chat = ChatRepository(db).get(chat.id)
    _push_new_message(push, chat, message, current_user.id)
    return ok(MessageOut.model_validate(message), chat=_chat_summary(chat))


@router.put("/{chat_id}/read")
def mark_read(
    chat_id: int,
    payload: Optional[MarkReadIn] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: Optional[PushChannel] = Depends(get_push_channel),
):
    """Without messageIds/messageId every unread message in the chat is marked."""
    chat = require_chat_participant(db, chat_id, current_user.id)
    selected = payload.selected_ids() if payload else None

    repo = ChatRepository(db)
    marked = repo.mark_as_read(chat, current_user.id, selected)
    db.commit()

    if marked:
        notify(
            push,
            repo.participant_ids(chat),
            MESSAGE_READ,
            {"chatId": chat.id, "userId": current_user.id, "messageIds": selected if selected is not None else "all"},
            exclude=current_user.id,
        )
    return ok({"markedCount": marked}, message="Messages marked as read")


@router.delete("/{chat_id}/messages/{message_id}")
def delete_message(
    chat_id: int,
    message_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: Optional[PushChannel] = Depends(get_push_channel),
):
    """Soft delete; only the sender may delete a message."""
    chat = get_chat_or_404(db, chat_id)
    repo = ChatRepository(db)
    message = repo.get_message(chat.id, message_id)
    if message is None or message.is_deleted:
        raise NotFoundError("Message", message_id)
    if message.sender_id != current_user.id:
        raise ForbiddenError("Can only delete your own messages", "NOT_SENDER")

    repo.soft_delete_message(message)
    db.commit()

    notify(
        push,
        repo.participant_ids(chat),
        MESSAGE_DELETED,
        {"chatId": chat.id, "messageId": message.id},
        exclude=current_user.id,
    )
    return ok(message="Message deleted")
