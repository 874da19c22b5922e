# runmate/repositories/chats.py
"""
Data access for the Chat aggregate: chats, participants, messages and
read receipts.

Methods flush but never commit; the request handler owns the transaction.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, exists, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from runmate.db import utcnow
from runmate.models.chat import Chat, ChatParticipant, ChatType, MessageType, direct_key_for
from runmate.models.chat_message import MAX_MESSAGE_LENGTH, ChatMessage, MessageRead
from runmate.utils.pagination import history_window, offset_for

log = logging.getLogger(__name__)


class ChatRepository:
    def __init__(self, db: Session):
        self.db = db

    # =========================
    # LOADING
    # =========================

    def get(self, chat_id: int) -> Optional[Chat]:
        stmt = (
            select(Chat)
            .where(Chat.id == chat_id)
            .options(selectinload(Chat.members).selectinload(ChatParticipant.user))
        )
        return self.db.scalar(stmt)

    def participant_ids(self, chat: Chat) -> List[int]:
        return [m.user_id for m in chat.members if m.left_at is None]

    def is_participant(self, chat: Chat, user_id: int) -> bool:
        return user_id in self.participant_ids(chat)

    # =========================
    # CREATION
    # =========================

    def find_direct_chat(self, user_a: int, user_b: int) -> Optional[Chat]:
        stmt = select(Chat).where(
            Chat.chat_type == ChatType.direct,
            Chat.direct_key == direct_key_for(user_a, user_b),
        )
        chat = self.db.scalar(stmt)
        return self.get(chat.id) if chat else None

    def find_or_create_direct_chat(self, user_a: int, user_b: int) -> Tuple[Chat, bool]:
        """
        Returns (chat, created). The pair key is UNIQUE, so a concurrent
        creator loses on flush; we then re-read the winner's chat.
        """
        existing = self.find_direct_chat(user_a, user_b)
        if existing:
            return existing, False

        chat = Chat(
            chat_type=ChatType.direct,
            created_by=user_a,
            direct_key=direct_key_for(user_a, user_b),
            last_activity=utcnow(),
        )
        chat.members = [
            ChatParticipant(user_id=user_a),
            ChatParticipant(user_id=user_b),
        ]

        savepoint = self.db.begin_nested()
        try:
            self.db.add(chat)
            self.db.flush()
        except IntegrityError:
            savepoint.rollback()
            log.info("direct chat %s created concurrently, reusing it", direct_key_for(user_a, user_b))
            winner = self.find_direct_chat(user_a, user_b)
            if winner is None:
                raise
            return winner, False
        savepoint.commit()
        return self.get(chat.id), True

    def create_group_chat(
        self,
        creator_id: int,
        participant_ids: Iterable[int],
        name: Optional[str],
        description: Optional[str] = "",
        *,
        run_event_id: Optional[int] = None,
    ) -> Chat:
        """
        Creator goes first and is the only admin; the supplied ids are
        de-duplicated and the creator is never listed twice.
        """
        ordered: List[int] = [creator_id]
        for uid in participant_ids:
            if uid not in ordered:
                ordered.append(uid)

        chat = Chat(
            chat_type=ChatType.group,
            name=name,
            description=description or "",
            created_by=creator_id,
            run_event_id=run_event_id,
            last_activity=utcnow(),
        )
        chat.members = [ChatParticipant(user_id=uid, is_admin=(uid == creator_id)) for uid in ordered]
        self.db.add(chat)
        self.db.flush()
        return chat

    def create_event_chat(self, run_event, applicant_id: int) -> Chat:
        """Group chat of a run event, seeded with the host and the first approved runner."""
        return self.create_group_chat(
            run_event.host_id,
            [applicant_id],
            run_event.title,
            run_event_id=run_event.id,
        )

    # =========================
    # LISTING
    # =========================

    def _user_chats_stmt(self, user_id: int):
        return (
            select(Chat)
            .join(ChatParticipant, ChatParticipant.chat_id == Chat.id)
            .where(
                ChatParticipant.user_id == user_id,
                ChatParticipant.left_at.is_(None),
                Chat.is_active.is_(True),
            )
        )

    def get_user_chats(self, user_id: int, page: int = 1, limit: int = 20) -> Tuple[List[Chat], bool]:
        """One page of the user's chats and whether another page follows."""
        stmt = (
            self._user_chats_stmt(user_id)
            .options(
                selectinload(Chat.members).selectinload(ChatParticipant.user),
                selectinload(Chat.last_message_sender),
            )
            .order_by(Chat.last_activity.desc(), Chat.id.desc())
            .offset(offset_for(page, limit))
            .limit(limit + 1)
        )
        chats = list(self.db.scalars(stmt).all())
        return chats[:limit], len(chats) > limit

    # =========================
    # MEMBERSHIP
    # =========================

    def add_participant(self, chat: Chat, user_id: int) -> bool:
        """
        Idempotent: an active member is left alone, a former member is
        re-activated. Returns True when membership changed.
        """
        row = next((m for m in chat.members if m.user_id == user_id), None)
        if row and row.left_at is None:
            return False
        if row:
            row.left_at = None
            row.joined_at = utcnow()
        else:
            chat.members.append(ChatParticipant(user_id=user_id))
        chat.last_activity = utcnow()
        self.db.flush()
        return True

    def remove_participant(self, chat: Chat, user_id: int) -> bool:
        row = next((m for m in chat.members if m.user_id == user_id and m.left_at is None), None)
        if row is None:
            return False
        row.left_at = utcnow()
        row.is_admin = False
        chat.last_activity = utcnow()
        self.db.flush()
        return True

    # =========================
    # MESSAGES
    # =========================

    def add_message(
        self,
        chat: Chat,
        sender_id: int,
        content: str,
        message_type: MessageType = MessageType.text,
        reply_to_id: Optional[int] = None,
    ) -> ChatMessage:
        """
        Appends a message whose read receipts start with the sender, and
        refreshes the chat's lastMessage/lastActivity cache.
        """
        text = (content or "").strip()
        if not text:
            raise ValueError("Message content cannot be empty")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message content cannot exceed {MAX_MESSAGE_LENGTH} characters")

        now = utcnow()
        message = ChatMessage(
            chat_id=chat.id,
            sender_id=sender_id,
            content=text,
            message_type=message_type,
            reply_to_id=reply_to_id,
            created_at=now,
        )
        message.reads = [MessageRead(user_id=sender_id, read_at=now)]
        self.db.add(message)

        chat.last_message_content = text
        chat.last_message_sender_id = sender_id
        chat.last_message_type = message_type
        chat.last_message_at = now
        chat.last_activity = now

        self.db.flush()
        return message

    def get_message(self, chat_id: int, message_id: int) -> Optional[ChatMessage]:
        stmt = select(ChatMessage).where(ChatMessage.id == message_id, ChatMessage.chat_id == chat_id)
        return self.db.scalar(stmt)

    def soft_delete_message(self, message: ChatMessage) -> None:
        if message.is_deleted:
            return
        message.is_deleted = True
        message.deleted_at = utcnow()
        self.db.flush()

    def count_visible_messages(self, chat_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(ChatMessage)
            .where(ChatMessage.chat_id == chat_id, ChatMessage.is_deleted.is_(False))
        )
        return int(self.db.scalar(stmt) or 0)

    def get_messages_page(self, chat_id: int, page: int = 1, limit: int = 50) -> Tuple[List[ChatMessage], bool, int]:
        """
        Newest-first windows over the non-deleted messages; each window comes
        back in chronological order. Returns (messages, has_more, total).
        """
        total = self.count_visible_messages(chat_id)
        start, end = history_window(total, page, limit)
        if end <= start:
            return [], start > 0, total

        stmt = (
            select(ChatMessage)
            .where(ChatMessage.chat_id == chat_id, ChatMessage.is_deleted.is_(False))
            .options(selectinload(ChatMessage.sender), selectinload(ChatMessage.reads))
            .order_by(ChatMessage.id.asc())
            .offset(start)
            .limit(end - start)
        )
        return list(self.db.scalars(stmt).all()), start > 0, total

    # =========================
    # READ RECEIPTS
    # =========================

    def _read_by(self, user_id: int):
        return exists().where(
            and_(MessageRead.message_id == ChatMessage.id, MessageRead.user_id == user_id)
        )

    def mark_as_read(self, chat: Chat, user_id: int, message_ids: Optional[Sequence[int]] = None) -> int:
        """
        Adds a receipt for every message (or just ``message_ids``) the user has
        not read yet. Idempotent; returns how many receipts were created.
        """
        stmt = select(ChatMessage.id).where(ChatMessage.chat_id == chat.id, ~self._read_by(user_id))
        if message_ids is not None:
            if not message_ids:
                return 0
            stmt = stmt.where(ChatMessage.id.in_(list(message_ids)))

        unread_ids = list(self.db.scalars(stmt).all())
        now = utcnow()
        for mid in unread_ids:
            self.db.add(MessageRead(message_id=mid, user_id=user_id, read_at=now))
        if unread_ids:
            self.db.flush()
        return len(unread_ids)

    def get_unread_count(self, chat_id: int, user_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(ChatMessage)
            .where(
                ChatMessage.chat_id == chat_id,
                ChatMessage.is_deleted.is_(False),
                ChatMessage.sender_id != user_id,
                ~self._read_by(user_id),
            )
        )
        return int(self.db.scalar(stmt) or 0)
