# runmate/models/chat.py
# -----------------------------------------------------------------------------
# MODELS: Chat + ChatParticipant
# -----------------------------------------------------------------------------
# The chat row only holds summary fields (last_message_*, last_activity);
# members and messages live in their own tables.

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from runmate.db import Base, utcnow


class ChatType(enum.Enum):
    direct = "direct"
    group = "group"


class MessageType(enum.Enum):
    text = "text"
    image = "image"
    file = "file"
    system = "system"


def direct_key_for(user_a: int, user_b: int) -> str:
    """Canonical key of an unordered user pair: 'min:max'."""
    lo, hi = (user_a, user_b) if user_a < user_b else (user_b, user_a)
    return f"{lo}:{hi}"


class Chat(Base):
    __tablename__ = "chats"

    id = Column(Integer, primary_key=True, index=True)
    chat_type = Column(Enum(ChatType, name="chat_type"), nullable=False)
    name = Column(String(100), nullable=True)
    description = Column(String(500), nullable=True)
    avatar = Column(String(512), nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Set only for direct chats; UNIQUE so a pair can never get two direct chats
    direct_key = Column(String(64), nullable=True, unique=True)

    # --- lastMessage cache ---
    last_message_content = Column(String(1000), nullable=True)
    last_message_sender_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    last_message_type = Column(Enum(MessageType, name="message_type"), nullable=True)
    last_message_at = Column(DateTime, nullable=True)

    last_activity = Column(DateTime, nullable=False, default=utcnow)
    is_active = Column(Boolean, nullable=False, default=True)

    run_event_id = Column(Integer, ForeignKey("run_events.id", use_alter=True), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    members = relationship(
        "ChatParticipant",
        back_populates="chat",
        order_by="ChatParticipant.id",
        cascade="all, delete-orphan",
    )
    last_message_sender = relationship("User", foreign_keys=[last_message_sender_id])

    __table_args__ = (
        Index("ix_chats_last_activity", "last_activity"),
    )

    @property
    def active_members(self):
        return [m for m in self.members if m.left_at is None]

    @property
    def display_name(self) -> str:
        if self.chat_type == ChatType.group:
            return self.name or f"Grupp ({len(self.active_members)} deltagare)"
        if len(self.active_members) == 2:
            return "Direktchatt"
        return "Okänd chatt"

    def __repr__(self):
        return f"<Chat id={self.id} type={self.chat_type} run_event={self.run_event_id}>"


class ChatParticipant(Base):
    """
    Membership of a user in a chat. Removal is a soft delete (left_at), so a
    former participant stays known as the sender of their old messages.
    """
    __tablename__ = "chat_participants"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    joined_at = Column(DateTime, nullable=False, default=utcnow)
    left_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("chat_id", "user_id", name="uq_chat_participants_chat_user"),
        Index("ix_chat_participants_user_active", "user_id", "left_at"),
    )

    chat = relationship("Chat", back_populates="members")
    user = relationship("User")
