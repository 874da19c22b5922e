# runmate/models/chat_message.py
# Chat messages (append-only, soft delete) and per-user read receipts.

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
from runmate.models.chat import MessageType

MAX_MESSAGE_LENGTH = 1000


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(String(MAX_MESSAGE_LENGTH), nullable=False)
    message_type = Column(Enum(MessageType, name="message_type"), nullable=False, default=MessageType.text)
    reply_to_id = Column(Integer, ForeignKey("chat_messages.id"), nullable=True)

    is_edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_chat_messages_chat_deleted", "chat_id", "is_deleted"),
    )

    sender = relationship("User")
    reads = relationship(
        "MessageRead",
        back_populates="message",
        order_by="MessageRead.id",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<ChatMessage id={self.id} chat={self.chat_id} sender={self.sender_id}>"


class MessageRead(Base):
    __tablename__ = "message_reads"

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(Integer, ForeignKey("chat_messages.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    read_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_message_reads_message_user"),
    )

    message = relationship("ChatMessage", back_populates="reads")
