# runmate/schemas/chat.py
# -----------------------------------------------------------------------------
# Pydantic schemas: chats, messages, read receipts
# -----------------------------------------------------------------------------

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from runmate.models.chat import Chat, ChatType, MessageType
from runmate.models.chat_message import MAX_MESSAGE_LENGTH, ChatMessage
from runmate.schemas.common import CamelModel
from runmate.schemas.user import UserBrief

# --- input ---


class DirectChatCreate(CamelModel):
    participant_id: int
    initial_message: Optional[str] = Field(default=None, max_length=MAX_MESSAGE_LENGTH)


class GroupChatCreate(CamelModel):
    participant_ids: List[int] = Field(min_length=1)
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class MessageCreate(CamelModel):
    content: str
    message_type: MessageType = MessageType.text
    reply_to: Optional[int] = None


class MarkReadIn(CamelModel):
    """Either a list of ids, a single id, or nothing (= every unread message)."""

    message_ids: Optional[List[int]] = None
    message_id: Optional[int] = None

    def selected_ids(self) -> Optional[List[int]]:
        if self.message_ids is not None:
            return self.message_ids
        if self.message_id is not None:
            return [self.message_id]
        return None


# --- output ---


class ReadReceiptOut(CamelModel):
    user_id: int
    read_at: datetime


class MessageOut(CamelModel):
    id: int
    chat_id: int
    sender: UserBrief
    content: str
    message_type: MessageType
    reply_to: Optional[int] = None
    read_by: List[ReadReceiptOut] = []
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _from_orm_message(cls, data):
        if isinstance(data, ChatMessage):
            return {
                "id": data.id,
                "chat_id": data.chat_id,
                "sender": data.sender,
                "content": data.content,
                "message_type": data.message_type,
                "reply_to": data.reply_to_id,
                "read_by": list(data.reads),
                "is_edited": data.is_edited,
                "edited_at": data.edited_at,
                "created_at": data.created_at,
            }
        return data


class LastMessageOut(CamelModel):
    content: str
    sender_id: Optional[int] = None
    message_type: Optional[MessageType] = None
    timestamp: datetime


class ChatOut(CamelModel):
    id: int
    chat_type: ChatType
    name: Optional[str] = None
    display_name: str
    description: Optional[str] = None
    avatar: Optional[str] = None
    participants: List[UserBrief]
    admins: List[int]
    created_by: Optional[int] = None
    last_message: Optional[LastMessageOut] = None
    last_activity: datetime
    is_active: bool
    run_event_id: Optional[int] = None
    unread_count: Optional[int] = None

    @classmethod
    def from_chat(cls, chat: Chat, unread_count: Optional[int] = None) -> "ChatOut":
        members = chat.active_members
        last = None
        if chat.last_message_at is not None:
            last = LastMessageOut(
                content=chat.last_message_content or "",
                sender_id=chat.last_message_sender_id,
                message_type=chat.last_message_type,
                timestamp=chat.last_message_at,
            )
        return cls(
            id=chat.id,
            chat_type=chat.chat_type,
            name=chat.name,
            display_name=chat.display_name,
            description=chat.description,
            avatar=chat.avatar,
            participants=[UserBrief.model_validate(m.user) for m in members],
            admins=[m.user_id for m in members if m.is_admin],
            created_by=chat.created_by,
            last_message=last,
            last_activity=chat.last_activity,
            is_active=chat.is_active,
            run_event_id=chat.run_event_id,
            unread_count=unread_count,
        )
