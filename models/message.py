"""
Message model for conversation turns.
"""

import enum

from sqlalchemy import JSON, Column, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class MessageRole(str, enum.Enum):
    """Message role enumeration."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """
    Represents a single chat turn.

    Messages are immutable once created; they are only ever deleted, either
    individually or with their conversation. ``user_id`` is only set on
    messages written by a user.
    """

    __tablename__ = "messages"

    conversation_id = Column(
        UUID(), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    role = Column(Enum(MessageRole, values_callable=lambda e: [m.value for m in e]), nullable=False)
    content = Column(Text, nullable=False, default="")

    # Generation metadata, assistant messages only
    model = Column(String(100), nullable=True)
    tokens = Column(Integer, nullable=True)

    # Attachment metadata: [{"name": ..., "type": ..., "size": ..., "url": ...}]
    files = Column(JSON(none_as_null=True), nullable=True)

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")
