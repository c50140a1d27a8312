"""
Conversation model for chat sessions with the assistant.
"""

from sqlalchemy import Boolean, Column, ForeignKey, String
from sqlalchemy.orm import relationship

from .base import BaseModel

DEFAULT_CONVERSATION_TITLE = "Nouvelle conversation"


class Conversation(BaseModel):
    """
    Represents a conversation owned by exactly one user.

    ``share_id`` is issued once, on the first share request, and reused
    afterwards; ``is_public`` gates unauthenticated read access.
    """

    __tablename__ = "conversations"

    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default=DEFAULT_CONVERSATION_TITLE)
    share_id = Column(String(32), nullable=True, unique=True, index=True)
    is_public = Column(Boolean, nullable=False, default=False)

    # Relationships
    user = relationship("User", back_populates="conversations")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.created_at",
    )
