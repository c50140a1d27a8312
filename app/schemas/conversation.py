"""Conversation and message schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from models.message import MessageRole

from .base import BaseModelSchema, BaseSchema


class Attachment(BaseSchema):
    """Metadata of a file attached to a message."""

    name: str = Field(..., min_length=1, max_length=255)
    type: str | None = Field(None, max_length=255, description="MIME type")
    size: int | None = Field(None, ge=0)
    url: str | None = None
    path: str | None = None


class MessageResponse(BaseSchema):
    """Schema for a stored message."""

    id: UUID
    conversation_id: UUID
    user_id: str | None = None
    role: MessageRole
    content: str
    model: str | None = None
    tokens: int | None = None
    files: list[Attachment] = Field(default_factory=list)
    created_at: datetime

    @field_validator("files", mode="before")
    @classmethod
    def default_files(cls, v):
        return v or []


class MessageCreate(BaseSchema):
    """Schema for sending a user message."""

    content: str = Field(..., max_length=20000, description="Message content")
    files: list[Attachment] | None = Field(None, description="Attachment metadata")
    provider: str | None = Field(None, description="LLM gateway to use (groq, gemini)")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return v.strip()


class SendMessageResponse(BaseSchema):
    """Both sides of one exchange."""

    user_message: MessageResponse
    assistant_message: MessageResponse


class ConversationCreate(BaseSchema):
    """Schema for creating a conversation."""

    title: str | None = Field(None, max_length=255, description="Optional conversation title")
    role_id: UUID | None = Field(None, description="Role persona to attach")


class ConversationUpdate(BaseSchema):
    """Schema for renaming a conversation."""

    title: str = Field(..., min_length=1, max_length=255)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty or only whitespace")
        return v


class ConversationRoleUpdate(BaseSchema):
    """Schema for switching the role persona of a conversation."""

    role_id: UUID | None = None


class ConversationResponse(BaseModelSchema):
    """Schema for a conversation with its messages."""

    user_id: str
    title: str
    share_id: str | None = None
    is_public: bool = False
    messages: list[MessageResponse] = Field(default_factory=list)


class ConversationStats(BaseSchema):
    """Message counts of one conversation."""

    total: int
    user_messages: int
    assistant_messages: int
    messages_with_files: int


class TitleGenerationRequest(BaseSchema):
    """Schema for on-demand title generation."""

    message: str = Field(..., min_length=1)
    conversation_id: UUID


class TitleResponse(BaseSchema):
    title: str
