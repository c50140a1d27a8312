"""Share link schemas."""

from datetime import datetime

from pydantic import Field

from .base import BaseSchema
from .conversation import MessageResponse


class ShareLinkResponse(BaseSchema):
    success: bool = True
    share_url: str
    share_id: str


class SharedConversationResponse(BaseSchema):
    """Public read-only view of a shared conversation."""

    title: str
    share_id: str
    created_at: datetime
    messages: list[MessageResponse] = Field(default_factory=list)
