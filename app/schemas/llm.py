"""LLM gateway schemas."""

from pydantic import Field

from .base import BaseSchema


class LLMResponse(BaseSchema):
    """Provider-neutral completion result."""

    content: str
    model: str | None = None
    tokens_used: int | None = Field(None, description="Total tokens billed for the call")


class LLMModelInfo(BaseSchema):
    id: str
    name: str
    description: str
    provider: str
