"""Role schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field, field_validator

from models.role import RoleVisibility

from .base import BaseModelSchema, BaseSchema

RoleSource = Literal["owned", "shared", "system"]


class RoleBase(BaseSchema):
    """Base role schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255)
    system_prompt: str = Field(..., min_length=1)
    description: str = ""
    icon: str = Field("🤖", max_length=32)
    category: str = Field("custom", max_length=100)

    @field_validator("name", "system_prompt")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be empty or only whitespace")
        return v


class RoleCreate(RoleBase):
    """Schema for creating a role. System roles cannot be created through the API."""

    visibility: Literal["private", "shared"] = "private"


class RoleUpdate(BaseSchema):
    """Schema for updating a role."""

    name: str | None = Field(None, min_length=1, max_length=255)
    system_prompt: str | None = Field(None, min_length=1)
    description: str | None = None
    icon: str | None = Field(None, max_length=32)
    category: str | None = Field(None, max_length=100)
    visibility: Literal["private", "shared"] | None = None
    is_active: bool | None = None


class RoleResponse(BaseModelSchema):
    """A role as seen by one user."""

    user_id: str | None = None
    name: str
    system_prompt: str
    description: str = ""
    icon: str = "🤖"
    category: str = "custom"
    visibility: RoleVisibility
    is_active: bool = True
    usage_count: int = 0

    is_owned: bool = False
    can_edit: bool = False
    source: RoleSource | None = None
    shared_at: datetime | None = None


class RoleShareRequest(BaseSchema):
    """Schema for granting access to a role."""

    target_user_id: str = Field(..., min_length=1, max_length=255)
    can_edit: bool = False


class RoleShareRevokeRequest(BaseSchema):
    target_user_id: str = Field(..., min_length=1, max_length=255)


class RoleShareResponse(BaseSchema):
    """Schema for a share grant."""

    id: UUID
    role_id: UUID
    shared_with_user_id: str
    shared_by_user_id: str
    can_edit: bool
    created_at: datetime
