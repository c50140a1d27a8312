"""User-related Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .base import BaseSchema


class UserSaveRequest(BaseSchema):
    """Schema for the identity provider's sign-up callback."""

    id: str = Field(..., max_length=255, description="Identity provider subject identifier")
    email: Optional[EmailStr] = Field(None, description="User's email address")
    username: Optional[str] = Field(None, max_length=100, description="Optional username")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate that the subject identifier is not empty."""
        if not v or not v.strip():
            raise ValueError("User ID cannot be empty")
        return v.strip()


class UserResponse(BaseSchema):
    """Schema for user response data."""

    id: str
    email: Optional[str] = None
    username: Optional[str] = None
    is_active: bool
    created_at: datetime


class UserUpdateRequest(BaseSchema):
    """Schema for updating user information."""

    username: Optional[str] = Field(None, max_length=100, description="Username to update")
    email: Optional[EmailStr] = Field(None, description="Email to update")
