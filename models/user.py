"""
Provides the User model for the application's database schema.

A User is a local mirror of an account owned by the hosted identity
provider. The primary key is the provider's subject identifier, so rows are
created lazily on first sign-in (or by the provider's sign-up callback) and
never receive a locally generated id.

Relationships
-------------
conversations : sqlalchemy.orm.relationship
    One-to-many relationship with `Conversation`, deleted with the user.
roles : sqlalchemy.orm.relationship
    One-to-many relationship with the `Role` personas the user owns.
"""

from sqlalchemy import Boolean, Column, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class User(BaseModel):
    """
    Represents a user account mirrored from the identity provider.

    :ivar id: Subject identifier issued by the identity provider.
    :type id: str
    :ivar email: Email address of the user, unique when present.
    :type email: str
    :ivar username: Optional display name.
    :type username: str
    :ivar is_active: Indicates whether the user account is active.
    :type is_active: bool
    """

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=True, unique=True)
    username = Column(String(100))
    is_active = Column(Boolean, default=True, nullable=False)

    conversations = relationship("Conversation", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    roles = relationship("Role", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
