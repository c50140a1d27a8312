"""
Role persona and role sharing models.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class RoleVisibility(str, enum.Enum):
    """Who can see a role."""

    PRIVATE = "private"
    SHARED = "shared"
    SYSTEM = "system"


class Role(BaseModel):
    """
    A reusable system-prompt persona.

    System roles have no owner and are readable by everyone; other roles
    are readable by their owner and by users holding a ``RoleShare``.
    """

    __tablename__ = "roles"

    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    system_prompt = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    icon = Column(String(32), nullable=False, default="🤖")
    category = Column(String(100), nullable=False, default="custom")
    visibility = Column(
        Enum(RoleVisibility, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RoleVisibility.PRIVATE,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    usage_count = Column(Integer, nullable=False, default=0)

    # Relationships
    owner = relationship("User", back_populates="roles")
    shares = relationship("RoleShare", back_populates="role", cascade="all, delete-orphan", passive_deletes=True)


class RoleShare(BaseModel):
    """
    A grant from a role's owner to another user.

    At most one row exists per (role, grantee); re-sharing updates it.
    """

    __tablename__ = "role_shares"
    __table_args__ = (UniqueConstraint("role_id", "shared_with_user_id", name="uq_role_share_target"),)

    role_id = Column(UUID(), ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_with_user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_by_user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    can_edit = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    role = relationship("Role", back_populates="shares")
