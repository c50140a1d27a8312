"""
Models package initialization.
"""

from .base import Base, BaseModel
from .conversation import DEFAULT_CONVERSATION_TITLE, Conversation
from .message import Message, MessageRole
from .prompt import Prompt
from .role import Role, RoleShare, RoleVisibility
from .user import User

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Conversation",
    "DEFAULT_CONVERSATION_TITLE",
    "Message",
    "MessageRole",
    "Role",
    "RoleShare",
    "RoleVisibility",
    "Prompt",
]
