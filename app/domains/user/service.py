# app/domains/user/service.py
import logging
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions.base import ValidationError
from models import Conversation, Message, Role, RoleShare, User

logger = logging.getLogger(__name__)


def profile_from_claims(claims: dict) -> dict:
    """Pick email and username out of identity provider claims."""
    metadata = claims.get("user_metadata") or {}
    return {
        "email": claims.get("email") or None,
        "username": metadata.get("username") or claims.get("username") or None,
    }


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by subject identifier."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def create_user(self, user_id: str, email: str = None, username: str = None) -> User:
        """Create a new user."""
        user = User(id=user_id, email=email, username=username)

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
            logger.info(f"Created user {user_id}")
            return user
        except IntegrityError as e:
            await self.db.rollback()
            if await self.get_user_by_id(user_id):
                raise ValidationError("A user with this id already exists") from e
            raise ValidationError("A user with this email already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

    async def get_or_create_user(self, user_id: str, claims: dict) -> User:
        """Get existing user or create a new one from token claims.

        Concurrent first requests for the same user may race on the insert;
        the loser returns the row the winner created.
        """
        user = await self.get_user_by_id(user_id)
        if user:
            return user

        profile = profile_from_claims(claims)
        try:
            return await self.create_user(user_id, **profile)
        except ValidationError:
            user = await self.get_user_by_id(user_id)
            if user:
                return user

            # Email taken by another account; mirror the identity without it
            logger.warning(f"Email of user {user_id} belongs to another account; stored without it")
            return await self.create_user(user_id, username=profile["username"])

    async def save_user(self, user_id: str, email: str = None, username: str = None) -> tuple[User, bool]:
        """Record a user from the sign-up callback. Returns the user and whether it was created."""
        user = await self.get_user_by_id(user_id)
        if not user:
            return await self.create_user(user_id, email=email, username=username), True

        updated = await self.update_user(user_id, username=username, email=email)
        return updated, False

    async def update_user(self, user_id: str, username: str = None, email: str = None) -> Optional[User]:
        """Update user information."""
        user = await self.get_user_by_id(user_id)
        if not user:
            return None

        try:
            if username is not None:
                user.username = username
            if email is not None:
                user.email = email

            await self.db.commit()
            await self.db.refresh(user)
            return user
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError("A user with this email already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user and all associated data."""
        user = await self.get_user_by_id(user_id)
        if not user:
            return False

        conversation_ids = select(Conversation.id).where(Conversation.user_id == user_id)
        role_ids = select(Role.id).where(Role.user_id == user_id)

        try:
            await self.db.execute(delete(Message).where(Message.conversation_id.in_(conversation_ids)))
            await self.db.execute(delete(Conversation).where(Conversation.user_id == user_id))
            await self.db.execute(
                delete(RoleShare).where(
                    or_(RoleShare.role_id.in_(role_ids), RoleShare.shared_with_user_id == user_id)
                )
            )
            await self.db.execute(delete(Role).where(Role.user_id == user_id))
            await self.db.execute(delete(User).where(User.id == user_id))
            await self.db.commit()
            logger.info(f"Deleted user {user_id}")
            return True
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e
