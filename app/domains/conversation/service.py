"""Conversation service layer for business logic."""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, desc, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.domains.role.service import RoleService
from app.exceptions.base import NotFoundError
from app.exceptions.role import RoleNotFoundError
from app.schemas.conversation import ConversationResponse, MessageResponse
from app.services.llm_gateway import ChatSessionCache
from models import DEFAULT_CONVERSATION_TITLE, Conversation, Message, MessageRole

logger = logging.getLogger(__name__)


class ConversationService:
    """Service class for conversation business logic.

    Every read and write is scoped to the owning user; a conversation owned by
    someone else is reported as not found.
    """

    def __init__(self, db: AsyncSession, chat_sessions: Optional[ChatSessionCache] = None):
        self.db = db
        self.chat_sessions = chat_sessions

    async def create_conversation(
        self, user_id: str, title: Optional[str] = None, role_id: Optional[UUID] = None
    ) -> Conversation:
        """Create a conversation, seeding it with the role's system prompt when a role is given."""
        role_service = RoleService(self.db)
        role = None
        if role_id:
            role = await role_service.get_role_by_id(role_id, user_id)
            if not role:
                raise RoleNotFoundError()

        conversation = Conversation(
            user_id=user_id,
            title=(title or "").strip() or DEFAULT_CONVERSATION_TITLE,
        )

        try:
            self.db.add(conversation)
            await self.db.flush()
            if role:
                self.db.add(
                    Message(
                        conversation_id=conversation.id,
                        role=MessageRole.SYSTEM,
                        content=role.system_prompt,
                        # Persona prompt sorts before the dialogue
                        created_at=conversation.created_at,
                    )
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        if role:
            await role_service.increment_usage_count(role.id)

        logger.info(f"Created conversation {conversation.id} for user {user_id}")
        return await self.get_conversation_by_id(conversation.id, user_id)

    async def get_user_conversations(self, user_id: str) -> List[ConversationResponse]:
        """List the user's conversations, most recently active first.

        Each entry carries only its first non-system message as a preview.
        """
        stmt = (
            select(Conversation)
            .where(Conversation.user_id == user_id)
            .order_by(desc(Conversation.updated_at))
        )
        conversations = (await self.db.execute(stmt)).scalars().all()

        summaries = []
        for conversation in conversations:
            preview = await self._get_first_message(conversation.id)
            summaries.append(
                ConversationResponse(
                    id=conversation.id,
                    created_at=conversation.created_at,
                    updated_at=conversation.updated_at,
                    user_id=conversation.user_id,
                    title=conversation.title,
                    share_id=conversation.share_id,
                    is_public=conversation.is_public,
                    messages=[MessageResponse.model_validate(preview)] if preview else [],
                )
            )
        return summaries

    async def get_conversation_by_id(
        self, conversation_id: UUID, user_id: str, with_messages: bool = True
    ) -> Conversation:
        """Get a conversation owned by the user, with its messages in chronological order."""
        stmt = select(Conversation).where(
            and_(Conversation.id == conversation_id, Conversation.user_id == user_id)
        )
        if with_messages:
            stmt = stmt.options(selectinload(Conversation.messages)).execution_options(
                populate_existing=True
            )

        conversation = (await self.db.execute(stmt)).scalar_one_or_none()
        if not conversation:
            raise NotFoundError("Conversation not found")
        return conversation

    async def update_conversation_title(self, conversation_id: UUID, user_id: str, title: str) -> Conversation:
        conversation = await self.get_conversation_by_id(conversation_id, user_id, with_messages=False)

        try:
            conversation.title = title.strip() or DEFAULT_CONVERSATION_TITLE
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        return await self.get_conversation_by_id(conversation_id, user_id)

    async def delete_conversation(self, conversation_id: UUID, user_id: str) -> bool:
        """Delete a conversation and all of its messages."""
        conversation = await self.get_conversation_by_id(conversation_id, user_id, with_messages=False)

        try:
            await self.db.execute(delete(Message).where(Message.conversation_id == conversation.id))
            await self.db.execute(delete(Conversation).where(Conversation.id == conversation.id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        self.forget_chat_session(conversation_id)
        logger.info(f"Deleted conversation {conversation_id}")
        return True

    async def touch_conversation(self, conversation_id: UUID) -> None:
        """Mark the conversation as active now."""
        try:
            await self.db.execute(
                update(Conversation)
                .where(Conversation.id == conversation_id)
                .values(updated_at=datetime.utcnow())
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

    async def change_conversation_role(
        self, conversation_id: UUID, user_id: str, role_id: Optional[UUID]
    ) -> Conversation:
        """Replace the conversation's system prompt with the given role's, or remove it."""
        conversation = await self.get_conversation_by_id(conversation_id, user_id, with_messages=False)

        role_service = RoleService(self.db)
        role = None
        if role_id:
            role = await role_service.get_role_by_id(role_id, user_id)
            if not role:
                raise RoleNotFoundError()

        try:
            await self.db.execute(
                delete(Message).where(
                    and_(Message.conversation_id == conversation.id, Message.role == MessageRole.SYSTEM)
                )
            )
            if role:
                self.db.add(
                    Message(
                        conversation_id=conversation.id,
                        role=MessageRole.SYSTEM,
                        content=role.system_prompt,
                        # Sorts before the dialogue
                        created_at=conversation.created_at,
                    )
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        self.forget_chat_session(conversation_id)
        if role:
            await role_service.increment_usage_count(role.id)

        return await self.get_conversation_by_id(conversation_id, user_id)

    def forget_chat_session(self, conversation_id: UUID) -> None:
        if self.chat_sessions is not None:
            self.chat_sessions.clear(str(conversation_id))

    async def _get_first_message(self, conversation_id: UUID) -> Optional[Message]:
        stmt = (
            select(Message)
            .where(and_(Message.conversation_id == conversation_id, Message.role != MessageRole.SYSTEM))
            .order_by(Message.created_at)
            .limit(1)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()
