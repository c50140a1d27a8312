"""Message service layer: storing turns and running the LLM exchange."""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.domains.conversation.service import ConversationService
from app.exceptions.base import NotFoundError, ValidationError
from app.exceptions.llm import LLMServiceError
from app.schemas.conversation import ConversationStats, MessageResponse, SendMessageResponse
from app.services.llm_gateway import BaseLLMGateway, ChatSessionCache
from app.services.title_generator import TitleGenerator
from models import Conversation, Message, MessageRole

logger = logging.getLogger(__name__)


class MessageService:
    """Service class for messages and the send/answer exchange."""

    def __init__(
        self,
        db: AsyncSession,
        gateways: Optional[Dict[str, BaseLLMGateway]] = None,
        title_generator: Optional[TitleGenerator] = None,
        chat_sessions: Optional[ChatSessionCache] = None,
    ):
        self.db = db
        self.gateways = gateways or {}
        self.title_generator = title_generator or TitleGenerator(None)
        self.conversations = ConversationService(db, chat_sessions)

    async def create_message(
        self,
        conversation_id: UUID,
        role: MessageRole,
        content: str,
        user_id: Optional[str] = None,
        model: Optional[str] = None,
        tokens: Optional[int] = None,
        files: Optional[List[Dict[str, Any]]] = None,
    ) -> Message:
        """Persist one message and mark its conversation as active."""
        message = Message(
            conversation_id=conversation_id,
            user_id=user_id if role == MessageRole.USER else None,
            role=role,
            content=content or "",
            model=model,
            tokens=tokens,
            files=files or None,
        )

        try:
            self.db.add(message)
            await self.db.commit()
            await self.db.refresh(message)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        await self.conversations.touch_conversation(conversation_id)
        return message

    async def send_message(
        self,
        conversation_id: UUID,
        user_id: str,
        content: str,
        files: Optional[List[Dict[str, Any]]] = None,
        provider: Optional[str] = None,
    ) -> SendMessageResponse:
        """Store the user's message, ask the LLM, store and return both turns.

        The user message is committed before the LLM is called, so it is kept
        even when the call fails. The first exchange of a conversation also
        retitles it.
        """
        if not (content or "").strip() and not files:
            raise ValidationError("Message content is required")

        conversation = await self.conversations.get_conversation_by_id(
            conversation_id, user_id, with_messages=False
        )
        gateway = self._get_gateway(provider)
        is_first_exchange = not await self._has_dialogue(conversation.id)

        user_message = await self.create_message(
            conversation.id, MessageRole.USER, content, user_id=user_id, files=files
        )

        if is_first_exchange:
            title = await self.title_generator.generate_conversation_title(content)
            await self.conversations.update_conversation_title(conversation.id, user_id, title)

        history = await self._load_history(conversation.id)
        try:
            llm_response = await gateway.generate_response(
                history, files, conversation_id=str(conversation.id)
            )
        except LLMServiceError:
            logger.error(
                f"LLM call failed for conversation {conversation.id}; user message {user_message.id} was kept"
            )
            self.conversations.forget_chat_session(conversation.id)
            raise

        if not gateway.uses_chat_sessions:
            # A cached session would miss this exchange
            self.conversations.forget_chat_session(conversation.id)

        assistant_message = await self.create_message(
            conversation.id,
            MessageRole.ASSISTANT,
            llm_response.content,
            model=llm_response.model,
            tokens=llm_response.tokens_used,
        )

        return SendMessageResponse(
            user_message=MessageResponse.model_validate(user_message),
            assistant_message=MessageResponse.model_validate(assistant_message),
        )

    async def get_conversation_messages(self, conversation_id: UUID, user_id: str) -> List[Message]:
        """Messages of a conversation owned by the user, oldest first."""
        await self.conversations.get_conversation_by_id(conversation_id, user_id, with_messages=False)

        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def get_message_by_id(self, message_id: UUID, user_id: str) -> Message:
        stmt = (
            select(Message)
            .join(Conversation, Conversation.id == Message.conversation_id)
            .where(and_(Message.id == message_id, Conversation.user_id == user_id))
        )
        message = (await self.db.execute(stmt)).scalar_one_or_none()
        if not message:
            raise NotFoundError("Message not found")
        return message

    async def delete_message(self, message_id: UUID, user_id: str) -> bool:
        """Delete one message from a conversation owned by the user."""
        message = await self.get_message_by_id(message_id, user_id)
        conversation_id = message.conversation_id

        try:
            await self.db.execute(delete(Message).where(Message.id == message.id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        # The cached chat session still holds the deleted turn
        self.conversations.forget_chat_session(conversation_id)
        await self.conversations.touch_conversation(conversation_id)
        return True

    async def get_conversation_stats(self, conversation_id: UUID, user_id: str) -> ConversationStats:
        await self.conversations.get_conversation_by_id(conversation_id, user_id, with_messages=False)

        async def count(*conditions) -> int:
            stmt = select(func.count(Message.id)).where(Message.conversation_id == conversation_id, *conditions)
            return (await self.db.execute(stmt)).scalar() or 0

        return ConversationStats(
            total=await count(),
            user_messages=await count(Message.role == MessageRole.USER),
            assistant_messages=await count(Message.role == MessageRole.ASSISTANT),
            messages_with_files=await count(Message.files.isnot(None)),
        )

    # Private helper methods

    def _get_gateway(self, provider: Optional[str]) -> BaseLLMGateway:
        name = (provider or settings.default_llm_provider.value).lower()
        gateway = self.gateways.get(name)
        if gateway is None:
            raise ValidationError(
                f"Unknown LLM provider: {name}",
                details={"available_providers": sorted(self.gateways)},
            )
        return gateway

    async def _has_dialogue(self, conversation_id: UUID) -> bool:
        stmt = select(func.count(Message.id)).where(
            and_(Message.conversation_id == conversation_id, Message.role != MessageRole.SYSTEM)
        )
        return bool((await self.db.execute(stmt)).scalar())

    async def _load_history(self, conversation_id: UUID) -> List[Dict[str, str]]:
        stmt = (
            select(Message.role, Message.content)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at)
        )
        rows = (await self.db.execute(stmt)).all()
        return [{"role": role.value, "content": content} for role, content in rows]
