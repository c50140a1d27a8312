"""Public share links for conversations."""

import logging
import secrets
import string
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.exceptions.base import AppPermissionError, NotFoundError
from app.schemas.conversation import MessageResponse
from app.schemas.share import SharedConversationResponse, ShareLinkResponse
from models import Conversation, MessageRole

logger = logging.getLogger(__name__)

SHARE_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
SHARE_ID_LENGTH = 10


def generate_share_id(length: int = SHARE_ID_LENGTH) -> str:
    """Random URL-safe identifier."""
    return "".join(secrets.choice(SHARE_ID_ALPHABET) for _ in range(length))


def build_share_url(share_id: str, base_url: Optional[str] = None) -> str:
    return f"{(base_url or settings.public_base_url).rstrip('/')}/share/{share_id}"


class ShareService:
    """Issues, revokes and resolves public conversation links.

    A conversation keeps the same share id for its whole life: revoking only
    flips ``is_public`` off and sharing again turns the old URL back on.
    """

    def __init__(self, db: AsyncSession, base_url: Optional[str] = None):
        self.db = db
        self.base_url = base_url

    async def create_or_reuse_share_link(self, conversation_id: UUID, user_id: str) -> ShareLinkResponse:
        conversation = await self._get_owned_conversation(conversation_id, user_id)

        try:
            if not conversation.share_id:
                conversation.share_id = generate_share_id()
                logger.info(f"Issued share id for conversation {conversation_id}")
            conversation.is_public = True
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        return ShareLinkResponse(
            share_url=build_share_url(conversation.share_id, self.base_url),
            share_id=conversation.share_id,
        )

    async def revoke_share_link(self, conversation_id: UUID, user_id: str) -> bool:
        conversation = await self._get_owned_conversation(conversation_id, user_id)

        try:
            conversation.is_public = False
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        logger.info(f"Revoked public access to conversation {conversation_id}")
        return True

    async def get_shared_conversation(self, share_id: str) -> SharedConversationResponse:
        """Read-only view of a public conversation. System prompts are not exposed."""
        stmt = (
            select(Conversation)
            .options(selectinload(Conversation.messages))
            .where(and_(Conversation.share_id == share_id, Conversation.is_public.is_(True)))
            .execution_options(populate_existing=True)
        )
        conversation = (await self.db.execute(stmt)).scalar_one_or_none()
        if not conversation:
            raise NotFoundError("Shared conversation not found")

        return SharedConversationResponse(
            title=conversation.title,
            share_id=conversation.share_id,
            created_at=conversation.created_at,
            messages=[
                MessageResponse.model_validate(message)
                for message in conversation.messages
                if message.role != MessageRole.SYSTEM
            ],
        )

    async def _get_owned_conversation(self, conversation_id: UUID, user_id: str) -> Conversation:
        conversation = await self.db.get(Conversation, conversation_id)
        if not conversation:
            raise NotFoundError("Conversation not found")
        if conversation.user_id != user_id:
            raise AppPermissionError("Only the owner can share this conversation")
        return conversation
