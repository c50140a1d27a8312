"""Message API controller with FastAPI endpoints."""

import logging
from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import (
    get_chat_sessions,
    get_current_user,
    get_db,
    get_llm_gateways,
    get_title_generator,
)
from app.domains.message.service import MessageService
from app.schemas.base import SuccessResponse
from app.schemas.conversation import (
    ConversationStats,
    MessageCreate,
    MessageResponse,
    SendMessageResponse,
)
from app.services.llm_gateway import BaseLLMGateway, ChatSessionCache
from app.services.title_generator import TitleGenerator
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["messages"])


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=SendMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    message_data: MessageCreate,
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateways: Dict[str, BaseLLMGateway] = Depends(get_llm_gateways),
    title_generator: TitleGenerator = Depends(get_title_generator),
    chat_sessions: ChatSessionCache = Depends(get_chat_sessions),
):
    """Send a message and get the assistant's answer.

    The user's message is stored before the LLM is called and is kept even
    if the call fails.
    """
    service = MessageService(db, gateways, title_generator, chat_sessions)
    files = [f.model_dump(exclude_none=True) for f in message_data.files] if message_data.files else None

    return await service.send_message(
        conversation_id=conversation_id,
        user_id=current_user.id,
        content=message_data.content,
        files=files,
        provider=message_data.provider,
    )


@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageResponse])
async def get_messages(
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the messages of a conversation, oldest first."""
    messages = await MessageService(db).get_conversation_messages(conversation_id, current_user.id)
    return [MessageResponse.model_validate(message) for message in messages]


@router.get("/conversations/{conversation_id}/stats", response_model=ConversationStats)
async def get_conversation_stats(
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MessageService(db).get_conversation_stats(conversation_id, current_user.id)


@router.get("/messages/{message_id}", response_model=MessageResponse)
async def get_message(
    message_id: UUID = Path(..., description="Message ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    message = await MessageService(db).get_message_by_id(message_id, current_user.id)
    return MessageResponse.model_validate(message)


@router.delete("/messages/{message_id}", response_model=SuccessResponse)
async def delete_message(
    message_id: UUID = Path(..., description="Message ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    chat_sessions: ChatSessionCache = Depends(get_chat_sessions),
):
    """Delete a single message."""
    await MessageService(db, chat_sessions=chat_sessions).delete_message(message_id, current_user.id)
    return SuccessResponse(message="Message deleted successfully")
