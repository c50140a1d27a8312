"""Conversation API controller with FastAPI endpoints."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_chat_sessions, get_current_user, get_db, get_title_generator
from app.domains.conversation.service import ConversationService
from app.schemas.base import SuccessResponse
from app.schemas.conversation import (
    ConversationCreate,
    ConversationResponse,
    ConversationRoleUpdate,
    ConversationUpdate,
    TitleGenerationRequest,
    TitleResponse,
)
from app.services.llm_gateway import ChatSessionCache
from app.services.title_generator import TitleGenerator
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    conversation_data: ConversationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new conversation, optionally attached to a role persona."""
    service = ConversationService(db)
    conversation = await service.create_conversation(
        user_id=current_user.id,
        title=conversation_data.title,
        role_id=conversation_data.role_id,
    )
    return ConversationResponse.model_validate(conversation)


@router.get("", response_model=List[ConversationResponse])
async def get_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's conversations, most recently active first, with a one-message preview."""
    return await ConversationService(db).get_user_conversations(current_user.id)


@router.post("/generate-title", response_model=TitleResponse)
async def generate_title(
    title_request: TitleGenerationRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    title_generator: TitleGenerator = Depends(get_title_generator),
):
    """Generate a title from a message and apply it to the conversation."""
    service = ConversationService(db)
    await service.get_conversation_by_id(title_request.conversation_id, current_user.id, with_messages=False)

    title = await title_generator.generate_conversation_title(title_request.message)
    await service.update_conversation_title(title_request.conversation_id, current_user.id, title)
    return TitleResponse(title=title)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a conversation with all of its messages."""
    conversation = await ConversationService(db).get_conversation_by_id(conversation_id, current_user.id)
    return ConversationResponse.model_validate(conversation)


@router.patch("/{conversation_id}", response_model=ConversationResponse)
async def update_conversation(
    conversation_data: ConversationUpdate,
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Rename a conversation."""
    conversation = await ConversationService(db).update_conversation_title(
        conversation_id, current_user.id, conversation_data.title
    )
    return ConversationResponse.model_validate(conversation)


@router.delete("/{conversation_id}", response_model=SuccessResponse)
async def delete_conversation(
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    chat_sessions: ChatSessionCache = Depends(get_chat_sessions),
):
    """Delete a conversation and its messages."""
    await ConversationService(db, chat_sessions).delete_conversation(conversation_id, current_user.id)
    return SuccessResponse(message="Conversation deleted successfully")


@router.patch("/{conversation_id}/role", response_model=ConversationResponse)
async def change_conversation_role(
    role_data: ConversationRoleUpdate,
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    chat_sessions: ChatSessionCache = Depends(get_chat_sessions),
):
    """Switch the role persona of a conversation, or drop it with a null role_id."""
    conversation = await ConversationService(db, chat_sessions).change_conversation_role(
        conversation_id, current_user.id, role_data.role_id
    )
    return ConversationResponse.model_validate(conversation)
