"""Share link API controller.

Issuing and revoking links requires a verified bearer token; reading a
shared conversation is public.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_db, get_token_user
from app.domains.share.service import ShareService
from app.schemas.base import SuccessResponse
from app.schemas.share import SharedConversationResponse, ShareLinkResponse
from models.user import User

router = APIRouter(prefix="/api", tags=["share"])


@router.post("/conversations/{conversation_id}/share", response_model=ShareLinkResponse)
async def create_share_link(
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_token_user),
    db: AsyncSession = Depends(get_db),
):
    """Make a conversation public and return its share URL."""
    return await ShareService(db).create_or_reuse_share_link(conversation_id, current_user.id)


@router.delete("/conversations/{conversation_id}/share", response_model=SuccessResponse)
async def revoke_share_link(
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_token_user),
    db: AsyncSession = Depends(get_db),
):
    await ShareService(db).revoke_share_link(conversation_id, current_user.id)
    return SuccessResponse(message="Share link revoked")


@router.get("/share/{share_id}", response_model=SharedConversationResponse)
async def get_shared_conversation(
    share_id: str = Path(..., min_length=1, max_length=32),
    db: AsyncSession = Depends(get_db),
):
    return await ShareService(db).get_shared_conversation(share_id)
