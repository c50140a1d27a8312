"""LLM provider information endpoints."""

from typing import Dict, List

from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user, get_llm_gateways
from app.schemas.llm import LLMModelInfo
from app.services.llm_gateway import BaseLLMGateway
from models.user import User

router = APIRouter(prefix="/api/llm", tags=["llm"])


@router.get("/models", response_model=List[LLMModelInfo])
async def get_available_models(
    current_user: User = Depends(get_current_user),
    gateways: Dict[str, BaseLLMGateway] = Depends(get_llm_gateways),
):
    """Models offered by every configured gateway."""
    return [model for gateway in gateways.values() for model in gateway.available_models()]
