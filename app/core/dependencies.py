# app/core/dependencies.py
import logging

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import IdentityProviderAuthenticator
from app.database import get_db
from app.domains.user.service import UserService
from app.exceptions.base import AppPermissionError, UnauthenticatedError
from app.services.llm_gateway import BaseLLMGateway, ChatSessionCache, build_llm_gateways
from app.services.title_generator import TitleGenerator
from models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_authenticator(request: Request) -> IdentityProviderAuthenticator:
    return request.app.state.authenticator


def get_chat_sessions(request: Request) -> ChatSessionCache:
    return request.app.state.chat_sessions


def get_llm_gateways(request: Request) -> dict[str, BaseLLMGateway]:
    """Build the gateways around the process-wide HTTP client and chat session cache."""
    return build_llm_gateways(request.app.state.http_client, request.app.state.chat_sessions)


def get_default_gateway(
    gateways: dict[str, BaseLLMGateway] = Depends(get_llm_gateways),
) -> BaseLLMGateway:
    return gateways[settings.default_llm_provider.value]


def get_title_generator(gateway: BaseLLMGateway = Depends(get_default_gateway)) -> TitleGenerator:
    return TitleGenerator(gateway)


async def get_token_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    authenticator: IdentityProviderAuthenticator = Depends(get_authenticator),
) -> dict | None:
    """Decode the bearer token if one was sent.

    Returns:
        dict | None: Verified claims, or None when no bearer token is present

    Raises:
        UnauthenticatedError: If a token is present but invalid
    """
    if not credentials or not credentials.credentials:
        return None
    return await authenticator.verify_token(credentials.credentials)


async def validate_token(claims: dict | None = Depends(get_token_claims)) -> dict:
    """Require a verified bearer token."""
    if not claims:
        raise UnauthenticatedError("Authentication token is required")
    return claims


async def _resolve_user(request: Request, db: AsyncSession, user_id: str, claims: dict) -> User:
    user = await UserService(db).get_or_create_user(user_id, claims)

    if not user.is_active:
        raise AppPermissionError("User account is inactive")

    # Add user info to request state for logging
    request.state.user_id = user.id
    return user


async def get_current_user(
    request: Request,
    claims: dict | None = Depends(get_token_claims),
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get the calling user from a bearer token or the X-User-Id header.

    The local user row is created on first sight.

    Raises:
        UnauthenticatedError: If no identity was supplied
        AppPermissionError: If the user account is inactive
    """
    if claims:
        return await _resolve_user(request, db, claims["sub"], claims)

    if x_user_id and x_user_id.strip() and settings.allow_user_id_header:
        return await _resolve_user(request, db, x_user_id.strip(), {})

    raise UnauthenticatedError("Authentication required")


async def get_token_user(
    request: Request,
    claims: dict = Depends(validate_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get the calling user from a verified bearer token only."""
    return await _resolve_user(request, db, claims["sub"], claims)
