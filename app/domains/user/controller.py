"""User account controller endpoints."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user
from app.database import get_db
from app.domains.user.service import UserService
from app.exceptions.base import NotFoundError
from app.schemas.base import SuccessResponse
from app.schemas.user import UserResponse, UserSaveRequest, UserUpdateRequest
from models.user import User

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/save", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def save_user(
    save_data: UserSaveRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Record a user from the identity provider's sign-up callback.

    Creates the local user row, or updates its email and username when the
    callback is replayed for a known user.
    """
    user_service = UserService(db)
    user, created = await user_service.save_user(
        user_id=save_data.id,
        email=str(save_data.email) if save_data.email else None,
        username=save_data.username,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user information."""
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_current_user(
    update_data: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update the username or email of the current user."""
    user_service = UserService(db)
    updated_user = await user_service.update_user(
        user_id=current_user.id,
        username=update_data.username,
        email=str(update_data.email) if update_data.email else None,
    )
    return UserResponse.model_validate(updated_user)


@router.delete("/me", response_model=SuccessResponse)
async def delete_current_user(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete the current user with their conversations and roles."""
    await UserService(db).delete_user(current_user.id)
    return SuccessResponse(message="User deleted successfully")


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Look up a user, e.g. before sharing a role with them."""
    user = await UserService(db).get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return UserResponse.model_validate(user)
