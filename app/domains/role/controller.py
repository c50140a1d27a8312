"""Role API controller with FastAPI endpoints."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db
from app.domains.role.service import RoleService
from app.exceptions.role import RoleNotFoundError
from app.schemas.base import SuccessResponse
from app.schemas.role import (
    RoleCreate,
    RoleResponse,
    RoleShareRequest,
    RoleShareResponse,
    RoleShareRevokeRequest,
    RoleUpdate,
)
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/roles", tags=["roles"])


@router.get("", response_model=List[RoleResponse])
async def get_roles(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get every role the user can use: owned, shared with them, then system roles."""
    return await RoleService(db).get_roles_by_user(current_user.id)


@router.get("/system", response_model=List[RoleResponse])
async def get_system_roles(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await RoleService(db).get_system_roles()


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    role_data: RoleCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new role persona."""
    return await RoleService(db).create_role(current_user.id, role_data)


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: UUID = Path(..., description="Role ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a specific role by ID."""
    role = await RoleService(db).get_role_by_id(role_id, current_user.id)
    if not role:
        raise RoleNotFoundError()
    return role


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_data: RoleUpdate,
    role_id: UUID = Path(..., description="Role ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a role owned by, or editable by, the current user."""
    return await RoleService(db).update_role(role_id, current_user.id, role_data)


@router.delete("/{role_id}", response_model=SuccessResponse)
async def delete_role(
    role_id: UUID = Path(..., description="Role ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a role owned by the current user."""
    await RoleService(db).delete_role(role_id, current_user.id)
    return SuccessResponse(message="Role deleted successfully")


@router.get("/{role_id}/shares", response_model=List[RoleShareResponse])
async def get_role_shares(
    role_id: UUID = Path(..., description="Role ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the users a role is shared with. Owner only."""
    return await RoleService(db).get_role_shares(role_id, current_user.id)


@router.post("/{role_id}/share", response_model=RoleShareResponse)
async def share_role(
    share_data: RoleShareRequest,
    role_id: UUID = Path(..., description="Role ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Share a role with another user, or change an existing grant."""
    return await RoleService(db).share_role(
        role_id, current_user.id, share_data.target_user_id, share_data.can_edit
    )


@router.delete("/{role_id}/share", response_model=SuccessResponse)
async def revoke_role_share(
    revoke_data: RoleShareRevokeRequest,
    role_id: UUID = Path(..., description="Role ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Revoke a user's access to a role."""
    await RoleService(db).revoke_share(role_id, current_user.id, revoke_data.target_user_id)
    return SuccessResponse(message="Share revoked successfully")
