"""Role service layer for persona business logic."""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, desc, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domains.role.merge import merge_accessible_roles, to_role_view
from app.exceptions.base import NotFoundError, ValidationError
from app.exceptions.role import RoleNotFoundError, RolePermissionError, RoleShareNotFoundError
from app.schemas.role import RoleCreate, RoleResponse, RoleShareResponse, RoleUpdate
from models import Role, RoleShare, RoleVisibility, User

logger = logging.getLogger(__name__)


class RoleService:
    """Service class for role personas and their share grants."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_roles_by_user(self, user_id: str) -> List[RoleResponse]:
        """All roles the user can see: owned, then shared with them, then system."""
        owned_stmt = select(Role).where(Role.user_id == user_id).order_by(desc(Role.created_at))
        owned = (await self.db.execute(owned_stmt)).scalars().all()

        shared_stmt = (
            select(Role, RoleShare.can_edit, RoleShare.created_at)
            .join(RoleShare, RoleShare.role_id == Role.id)
            .where(RoleShare.shared_with_user_id == user_id)
            .order_by(desc(RoleShare.created_at))
        )
        shared = [tuple(row) for row in (await self.db.execute(shared_stmt)).all()]

        system = await self._fetch_system_roles()
        return merge_accessible_roles(owned, shared, system)

    async def get_system_roles(self) -> List[RoleResponse]:
        roles = await self._fetch_system_roles()
        return [to_role_view(role, is_owned=False, can_edit=False, source="system") for role in roles]

    async def get_role_by_id(self, role_id: UUID, user_id: str) -> Optional[RoleResponse]:
        """The role as seen by the user, or None when the user cannot access it."""
        if not role_id or not user_id:
            return None

        owned = await self._get_owned_role(role_id, user_id)
        if owned:
            return to_role_view(owned, is_owned=True, can_edit=True, source="owned")

        system_stmt = select(Role).where(
            and_(Role.id == role_id, Role.visibility == RoleVisibility.SYSTEM, Role.is_active.is_(True))
        )
        system = (await self.db.execute(system_stmt)).scalar_one_or_none()
        if system:
            return to_role_view(system, is_owned=False, can_edit=False, source="system")

        shared_stmt = (
            select(Role, RoleShare.can_edit, RoleShare.created_at)
            .join(RoleShare, RoleShare.role_id == Role.id)
            .where(and_(RoleShare.role_id == role_id, RoleShare.shared_with_user_id == user_id))
        )
        row = (await self.db.execute(shared_stmt)).first()
        if row:
            role, can_edit, shared_at = row
            return to_role_view(role, is_owned=False, can_edit=can_edit, source="shared", shared_at=shared_at)

        return None

    async def get_system_prompt(self, role_id: UUID, user_id: str) -> Optional[str]:
        role = await self.get_role_by_id(role_id, user_id)
        return role.system_prompt if role else None

    async def create_role(self, user_id: str, role_data: RoleCreate) -> RoleResponse:
        """Create a role owned by the user."""
        role = Role(
            user_id=user_id,
            name=role_data.name,
            system_prompt=role_data.system_prompt,
            description=role_data.description or "",
            icon=role_data.icon or "🤖",
            category=role_data.category or "custom",
            visibility=RoleVisibility(role_data.visibility),
            is_active=True,
            usage_count=0,
        )

        try:
            self.db.add(role)
            await self.db.commit()
            await self.db.refresh(role)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        logger.info(f"Created role {role.id} for user {user_id}")
        return to_role_view(role, is_owned=True, can_edit=True, source="owned")

    async def update_role(self, role_id: UUID, user_id: str, role_data: RoleUpdate) -> RoleResponse:
        """Update a role the user owns or was granted edit rights on."""
        view = await self.get_role_by_id(role_id, user_id)
        if not view:
            raise RoleNotFoundError()
        if not view.can_edit:
            raise RolePermissionError()

        updates = {key: value for key, value in role_data.model_dump(exclude_unset=True).items() if value is not None}
        if "visibility" in updates:
            if not view.is_owned:
                raise RolePermissionError("Only the owner can change a role's visibility")
            updates["visibility"] = RoleVisibility(updates["visibility"])

        role = await self.db.get(Role, role_id)
        try:
            for field, value in updates.items():
                setattr(role, field, value)
            await self.db.commit()
            await self.db.refresh(role)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        return to_role_view(
            role, is_owned=view.is_owned, can_edit=True, source=view.source, shared_at=view.shared_at
        )

    async def delete_role(self, role_id: UUID, user_id: str) -> bool:
        """Delete a role. Only its owner may do so."""
        view = await self.get_role_by_id(role_id, user_id)
        if not view:
            raise RoleNotFoundError()
        if not view.is_owned:
            raise RolePermissionError("Only the owner can delete this role")

        try:
            await self.db.execute(delete(RoleShare).where(RoleShare.role_id == role_id))
            await self.db.execute(delete(Role).where(Role.id == role_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        logger.info(f"Deleted role {role_id}")
        return True

    async def share_role(
        self, role_id: UUID, owner_user_id: str, target_user_id: str, can_edit: bool = False
    ) -> RoleShareResponse:
        """Grant a user access to a role, updating the grant if one already exists."""
        await self._require_owned_role(role_id, owner_user_id)

        if target_user_id == owner_user_id:
            raise ValidationError("Cannot share a role with yourself")

        target = await self.db.get(User, target_user_id)
        if not target:
            raise NotFoundError("Target user not found")

        try:
            share = await self._upsert_share(role_id, owner_user_id, target_user_id, can_edit)
        except IntegrityError:
            # A concurrent request inserted the grant first
            await self.db.rollback()
            share = await self._upsert_share(role_id, owner_user_id, target_user_id, can_edit)

        logger.info(f"Role {role_id} shared with {target_user_id} (can_edit={can_edit})")
        return RoleShareResponse.model_validate(share)

    async def revoke_share(self, role_id: UUID, owner_user_id: str, target_user_id: str) -> bool:
        """Remove a user's grant on a role."""
        await self._require_owned_role(role_id, owner_user_id)

        try:
            result = await self.db.execute(
                delete(RoleShare).where(
                    and_(RoleShare.role_id == role_id, RoleShare.shared_with_user_id == target_user_id)
                )
            )
            if not result.rowcount:
                raise RoleShareNotFoundError()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

        logger.info(f"Revoked share of role {role_id} for {target_user_id}")
        return True

    async def get_role_shares(self, role_id: UUID, owner_user_id: str) -> List[RoleShareResponse]:
        await self._require_owned_role(role_id, owner_user_id)

        stmt = select(RoleShare).where(RoleShare.role_id == role_id).order_by(RoleShare.created_at)
        shares = (await self.db.execute(stmt)).scalars().all()
        return [RoleShareResponse.model_validate(share) for share in shares]

    async def increment_usage_count(self, role_id: UUID) -> None:
        """Count one more conversation using the role. Failures never block the caller."""
        try:
            await self.db.execute(
                update(Role).where(Role.id == role_id).values(usage_count=Role.usage_count + 1)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Failed to increment usage count of role {role_id}: {str(e)}")

    # Private helper methods

    async def _fetch_system_roles(self) -> List[Role]:
        stmt = (
            select(Role)
            .where(and_(Role.visibility == RoleVisibility.SYSTEM, Role.is_active.is_(True)))
            .order_by(Role.name)
        )
        return list((await self.db.execute(stmt)).scalars().all())

    async def _get_owned_role(self, role_id: UUID, user_id: str) -> Optional[Role]:
        stmt = select(Role).where(and_(Role.id == role_id, Role.user_id == user_id))
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def _require_owned_role(self, role_id: UUID, user_id: str) -> Role:
        role = await self._get_owned_role(role_id, user_id)
        if not role:
            raise RolePermissionError("You are not the owner of this role")
        return role

    async def _upsert_share(
        self, role_id: UUID, owner_user_id: str, target_user_id: str, can_edit: bool
    ) -> RoleShare:
        stmt = select(RoleShare).where(
            and_(RoleShare.role_id == role_id, RoleShare.shared_with_user_id == target_user_id)
        )
        share = (await self.db.execute(stmt)).scalar_one_or_none()

        if share:
            share.can_edit = can_edit
            share.shared_by_user_id = owner_user_id
        else:
            share = RoleShare(
                role_id=role_id,
                shared_with_user_id=target_user_id,
                shared_by_user_id=owner_user_id,
                can_edit=can_edit,
            )
            self.db.add(share)

        await self.db.commit()
        await self.db.refresh(share)
        return share
