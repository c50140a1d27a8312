"""Merging the three sources of roles a user can see into one list."""

from collections.abc import Iterable
from datetime import datetime

from app.schemas.role import RoleResponse, RoleSource
from models import Role


def to_role_view(
    role: Role,
    *,
    is_owned: bool,
    can_edit: bool,
    source: RoleSource,
    shared_at: datetime | None = None,
) -> RoleResponse:
    """Serialize a role as seen by one user."""
    return RoleResponse.model_validate(role).model_copy(
        update={"is_owned": is_owned, "can_edit": can_edit, "source": source, "shared_at": shared_at}
    )


def merge_accessible_roles(
    owned: Iterable[Role],
    shared: Iterable[tuple[Role, bool, datetime | None]],
    system: Iterable[Role],
) -> list[RoleResponse]:
    """Return owned, then shared, then system roles with each role id listed once.

    ``shared`` yields ``(role, can_edit, shared_at)`` per grant. When a role
    reaches the user through several sources the owned view wins, then the
    shared one.
    """
    merged: dict = {}

    for role in owned:
        merged.setdefault(role.id, to_role_view(role, is_owned=True, can_edit=True, source="owned"))

    for role, can_edit, shared_at in shared:
        if role is None:
            continue
        merged.setdefault(
            role.id,
            to_role_view(role, is_owned=False, can_edit=bool(can_edit), source="shared", shared_at=shared_at),
        )

    for role in system:
        merged.setdefault(role.id, to_role_view(role, is_owned=False, can_edit=False, source="system"))

    return list(merged.values())
