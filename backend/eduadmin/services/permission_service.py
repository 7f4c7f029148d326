"""Role permission storage — upserts and bulk replacement of ``role_permissions``."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.rbac import ALL_FEATURES, ALL_MENUS, VALID_ROLES
from eduadmin.services.authorization import PermissionEntry

logger = logging.getLogger(__name__)


class InvalidPermissionError(ValueError):
    """Unknown role, menu or feature in a permission entry."""


def validate_entry(role: str, menu: str, feature: str | None) -> None:
    if role not in VALID_ROLES:
        raise InvalidPermissionError(
            f"Invalid role '{role}'. Valid roles: {', '.join(VALID_ROLES)}"
        )
    if menu not in ALL_MENUS:
        raise InvalidPermissionError(f"Unknown menu '{menu}'.")
    if feature is not None and feature not in ALL_FEATURES:
        raise InvalidPermissionError(
            f"Unknown feature '{feature}'. Valid features: {', '.join(ALL_FEATURES)}"
        )


def _match(role: str, menu: str, feature: str | None):
    from eduadmin.models.permission import RolePermission

    # NULL never equals NULL in SQL, so the menu-level row needs IS NULL
    feature_clause = (
        RolePermission.feature.is_(None) if feature is None else RolePermission.feature == feature
    )
    return select(RolePermission).where(
        RolePermission.role == role,
        RolePermission.menu == menu,
        feature_clause,
    )


async def update_role_permission(
    db: AsyncSession,
    role: str,
    menu: str,
    feature: str | None,
    allowed: bool,
):
    """Insert or update the single ``(role, menu, feature)`` row.

    Does not commit.
    """
    validate_entry(role, menu, feature)

    from eduadmin.models.permission import RolePermission

    result = await db.execute(_match(role, menu, feature))
    row = result.scalar_one_or_none()
    if row is None:
        row = RolePermission(role=role, menu=menu, feature=feature, allowed=allowed)
        db.add(row)
    else:
        row.allowed = allowed
    await db.flush()

    logger.info(f"Permission {role}:{menu}/{feature or '*'} set to allowed={allowed}")
    return row


async def replace_role_permissions(
    db: AsyncSession,
    role: str,
    entries: Iterable[PermissionEntry],
) -> int:
    """Replace every row for *role* with *entries*.  Returns the new row count.

    All entries are validated before anything is deleted.  Later duplicates
    of the same ``(menu, feature)`` win.  Does not commit.
    """
    from eduadmin.models.permission import RolePermission

    unique: dict[tuple[str, str | None], bool] = {}
    for entry in entries:
        validate_entry(role, entry.menu, entry.feature)
        unique[(entry.menu, entry.feature)] = entry.allowed

    await db.execute(delete(RolePermission).where(RolePermission.role == role))
    for (menu, feature), allowed in unique.items():
        db.add(RolePermission(role=role, menu=menu, feature=feature, allowed=allowed))
    await db.flush()

    logger.info(f"Replaced permissions for role {role}: {len(unique)} entries")
    return len(unique)
