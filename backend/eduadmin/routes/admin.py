"""Settings routes --- role permissions, user management, audit log."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.database import get_db
from eduadmin.middleware.auth import hash_password, require_access, write_audit_log
from eduadmin.rbac import ALL_FEATURES, ALL_MENUS, ROLE_ADMIN, VALID_ROLES
from eduadmin.services.authorization import PermissionEntry, Principal
from eduadmin.services.permission_service import (
    InvalidPermissionError,
    replace_role_permissions,
    update_role_permission,
)

router = APIRouter(prefix="/api/settings", tags=["settings"])

RBAC_PAGE = "/settings/rbac"
USERS_PAGE = "/settings/users"


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------


class PermissionIn(BaseModel):
    menu: str
    feature: str | None = None
    allowed: bool


class PermissionBatch(BaseModel):
    permissions: list[PermissionIn]


class UserCreate(BaseModel):
    email: str
    password: str
    first_name: str
    last_name: str
    role: str
    office_location: str | None = None


class UserUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    role: str | None = None
    office_location: str | None = None
    is_active: bool | None = None


def _permission_out(p) -> dict:
    return {
        "id": p.id,
        "role": p.role,
        "menu": p.menu,
        "feature": p.feature,
        "allowed": p.allowed,
    }


def _user_out(u) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "first_name": u.first_name,
        "last_name": u.last_name,
        "display_name": u.display_name,
        "role": u.role,
        "office_location": u.office_location,
        "is_active": u.is_active,
        "created_at": u.created_at.isoformat() if u.created_at else None,
    }


def _check_role(role: str) -> None:
    if role not in VALID_ROLES:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid role '{role}'. Valid roles: {', '.join(VALID_ROLES)}",
        )


# ---------------------------------------------------------------------------
# ROLE PERMISSIONS
# ---------------------------------------------------------------------------


@router.get("/roles")
async def list_roles(
    user: Principal = Depends(require_access(RBAC_PAGE, required_role=ROLE_ADMIN)),
):
    """The closed sets of roles, menus and features permissions refer to."""
    return {"roles": VALID_ROLES, "menus": ALL_MENUS, "features": ALL_FEATURES}


@router.get("/roles/permissions")
async def list_all_permissions(
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access(RBAC_PAGE, required_role=ROLE_ADMIN)),
):
    """Every permission entry, grouped by role."""
    from eduadmin.models.permission import RolePermission

    stmt = select(RolePermission).order_by(
        RolePermission.role, RolePermission.menu, RolePermission.id
    )
    result = await db.execute(stmt)

    grouped: dict[str, list[dict]] = {}
    for p in result.scalars().all():
        grouped.setdefault(p.role, []).append(_permission_out(p))
    return {"roles": grouped}


@router.get("/roles/{role}/permissions")
async def list_role_permissions(
    role: str,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access(RBAC_PAGE, required_role=ROLE_ADMIN)),
):
    from eduadmin.models.permission import RolePermission

    _check_role(role)
    stmt = (
        select(RolePermission)
        .where(RolePermission.role == role)
        .order_by(RolePermission.menu, RolePermission.id)
    )
    result = await db.execute(stmt)
    items = [_permission_out(p) for p in result.scalars().all()]
    return {"role": role, "items": items, "total": len(items)}


@router.put("/roles/{role}/permissions")
async def upsert_role_permission(
    role: str,
    body: PermissionIn,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access(RBAC_PAGE, required_role=ROLE_ADMIN)),
):
    """Set one ``(menu, feature)`` entry for *role*, creating it if needed."""
    try:
        row = await update_role_permission(db, role, body.menu, body.feature, body.allowed)
    except InvalidPermissionError as e:
        raise HTTPException(status_code=422, detail=str(e))

    await write_audit_log(
        db,
        user,
        action="permission.update",
        resource_type="role_permission",
        resource_id=str(row.id),
        details={"role": role, **body.model_dump()},
    )
    await db.commit()
    return _permission_out(row)


@router.put("/roles/{role}/permissions/batch")
async def replace_permissions(
    role: str,
    body: PermissionBatch,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access(RBAC_PAGE, required_role=ROLE_ADMIN)),
):
    """Replace the whole permission list of *role*."""
    entries = [
        PermissionEntry(role=role, menu=p.menu, feature=p.feature, allowed=p.allowed)
        for p in body.permissions
    ]
    try:
        count = await replace_role_permissions(db, role, entries)
    except InvalidPermissionError as e:
        raise HTTPException(status_code=422, detail=str(e))

    await write_audit_log(
        db,
        user,
        action="permission.replace",
        resource_type="role_permission",
        resource_id=role,
        details={"count": count},
    )
    await db.commit()
    return {"role": role, "total": count}


# ---------------------------------------------------------------------------
# USER MANAGEMENT
# ---------------------------------------------------------------------------


@router.get("/users")
async def list_users(
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access(USERS_PAGE, required_role=ROLE_ADMIN)),
):
    from eduadmin.models.user import User

    result = await db.execute(select(User).order_by(User.email))
    items = [_user_out(u) for u in result.scalars().all()]
    return {"items": items, "total": len(items)}


@router.post("/users", status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access(USERS_PAGE, required_role=ROLE_ADMIN)),
):
    from eduadmin.models.user import User

    _check_role(body.role)

    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Email already exists")

    new_user = User(
        email=body.email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
        office_location=body.office_location,
    )
    db.add(new_user)
    await db.flush()

    await write_audit_log(
        db,
        user,
        action="user.create",
        resource_type="user",
        resource_id=str(new_user.id),
        details={"email": body.email, "role": body.role},
    )
    await db.commit()
    return _user_out(new_user)


@router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access(USERS_PAGE, required_role=ROLE_ADMIN)),
):
    """Change a user's role, office or active flag.  Deactivating a user
    makes their open sessions fail validation immediately."""
    from eduadmin.models.user import User

    target = await db.get(User, user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    changes = body.model_dump(exclude_unset=True)
    if changes.get("role") is not None:
        _check_role(changes["role"])

    for field, value in changes.items():
        if value is not None:
            setattr(target, field, value)

    await write_audit_log(
        db,
        user,
        action="user.update",
        resource_type="user",
        resource_id=str(user_id),
        details=changes,
    )
    await db.commit()
    return _user_out(target)


# ---------------------------------------------------------------------------
# AUDIT LOG
# ---------------------------------------------------------------------------


@router.get("/audit-log")
async def list_audit_log(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    action: str | None = Query(None),
    resource_type: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access(USERS_PAGE, required_role=ROLE_ADMIN)),
):
    """Paginated audit trail, newest first."""
    from eduadmin.models.permission import AuditLog

    stmt = select(AuditLog)
    count_stmt = select(func.count()).select_from(AuditLog)

    if action:
        stmt = stmt.where(AuditLog.action == action)
        count_stmt = count_stmt.where(AuditLog.action == action)
    if resource_type:
        stmt = stmt.where(AuditLog.resource_type == resource_type)
        count_stmt = count_stmt.where(AuditLog.resource_type == resource_type)

    total = (await db.execute(count_stmt)).scalar()

    offset = (page - 1) * page_size
    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(offset).limit(page_size)
    result = await db.execute(stmt)
    entries = result.scalars().all()

    items = [
        {
            "id": e.id,
            "user_id": e.user_id,
            "username": e.username,
            "action": e.action,
            "resource_type": e.resource_type,
            "resource_id": e.resource_id,
            "details": e.details,
            "ip_address": e.ip_address,
            "created_at": e.created_at.isoformat() if e.created_at else None,
        }
        for e in entries
    ]

    return {"items": items, "total": total, "page": page, "page_size": page_size}
