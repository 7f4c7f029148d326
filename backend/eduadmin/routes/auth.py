"""Authentication routes — login, logout, session refresh, page access checks."""
from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.config import settings
from eduadmin.database import get_db
from eduadmin.middleware.auth import (
    create_access_token,
    create_session,
    get_current_user,
    get_optional_user,
    load_permissions,
    principal_from_user,
    verify_password,
    write_audit_log,
)
from eduadmin.models.base import utcnow
from eduadmin.rbac import route_allowed_roles, route_permission
from eduadmin.services.authorization import Principal, resolve

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: dict


class AccessCheckRequest(BaseModel):
    path: str
    required_role: str | None = None
    allowed_roles: list[str] | None = None


def _user_out(principal: Principal, permissions) -> dict:
    return {
        "id": principal.id,
        "email": principal.email,
        "display_name": principal.display_name,
        "role": principal.role,
        "office_location": principal.office_location,
        "is_active": principal.is_active,
        "permissions": [
            {"menu": p.menu, "feature": p.feature, "allowed": p.allowed}
            for p in permissions
        ],
    }


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, request: Request, db: AsyncSession = Depends(get_db)):
    from eduadmin.models.user import User

    stmt = select(User).where(User.email == body.email, User.is_active == True)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.password_hash):
        logger.warning(f"Failed login for {body.email!r} from {_client_ip(request)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    session_row = await create_session(db, user)
    token = create_access_token(user, session_row.token_id, session_row.expires_at)

    principal = principal_from_user(user, session_row.id)
    permissions = await load_permissions(user.role, db)

    await write_audit_log(
        db,
        principal,
        "auth.login",
        resource_type="user",
        resource_id=str(user.id),
        details={"email": user.email},
        ip_address=_client_ip(request),
    )
    await db.commit()

    return TokenResponse(access_token=token, user=_user_out(principal, permissions))


@router.get("/me")
async def get_me(
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    permissions = await load_permissions(user.role, db)
    return _user_out(user, permissions)


@router.post("/logout")
async def logout(
    request: Request,
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """End the current session; its token is rejected from now on."""
    from eduadmin.models.user import UserSession

    await db.execute(delete(UserSession).where(UserSession.id == user.session_id))
    await write_audit_log(
        db,
        user,
        "auth.logout",
        resource_type="user",
        resource_id=str(user.id),
        ip_address=_client_ip(request),
    )
    await db.commit()
    return {"status": "logged_out"}


@router.post("/refresh")
async def refresh_token(
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(get_current_user),
):
    """Extend the current session and issue a fresh token for it."""
    from eduadmin.models.user import User, UserSession

    result = await db.execute(select(UserSession).where(UserSession.id == user.session_id))
    session_row = result.scalar_one_or_none()
    user_row = await db.get(User, user.id)
    if not session_row or not user_row:
        raise HTTPException(status_code=401, detail="Session not found")

    session_row.expires_at = utcnow() + timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    token = create_access_token(user_row, session_row.token_id, session_row.expires_at)
    await db.commit()
    return {"access_token": token, "token_type": "bearer"}


@router.post("/access-check")
async def access_check(
    body: AccessCheckRequest,
    db: AsyncSession = Depends(get_db),
    user: Principal | None = Depends(get_optional_user),
):
    """Tell the UI shell whether the current user may open a page.

    Unauthenticated callers get ``allowed: false`` with reason
    ``unauthenticated`` so the shell can show the login form.
    """
    allowed_roles = body.allowed_roles
    if allowed_roles is None:
        allowed_roles = route_allowed_roles(body.path)

    permissions = await load_permissions(user.role, db) if user else []
    decision = resolve(
        user,
        body.path,
        required_role=body.required_role,
        allowed_roles=allowed_roles,
        permissions=permissions,
    )
    menu, feature = route_permission(body.path)
    return {
        "path": body.path,
        "allowed": decision.allowed,
        "reason": decision.reason.value if decision.reason else None,
        "menu": menu,
        "feature": feature,
    }
