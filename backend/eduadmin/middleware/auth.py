"""Authentication and authorization middleware for EduAdmin.

Provides:
- Password hashing (bcrypt)
- Session creation and JWT encoding / validation
- ``get_current_user()`` / ``get_optional_user()`` dependencies
- ``load_permissions()`` from the ``role_permissions`` table
- ``require_access()`` — the page gate built on the authorization resolver
- Audit-log helper
"""
from __future__ import annotations

import logging
import secrets
from collections.abc import Sequence
from datetime import timedelta
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.config import settings
from eduadmin.database import get_db
from eduadmin.models.base import utcnow
from eduadmin.rbac import route_allowed_roles
from eduadmin.services.authorization import (
    DenyReason,
    PermissionEntry,
    Principal,
    resolve,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain: str, hashed: str) -> bool:
    """Compare a plain-text password against a bcrypt hash."""
    return _pwd_context.verify(plain, hashed)


def hash_password(plain: str) -> str:
    """Return the bcrypt hash of a plain-text password."""
    return _pwd_context.hash(plain)


# ---------------------------------------------------------------------------
# Sessions & JWT
# ---------------------------------------------------------------------------


def create_access_token(user, token_id: str, expires_at) -> str:
    """Create a signed JWT for *user* bound to the session *token_id*."""
    payload = {
        "sub": user.email,
        "user_id": str(user.id),
        "role": user.role,
        "sid": token_id,
        "exp": expires_at,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def create_session(db: AsyncSession, user):
    """Insert a ``user_sessions`` row for *user* and return it (not committed)."""
    from eduadmin.models.user import UserSession

    session_row = UserSession(
        user_id=user.id,
        token_id=secrets.token_urlsafe(32),
        expires_at=utcnow() + timedelta(minutes=settings.JWT_EXPIRY_MINUTES),
    )
    db.add(session_row)
    await db.flush()
    return session_row


def principal_from_user(user, session_id: int | None = None) -> Principal:
    return Principal(
        id=user.id,
        role=user.role,
        email=user.email,
        display_name=user.display_name,
        office_location=user.office_location,
        is_active=user.is_active,
        session_id=session_id,
    )


async def validate_session(token: str, db: AsyncSession) -> Principal | None:
    """Return the principal for a bearer *token*, or ``None`` when the token is
    malformed, its session was logged out or expired, or the user is inactive.
    """
    from eduadmin.models.user import UserSession

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        return None

    token_id: str | None = payload.get("sid")
    if token_id is None:
        return None

    result = await db.execute(
        select(UserSession).where(UserSession.token_id == token_id)
    )
    session_row: UserSession | None = result.scalar_one_or_none()
    if session_row is None or session_row.expires_at <= utcnow():
        return None

    user = session_row.user
    if user is None or not user.is_active:
        return None

    return principal_from_user(user, session_row.id)


# ---------------------------------------------------------------------------
# OAuth2 scheme (tells Swagger UI where the login endpoint is)
# ---------------------------------------------------------------------------

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
_optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

# ---------------------------------------------------------------------------
# Current-user dependencies
# ---------------------------------------------------------------------------


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Validate the bearer token against ``user_sessions`` and return the
    principal.  Raises ``HTTPException(401)`` otherwise.
    """
    principal = await validate_session(token, db)
    if principal is None:
        raise _credentials_exception()
    return principal


async def get_optional_user(
    token: str | None = Depends(_optional_oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Principal | None:
    if not token:
        return None
    return await validate_session(token, db)


# ---------------------------------------------------------------------------
# Fine-grained permissions
# ---------------------------------------------------------------------------


async def load_permissions(role: str, db: AsyncSession) -> list[PermissionEntry]:
    """All ``role_permissions`` rows for *role*.  Empty means none configured."""
    from eduadmin.models.permission import RolePermission

    result = await db.execute(
        select(RolePermission).where(RolePermission.role == role)
    )
    return [
        PermissionEntry(role=p.role, menu=p.menu, feature=p.feature, allowed=p.allowed)
        for p in result.scalars().all()
    ]


def access_denied(reason: DenyReason) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"reason": reason.value, "message": "Access Denied"},
    )


def require_access(
    path: str,
    required_role: str | None = None,
    allowed_roles: Sequence[str] | None = None,
):
    """Return a FastAPI dependency gating an endpoint as the page *path*.

    When *allowed_roles* is omitted, the navigation's list for *path* is
    used.

    Usage::

        @router.put("/{hostel_id}/mess-budget")
        async def allocate_budget(
            ...,
            user: Principal = Depends(require_access("/mess/management")),
        ):
            ...
    """
    roles = list(allowed_roles) if allowed_roles is not None else route_allowed_roles(path)

    async def _check_access(
        current_user: Principal = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> Principal:
        permissions = await load_permissions(current_user.role, db)
        decision = resolve(
            current_user,
            path,
            required_role=required_role,
            allowed_roles=roles,
            permissions=permissions,
        )
        if not decision:
            logger.info(
                f"Access denied for {current_user.email} ({current_user.role}) "
                f"to {path}: {decision.reason.value}"
            )
            raise access_denied(decision.reason)
        return current_user

    return _check_access


# ---------------------------------------------------------------------------
# Audit-log helper
# ---------------------------------------------------------------------------


async def write_audit_log(
    db: AsyncSession,
    user: Principal | None,
    action: str,
    resource_type: str | None = None,
    resource_id: str | None = None,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> None:
    """Add an ``audit_log`` row to the current transaction."""
    from eduadmin.models.permission import AuditLog

    entry = AuditLog(
        user_id=user.id if user else None,
        username=user.username if user else None,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=ip_address,
    )
    db.add(entry)
    await db.flush()
