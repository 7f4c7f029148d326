"""Authorization resolver — decides whether a principal may open a page.

The decision combines three layers, checked in order:

1. coarse role checks supplied by the route (``required_role`` /
   ``allowed_roles``), with ``admin`` overriding every one of them;
2. the ``office_<city>`` carve-out, where a route allow-listing
   ``office_user`` admits every office variant;
3. fine-grained ``role_permissions`` rows keyed on the ``(menu, feature)``
   the page belongs to.  These apply only once at least one row exists for
   the role, and are fail-closed for menus that have no row.

The resolver is a pure function: it performs no I/O and raises nothing.
"""
from __future__ import annotations

import dataclasses
import enum
from collections.abc import Iterable, Sequence

from eduadmin.rbac import ROLE_OFFICE_USER, is_admin, is_office_variant, route_permission


@dataclasses.dataclass(frozen=True)
class Principal:
    """The authenticated user a request acts for."""
    id: int
    role: str
    email: str | None = None
    display_name: str | None = None
    office_location: str | None = None
    is_active: bool = True
    session_id: int | None = None

    @property
    def username(self) -> str | None:
        return self.email


@dataclasses.dataclass(frozen=True)
class PermissionEntry:
    role: str
    menu: str
    feature: str | None
    allowed: bool


class DenyReason(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    ROLE_MISMATCH = "role-mismatch"
    NOT_IN_ALLOWED_ROLES = "not-in-allowed-roles"
    PERMISSION_DENIED = "permission-denied"


@dataclasses.dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None
    menu: str | None = None
    feature: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


def _allow(menu: str | None = None, feature: str | None = None) -> Decision:
    return Decision(allowed=True, menu=menu, feature=feature)


def _deny(reason: DenyReason, menu: str | None = None, feature: str | None = None) -> Decision:
    return Decision(allowed=False, reason=reason, menu=menu, feature=feature)


def lookup_permission(
    permissions: Iterable[PermissionEntry],
    role: str,
    menu: str,
    feature: str | None,
) -> bool | None:
    """Return the ``allowed`` flag for ``(role, menu, feature)``.

    Falls back to the menu-level ``(role, menu, None)`` row; ``None`` means
    neither row exists.
    """
    menu_level: bool | None = None
    for entry in permissions:
        if entry.role != role or entry.menu != menu:
            continue
        if entry.feature == feature:
            return entry.allowed
        if entry.feature is None:
            menu_level = entry.allowed
    return menu_level


def resolve(
    principal: Principal | None,
    requested_path: str,
    required_role: str | None = None,
    allowed_roles: Sequence[str] | None = None,
    permissions: Sequence[PermissionEntry] = (),
) -> Decision:
    """Decide whether *principal* may open *requested_path*."""
    if principal is None or not principal.is_active:
        return _deny(DenyReason.UNAUTHENTICATED)

    role = principal.role

    if required_role and role != required_role and not is_admin(role):
        return _deny(DenyReason.ROLE_MISMATCH)

    if allowed_roles and role not in allowed_roles and not is_admin(role):
        if is_office_variant(role) and ROLE_OFFICE_USER in allowed_roles:
            return _allow()
        return _deny(DenyReason.NOT_IN_ALLOWED_ROLES)

    if permissions and not is_admin(role):
        menu, feature = route_permission(requested_path)
        if menu is None:
            return _allow(menu, feature)
        if not lookup_permission(permissions, role, menu, feature):
            return _deny(DenyReason.PERMISSION_DENIED, menu, feature)
        return _allow(menu, feature)

    return _allow()
