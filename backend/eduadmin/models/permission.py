"""SQLAlchemy models for RBAC: per-role menu permissions and audit logging."""
from __future__ import annotations

import datetime

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from eduadmin.database import Base
from eduadmin.models.base import IntegerPrimaryKeyMixin, JSONType, TimestampMixin, utcnow


class RolePermission(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Whether a role may use a menu, or one feature inside it.

    ``feature`` NULL is the menu-level rule consulted when no feature-level
    row exists.
    """
    __tablename__ = "role_permissions"
    __table_args__ = (
        # Menu-level rows have a NULL feature and must be unique as well
        UniqueConstraint(
            "role",
            "menu",
            "feature",
            name="uq_role_permissions_role_menu_feature",
            postgresql_nulls_not_distinct=True,
        ),
    )

    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    menu: Mapped[str] = mapped_column(String(100), nullable=False)
    feature: Mapped[str | None] = mapped_column(String(20))
    allowed: Mapped[bool] = mapped_column(Boolean, nullable=False)

    def __repr__(self) -> str:
        target = f"{self.menu}/{self.feature}" if self.feature else self.menu
        return f"<RolePermission {self.role}:{target} allowed={self.allowed}>"


class AuditLog(IntegerPrimaryKeyMixin, Base):
    """Immutable audit trail of all system mutations."""
    __tablename__ = "audit_log"

    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    username: Mapped[str | None] = mapped_column(String(200))
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_type: Mapped[str | None] = mapped_column(String(100))
    resource_id: Mapped[str | None] = mapped_column(String(200))
    details: Mapped[dict | None] = mapped_column(JSONType)
    ip_address: Mapped[str | None] = mapped_column(String(45))
    created_at: Mapped[datetime.datetime] = mapped_column(
        nullable=False, default=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action!r} by {self.username!r}>"
