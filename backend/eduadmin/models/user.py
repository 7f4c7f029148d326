"""User and session models for authentication."""
from __future__ import annotations

import datetime

from sqlalchemy import Boolean, ForeignKey, String, func, true
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eduadmin.database import Base
from eduadmin.models.base import IntegerPrimaryKeyMixin, TimestampMixin, utcnow


class User(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A staff, agent, or office account with a single role."""
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(200), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    office_location: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    # ------ relationships ------
    sessions: Mapped[list[UserSession]] = relationship(
        "UserSession",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User {self.email!r} role={self.role!r}>"


class UserSession(IntegerPrimaryKeyMixin, Base):
    """A login session.  The JWT handed to the client carries ``token_id``;
    deleting the row revokes the token."""
    __tablename__ = "user_sessions"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    token_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    expires_at: Mapped[datetime.datetime] = mapped_column(nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        nullable=False, default=utcnow, server_default=func.now()
    )

    user: Mapped[User] = relationship("User", back_populates="sessions", lazy="selectin")

    def __repr__(self) -> str:
        return f"<UserSession user={self.user_id} expires={self.expires_at:%Y-%m-%d %H:%M}>"
