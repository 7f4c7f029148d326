"""Base model utilities for the EduAdmin backend.

Every table uses an integer identity key.  Timestamps are naive UTC and are
filled in on the Python side so they are readable right after a flush
without a round-trip (the async session cannot lazy-load expired columns).
"""
from __future__ import annotations

import datetime

from sqlalchemy import JSON, Integer, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime.datetime:
    """Current UTC time without tzinfo, matching the ``timestamp`` columns."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class IntegerPrimaryKeyMixin:
    """Mixin that adds an auto-incrementing integer primary key named ``id``."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class TimestampMixin:
    created_at: Mapped[datetime.datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )
