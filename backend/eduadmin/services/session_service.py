"""Housekeeping for login sessions.

Expired ``user_sessions`` rows are already rejected by token validation;
the purge only keeps the table from growing without bound.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete

from eduadmin.models.base import utcnow

logger = logging.getLogger(__name__)


async def purge_expired_sessions(session_factory: Any) -> int:
    """Delete every session whose ``expires_at`` has passed.

    *session_factory* is an ``async_sessionmaker`` (e.g. ``AsyncSessionLocal``).
    Returns the number of rows removed.
    """
    from eduadmin.models.user import UserSession

    async with session_factory() as db:
        result = await db.execute(
            delete(UserSession).where(UserSession.expires_at <= utcnow())
        )
        await db.commit()

    removed = result.rowcount or 0
    logger.info(f"Purged {removed} expired sessions")
    return removed
