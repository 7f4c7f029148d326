"""Commission service — rolls student fee ledgers up into agent commissions.

For each agent:

1. Look up the agent's ``commission_rate`` (a percentage).
2. Collect the ids of the students the agent referred.
3. Sum ``amount_paid`` over ``fee_collections`` and ``fee_payments``
   (the two ledgers never hold the same payment, so they add up).
4. Sum the outstanding due over ``fee_payments``, one row at a time, with
   overpaid rows counting as zero rather than offsetting other rows.
5. Apply the rate and round to cents only at the very end.

The queries are independent reads without a shared transaction, so the
snapshot is best-effort: a payment recorded mid-computation may or may not
be included.
"""
from __future__ import annotations

import dataclasses
import logging
from collections.abc import Awaitable, Callable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.services.errors import NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CENT = Decimal("0.01")


def round2(value: float) -> float:
    """Round to 2 decimals, half away from zero, on the exact binary value.

    Gives the same result as ``Number(value.toFixed(2))`` in the dashboard,
    which Python's ``round`` (half to even) does not for exact ties.
    """
    return float(Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


@dataclasses.dataclass(frozen=True)
class CommissionSnapshot:
    students_count: int
    total_received: float
    commission_due: float

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


ZERO_SNAPSHOT = CommissionSnapshot(students_count=0, total_received=0.0, commission_due=0.0)


def rollup(
    commission_rate: float | None,
    students_count: int,
    collections_paid: list[float | None],
    payments: list[tuple[float | None, float | None]],
) -> CommissionSnapshot:
    """Compute a snapshot from already-fetched ledger values.

    *payments* holds ``(amount_due, amount_paid)`` pairs.  Missing amounts
    count as zero.
    """
    rate = (commission_rate or 0) / 100

    total_paid = 0.0
    total_paid += sum((paid or 0) for paid in collections_paid)
    total_paid += sum((paid or 0) for _, paid in payments)
    total_due = sum(max((due or 0) - (paid or 0), 0) for due, paid in payments)

    return CommissionSnapshot(
        students_count=students_count,
        total_received=round2(total_paid * rate),
        commission_due=round2(total_due * rate),
    )


class CommissionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ---- queries ----

    async def _student_ids(self, agent_id: int) -> list[int]:
        from eduadmin.models.agent import Student

        result = await self.db.execute(
            select(Student.id).where(Student.agent_id == agent_id).order_by(Student.id)
        )
        return list(result.scalars().all())

    async def _collections_paid(self, student_ids: list[int]) -> list[float | None]:
        from eduadmin.models.fees import FeeCollection

        result = await self.db.execute(
            select(FeeCollection.amount_paid)
            .where(FeeCollection.student_id.in_(student_ids))
            .order_by(FeeCollection.id)
        )
        return list(result.scalars().all())

    async def _payments(self, student_ids: list[int]) -> list[tuple[float | None, float | None]]:
        from eduadmin.models.fees import FeePayment

        result = await self.db.execute(
            select(FeePayment.amount_due, FeePayment.amount_paid)
            .where(FeePayment.student_id.in_(student_ids))
            .order_by(FeePayment.id)
        )
        return [(row.amount_due, row.amount_paid) for row in result.all()]

    # ---- single agent ----

    async def compute_agent_commission(self, agent_id: int) -> CommissionSnapshot:
        """Commission snapshot for one agent.

        Raises ``NotFoundError`` for an unknown agent; database errors
        propagate unchanged.
        """
        from eduadmin.models.agent import Agent

        result = await self.db.execute(
            select(Agent.commission_rate).where(Agent.id == agent_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError(f"Agent {agent_id} not found")

        student_ids = await self._student_ids(agent_id)
        if not student_ids:
            return ZERO_SNAPSHOT

        collections = await self._collections_paid(student_ids)
        payments = await self._payments(student_ids)
        return rollup(row.commission_rate, len(student_ids), collections, payments)

    # ---- batch ----

    async def _tolerant(
        self,
        fetch: Callable[[], Awaitable[T]],
        fallback: T,
        what: str,
    ) -> T:
        """Run *fetch* inside a SAVEPOINT; log and return *fallback* on failure."""
        try:
            async with self.db.begin_nested():
                return await fetch()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {what}: {e}")
            return fallback

    async def compute_all_agent_commissions(self) -> list[dict[str, Any]]:
        """Commission snapshot for every agent, newest agent first.

        One agent's failing query never aborts the batch: a failed student
        lookup reports zeros for that agent, a failed ledger is treated as
        empty.
        """
        from eduadmin.models.agent import Agent

        result = await self.db.execute(
            select(Agent).order_by(Agent.created_at.desc(), Agent.id.desc())
        )
        agents = result.scalars().all()
        logger.info(f"Computing commissions for {len(agents)} agents")

        items: list[dict[str, Any]] = []
        for agent in agents:
            agent_id = agent.id
            student_ids = await self._tolerant(
                lambda: self._student_ids(agent_id), None, f"students for agent {agent_id}"
            )
            if not student_ids:
                snapshot = ZERO_SNAPSHOT
            else:
                collections = await self._tolerant(
                    lambda: self._collections_paid(student_ids), [],
                    f"fee collections for agent {agent_id}",
                )
                payments = await self._tolerant(
                    lambda: self._payments(student_ids), [],
                    f"fee payments for agent {agent_id}",
                )
                snapshot = rollup(agent.commission_rate, len(student_ids), collections, payments)

            logger.debug(
                f"Agent {agent.name} ({agent_id}): students={snapshot.students_count}, "
                f"received={snapshot.total_received}, due={snapshot.commission_due}"
            )
            items.append({**agent.to_dict(), **snapshot.to_dict()})

        return items
