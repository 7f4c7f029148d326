"""Mess budget ledger for hostels.

A hostel holds one annual mess budget.  ``allocate`` sets the budget and
resets the remaining balance to the full amount, discarding whatever was
consumed under the previous allocation.  Recorded mess expenses then draw
the remaining balance down, possibly below zero; a negative balance is the
over-budget signal and stays until the next allocation.

Concurrent allocations are last-writer-wins.
"""
from __future__ import annotations

import datetime
import logging
import math
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.services.errors import InvalidAmountError, NotFoundError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Read-side helpers (pure, usable on any object with the hostel's fields)
# ---------------------------------------------------------------------------


def used_amount(hostel) -> float:
    return (hostel.mess_budget or 0) - (hostel.mess_budget_remaining or 0)


def usage_percentage(hostel) -> float:
    """Share of the budget used, unclamped (over 100 when over budget)."""
    total = hostel.mess_budget or 0
    if total > 0:
        return used_amount(hostel) * 100 / total
    return 0.0


def progress_percentage(hostel) -> float:
    """``usage_percentage`` clamped to [0, 100] for progress bars."""
    return min(max(usage_percentage(hostel), 0.0), 100.0)


def is_over_budget(hostel) -> bool:
    return (hostel.mess_budget_remaining or 0) < 0


def budget_summary(hostel) -> dict[str, Any]:
    return {
        "hostel_id": hostel.id,
        "hostel_name": hostel.name,
        "mess_budget": hostel.mess_budget or 0,
        "mess_budget_remaining": hostel.mess_budget_remaining or 0,
        "mess_budget_year": hostel.mess_budget_year or datetime.date.today().year,
        "used_amount": used_amount(hostel),
        "usage_percentage": usage_percentage(hostel),
        "progress_percentage": progress_percentage(hostel),
        "is_over_budget": is_over_budget(hostel),
    }


# ---------------------------------------------------------------------------
# Ledger operations
# ---------------------------------------------------------------------------


class BudgetLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_hostel(self, hostel_id: int):
        from eduadmin.models.hostel import Hostel

        result = await self.db.execute(select(Hostel).where(Hostel.id == hostel_id))
        hostel = result.scalar_one_or_none()
        if hostel is None:
            raise NotFoundError(f"Hostel {hostel_id} not found")
        return hostel

    async def allocate(self, hostel_id: int, amount: float, year: int | None = None):
        """Set the mess budget and reset the remaining balance to it.

        Does not commit; the caller owns the transaction.
        """
        if not math.isfinite(amount):
            raise InvalidAmountError("Budget amount must be a finite number.")
        if amount < 0:
            raise InvalidAmountError("Budget amount cannot be negative.")

        hostel = await self.get_hostel(hostel_id)
        hostel.mess_budget = amount
        hostel.mess_budget_remaining = amount
        hostel.mess_budget_year = year or datetime.date.today().year
        await self.db.flush()

        logger.info(
            f"Mess budget for hostel {hostel_id} set to {amount} "
            f"(year {hostel.mess_budget_year})"
        )
        return hostel

    async def record_mess_expense(
        self,
        hostel_id: int,
        amount: float,
        category: str = "groceries",
        expense_date: datetime.date | None = None,
        vendor_name: str | None = None,
        description: str | None = None,
    ):
        """Insert a mess expense and draw the remaining budget down by *amount*.

        The balance may go negative; that is never an error.  Returns the
        expense and the refreshed hostel.
        """
        from eduadmin.models.hostel import Hostel, MessExpense

        if not math.isfinite(amount):
            raise InvalidAmountError("Expense amount must be a finite number.")
        if amount <= 0:
            raise InvalidAmountError("Expense amount must be positive.")

        hostel = await self.get_hostel(hostel_id)

        expense = MessExpense(
            hostel_id=hostel_id,
            amount=amount,
            category=category,
            expense_date=expense_date or datetime.date.today(),
            vendor_name=vendor_name,
            description=description,
        )
        self.db.add(expense)

        # Decrement in SQL so concurrent expenses do not overwrite each other
        await self.db.execute(
            update(Hostel)
            .where(Hostel.id == hostel_id)
            .values(mess_budget_remaining=func.coalesce(Hostel.mess_budget_remaining, 0) - amount)
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        await self.db.refresh(hostel)

        if is_over_budget(hostel):
            logger.warning(
                f"Hostel {hostel_id} is over its mess budget "
                f"(remaining {hostel.mess_budget_remaining})"
            )
        return expense, hostel
