"""
Tests 401-430: Hostel mess budget ledger

Display helpers on plain objects, then allocation and expense recording
against the database.
"""
import datetime
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from eduadmin.models import Hostel, MessExpense
from eduadmin.services.budget_service import (
    BudgetLedger,
    budget_summary,
    is_over_budget,
    progress_percentage,
    usage_percentage,
    used_amount,
)
from eduadmin.services.errors import InvalidAmountError, NotFoundError

from conftest import seed_hostel


def hostel(budget, remaining, **kwargs):
    return SimpleNamespace(
        id=1, name="North", mess_budget=budget, mess_budget_remaining=remaining,
        mess_budget_year=kwargs.get("year", 2025),
    )


class TestBudgetHelpers:

    def test_401_over_budget_signal(self):
        """Remaining below zero: over budget, 1200 used, progress capped at 100."""
        h = hostel(1000, -200)
        assert is_over_budget(h)
        assert used_amount(h) == 1200
        assert progress_percentage(h) == 100
        assert usage_percentage(h) == 120

    def test_402_partial_usage(self):
        """A quarter spent reads 25%."""
        h = hostel(4000, 3000)
        assert used_amount(h) == 1000
        assert usage_percentage(h) == 25
        assert progress_percentage(h) == 25
        assert not is_over_budget(h)

    def test_403_no_budget(self):
        """Zero or missing budget reads 0% and not over budget."""
        for h in (hostel(0, 0), hostel(None, None)):
            assert usage_percentage(h) == 0
            assert progress_percentage(h) == 0
            assert not is_over_budget(h)

    def test_404_remaining_above_budget_clamped_at_zero(self):
        """Negative usage never shows a negative progress bar."""
        h = hostel(1000, 1500)
        assert usage_percentage(h) == -50
        assert progress_percentage(h) == 0

    def test_405_summary_fields(self):
        """The summary carries every display value."""
        summary = budget_summary(hostel(1000, -200))
        assert summary == {
            "hostel_id": 1,
            "hostel_name": "North",
            "mess_budget": 1000,
            "mess_budget_remaining": -200,
            "mess_budget_year": 2025,
            "used_amount": 1200,
            "usage_percentage": 120.0,
            "progress_percentage": 100.0,
            "is_over_budget": True,
        }

    def test_406_summary_defaults_year(self):
        """An unset year displays as the current year."""
        h = hostel(None, None)
        h.mess_budget_year = None
        assert budget_summary(h)["mess_budget_year"] == datetime.date.today().year


class TestBudgetLedger:

    async def test_410_allocation_resets_remaining(self, db, session_factory):
        """A second allocation discards what was consumed under the first."""
        hostel_id = await seed_hostel(session_factory)
        ledger = BudgetLedger(db)

        await ledger.allocate(hostel_id, 5000, 2025)
        await ledger.record_mess_expense(hostel_id, 1200)
        h = await ledger.allocate(hostel_id, 3000, 2025)
        await db.commit()

        assert h.mess_budget == 3000
        assert h.mess_budget_remaining == 3000
        assert h.mess_budget_year == 2025

    async def test_411_allocation_defaults_to_current_year(self, db, session_factory):
        """Omitting the year uses the current one."""
        hostel_id = await seed_hostel(session_factory)
        h = await BudgetLedger(db).allocate(hostel_id, 100)
        assert h.mess_budget_year == datetime.date.today().year

    async def test_412_zero_allocation_allowed(self, db, session_factory):
        """A zero budget is valid."""
        hostel_id = await seed_hostel(session_factory, mess_budget=500, remaining=100)
        h = await BudgetLedger(db).allocate(hostel_id, 0, 2026)
        assert h.mess_budget == 0 and h.mess_budget_remaining == 0

    async def test_413_negative_allocation_rejected_before_write(self, db, session_factory):
        """A negative amount raises and leaves the hostel untouched."""
        hostel_id = await seed_hostel(session_factory, mess_budget=500, remaining=400, year=2024)
        with pytest.raises(InvalidAmountError):
            await BudgetLedger(db).allocate(hostel_id, -1, 2025)

        h = await db.get(Hostel, hostel_id)
        assert (h.mess_budget, h.mess_budget_remaining, h.mess_budget_year) == (500, 400, 2024)

    async def test_414_unknown_hostel(self, db):
        """Allocating for an unknown hostel raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await BudgetLedger(db).allocate(9999, 100)

    async def test_415_expense_draws_down_below_zero(self, db, session_factory):
        """Expenses reduce the balance and may push it negative."""
        hostel_id = await seed_hostel(session_factory)
        ledger = BudgetLedger(db)
        await ledger.allocate(hostel_id, 1000, 2025)

        await ledger.record_mess_expense(hostel_id, 700, category="vegetables")
        expense, h = await ledger.record_mess_expense(hostel_id, 500, vendor_name="Local Market")
        await db.commit()

        assert h.mess_budget_remaining == -200
        assert is_over_budget(h)
        assert expense.id is not None
        assert expense.category == "groceries"
        assert expense.expense_date == datetime.date.today()

        count = (await db.execute(
            select(func.count(MessExpense.id)).where(MessExpense.hostel_id == hostel_id)
        )).scalar_one()
        assert count == 2

    async def test_416_expense_without_allocation(self, db, session_factory):
        """With no budget set the balance starts from zero."""
        hostel_id = await seed_hostel(session_factory)
        _, h = await BudgetLedger(db).record_mess_expense(hostel_id, 50)
        assert h.mess_budget_remaining == -50

    @pytest.mark.parametrize("amount", [0, -10])
    async def test_417_non_positive_expense_rejected(self, db, session_factory, amount):
        """Expense amounts must be positive."""
        hostel_id = await seed_hostel(session_factory)
        with pytest.raises(InvalidAmountError):
            await BudgetLedger(db).record_mess_expense(hostel_id, amount)

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
    async def test_418_non_finite_allocation_rejected(self, db, session_factory, amount):
        """NaN and infinity never reach the hostel row."""
        hostel_id = await seed_hostel(session_factory, mess_budget=500, remaining=400, year=2024)
        with pytest.raises(InvalidAmountError):
            await BudgetLedger(db).allocate(hostel_id, amount, 2025)

        h = await db.get(Hostel, hostel_id)
        assert (h.mess_budget, h.mess_budget_remaining) == (500, 400)

    @pytest.mark.parametrize("amount", [float("nan"), float("inf")])
    async def test_419_non_finite_expense_rejected(self, db, session_factory, amount):
        """A non-finite expense is refused before the expense row or the decrement."""
        hostel_id = await seed_hostel(session_factory, mess_budget=500, remaining=400, year=2024)
        with pytest.raises(InvalidAmountError):
            await BudgetLedger(db).record_mess_expense(hostel_id, amount)

        h = await db.get(Hostel, hostel_id)
        assert h.mess_budget_remaining == 400
        count = (await db.execute(select(func.count(MessExpense.id)))).scalar_one()
        assert count == 0
