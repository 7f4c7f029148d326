"""Hostel & mess routes — mess budget allocation and mess expenses."""
from __future__ import annotations

import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.database import get_db
from eduadmin.middleware.auth import require_access, write_audit_log
from eduadmin.rbac import ROLE_ADMIN, ROLE_HOSTEL_TEAM
from eduadmin.services.authorization import Principal
from eduadmin.services.budget_service import BudgetLedger, budget_summary
from eduadmin.services.errors import InvalidAmountError, NotFoundError

router = APIRouter(prefix="/api/hostels", tags=["hostels"])

HOSTEL_ROLES = [ROLE_ADMIN, ROLE_HOSTEL_TEAM]


class BudgetAllocation(BaseModel):
    # Negative and non-finite amounts are rejected by the ledger with its own message
    amount: float
    year: int | None = Field(None, ge=2000, le=2100)


class MessExpenseCreate(BaseModel):
    amount: float
    category: str = "groceries"
    expense_date: datetime.date | None = None
    vendor_name: str | None = None
    description: str | None = None


def _expense_out(e) -> dict:
    return {
        "id": e.id,
        "hostel_id": e.hostel_id,
        "amount": e.amount,
        "category": e.category,
        "expense_date": str(e.expense_date),
        "vendor_name": e.vendor_name,
        "description": e.description,
    }


# ---------------------------------------------------------------------------
# HOSTELS & BUDGETS
# ---------------------------------------------------------------------------


@router.get("")
async def list_hostels(
    db: AsyncSession = Depends(get_db),
    _user: Principal = Depends(require_access("/hostels")),
):
    """All hostels with their mess budget summary."""
    from eduadmin.models.hostel import Hostel

    result = await db.execute(select(Hostel).order_by(Hostel.name))
    items = []
    for h in result.scalars().all():
        items.append({
            "id": h.id,
            "name": h.name,
            "location": h.location,
            "capacity": h.capacity,
            "current_occupancy": h.current_occupancy,
            "status": h.status,
            "mess_budget": budget_summary(h),
        })
    return {"items": items, "total": len(items)}


@router.get("/{hostel_id}/mess-budget")
async def get_mess_budget(
    hostel_id: int,
    db: AsyncSession = Depends(get_db),
    _user: Principal = Depends(require_access("/mess/budget")),
):
    try:
        hostel = await BudgetLedger(db).get_hostel(hostel_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Hostel not found")
    return budget_summary(hostel)


@router.put("/{hostel_id}/mess-budget")
async def allocate_mess_budget(
    hostel_id: int,
    body: BudgetAllocation,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access("/mess/management")),
):
    """Set the hostel's mess budget.  The remaining balance resets to the
    full amount; spending under the previous allocation is discarded."""
    ledger = BudgetLedger(db)
    try:
        hostel = await ledger.allocate(hostel_id, body.amount, body.year)
    except InvalidAmountError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Hostel not found")

    await write_audit_log(
        db,
        user,
        action="mess_budget.update",
        resource_type="hostel",
        resource_id=str(hostel_id),
        details={"amount": body.amount, "year": hostel.mess_budget_year},
    )
    await db.commit()
    return budget_summary(hostel)


# ---------------------------------------------------------------------------
# MESS EXPENSES
# ---------------------------------------------------------------------------


@router.get("/{hostel_id}/mess-expenses")
async def list_mess_expenses(
    hostel_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    _user: Principal = Depends(require_access("/mess/expenses")),
):
    from eduadmin.models.hostel import MessExpense

    count_stmt = select(func.count(MessExpense.id)).where(MessExpense.hostel_id == hostel_id)
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = (
        select(MessExpense)
        .where(MessExpense.hostel_id == hostel_id)
        .order_by(MessExpense.expense_date.desc(), MessExpense.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(stmt)
    return {
        "items": [_expense_out(e) for e in result.scalars().all()],
        "total": total,
        "page": page,
    }


@router.post("/{hostel_id}/mess-expenses", status_code=201)
async def record_mess_expense(
    hostel_id: int,
    body: MessExpenseCreate,
    db: AsyncSession = Depends(get_db),
    user: Principal = Depends(require_access("/mess/expenses/add", allowed_roles=HOSTEL_ROLES)),
):
    ledger = BudgetLedger(db)
    try:
        expense, hostel = await ledger.record_mess_expense(
            hostel_id,
            body.amount,
            category=body.category,
            expense_date=body.expense_date,
            vendor_name=body.vendor_name,
            description=body.description,
        )
    except InvalidAmountError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Hostel not found")

    await write_audit_log(
        db,
        user,
        action="mess_expense.create",
        resource_type="mess_expense",
        resource_id=str(expense.id),
        details={"hostel_id": hostel_id, "amount": body.amount},
    )
    await db.commit()
    return {**_expense_out(expense), "mess_budget": budget_summary(hostel)}
