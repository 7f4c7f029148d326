"""Hostels, their annual mess budget, and mess expenses charged against it."""
from __future__ import annotations

import datetime

from sqlalchemy import Date, Double, ForeignKey, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eduadmin.database import Base
from eduadmin.models.base import IntegerPrimaryKeyMixin, TimestampMixin


class Hostel(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A student hostel with a dining hall (mess)."""
    __tablename__ = "hostels"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_occupancy: Mapped[int | None] = mapped_column(Integer, default=0, server_default=text("0"))
    monthly_rent: Mapped[float] = mapped_column(Double, nullable=False, default=0, server_default=text("0"))
    status: Mapped[str | None] = mapped_column(String(20), default="Active", server_default=text("'Active'"))

    # Mess budget; remaining may go negative between allocations
    mess_budget: Mapped[float | None] = mapped_column(Double)
    mess_budget_remaining: Mapped[float | None] = mapped_column(Double)
    mess_budget_year: Mapped[int | None] = mapped_column(Integer)

    # ------ relationships ------
    mess_expenses: Mapped[list[MessExpense]] = relationship(
        "MessExpense",
        back_populates="hostel",
    )

    def __repr__(self) -> str:
        return f"<Hostel {self.name!r} budget={self.mess_budget} remaining={self.mess_budget_remaining}>"


class MessExpense(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A dining-hall expense deducted from the hostel's remaining mess budget."""
    __tablename__ = "mess_expenses"

    hostel_id: Mapped[int] = mapped_column(
        ForeignKey("hostels.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[float] = mapped_column(Double, nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, default="groceries", server_default=text("'groceries'")
    )
    expense_date: Mapped[datetime.date] = mapped_column(
        Date, nullable=False, default=datetime.date.today, server_default=func.current_date()
    )
    vendor_name: Mapped[str | None] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text)

    hostel: Mapped[Hostel] = relationship("Hostel", back_populates="mess_expenses")

    def __repr__(self) -> str:
        return f"<MessExpense hostel={self.hostel_id} amount={self.amount}>"
