"""Student fee ledgers.

``fee_collections`` records money collected at the counter; ``fee_payments``
tracks each billed component with its due and paid amounts.  A payment is
recorded in exactly one of the two, so their paid totals are additive.
"""
from __future__ import annotations

import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, Double, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eduadmin.database import Base
from eduadmin.models.base import IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from eduadmin.models.agent import Student


class FeeCollection(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "fee_collections"

    student_id: Mapped[int] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount_paid: Mapped[float] = mapped_column(Double, nullable=False)
    payment_date: Mapped[datetime.date] = mapped_column(
        Date, nullable=False, default=datetime.date.today, server_default=func.current_date()
    )
    payment_method: Mapped[str | None] = mapped_column(String(50))
    receipt_number: Mapped[str | None] = mapped_column(String(50))

    student: Mapped[Student] = relationship("Student", back_populates="fee_collections")

    def __repr__(self) -> str:
        return f"<FeeCollection student={self.student_id} paid={self.amount_paid}>"


class FeePayment(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "fee_payments"

    student_id: Mapped[int] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount_due: Mapped[float] = mapped_column(Double, nullable=False)
    amount_paid: Mapped[float | None] = mapped_column(Double)
    due_date: Mapped[datetime.date | None] = mapped_column(Date)
    payment_status: Mapped[str | None] = mapped_column(String(20))

    student: Mapped[Student] = relationship("Student", back_populates="fee_payments")

    def __repr__(self) -> str:
        return (
            f"<FeePayment student={self.student_id} "
            f"due={self.amount_due} paid={self.amount_paid}>"
        )
