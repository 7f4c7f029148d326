"""Recruitment agents and the students they refer."""
from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Double, ForeignKey, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eduadmin.database import Base
from eduadmin.models.base import IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from eduadmin.models.fees import FeeCollection, FeePayment


class Agent(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """An external agent paid a percentage of the fees of referred students."""
    __tablename__ = "agents"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_person: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50))
    location: Mapped[str | None] = mapped_column(String(200))
    # Percentage, 0-100
    commission_rate: Mapped[float | None] = mapped_column(Double)
    status: Mapped[str | None] = mapped_column(
        String(20), default="Active", server_default=text("'Active'")
    )

    # ------ relationships ------
    students: Mapped[list[Student]] = relationship(
        "Student",
        back_populates="agent",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_person": self.contact_person,
            "email": self.email,
            "phone": self.phone,
            "location": self.location,
            "commission_rate": self.commission_rate,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Agent {self.name!r} rate={self.commission_rate}>"


class Student(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """A student application, optionally referred by an agent."""
    __tablename__ = "students"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(200))
    agent_id: Mapped[int | None] = mapped_column(
        ForeignKey("agents.id", ondelete="SET NULL"),
        index=True,
    )

    # ------ relationships ------
    agent: Mapped[Agent | None] = relationship("Agent", back_populates="students")
    fee_collections: Mapped[list[FeeCollection]] = relationship(
        "FeeCollection",
        back_populates="student",
    )
    fee_payments: Mapped[list[FeePayment]] = relationship(
        "FeePayment",
        back_populates="student",
    )

    def __repr__(self) -> str:
        return f"<Student {self.first_name} {self.last_name} agent={self.agent_id}>"
