import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from datetime import date, datetime

from sqlalchemy import (
    Boolean, String, Text, Date, DateTime, Numeric, ForeignKey, Uuid, CheckConstraint, func
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base

if TYPE_CHECKING:
    from .client import Client
    from .hours_bank_transaction import HoursBankTransaction


class HoursBank(Base):
    """
    Prepaid support hours of a client.

    `total_hours` only grows through additions and `used_hours` only through
    consumptions; the available balance is always derived from both.
    """
    __tablename__ = "hours_banks"
    __table_args__ = (
        CheckConstraint("total_hours >= 0", name="total_hours_non_negative"),
        CheckConstraint("used_hours >= 0", name="used_hours_non_negative"),
        CheckConstraint("min_balance IS NULL OR min_balance <= 0", name="min_balance_non_positive"),
        CheckConstraint(
            "(allow_negative_balance = false AND used_hours <= total_hours) OR "
            "(allow_negative_balance = true AND (min_balance IS NULL OR total_hours - used_hours >= min_balance))",
            name="balance_floor",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("clients.id"), index=True)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(18, 6), default=Decimal("0"))
    used_hours: Mapped[Decimal] = mapped_column(Numeric(18, 6), default=Decimal("0"))
    allow_negative_balance: Mapped[bool] = mapped_column(Boolean, default=False)
    min_balance: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 6), nullable=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    package_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client: Mapped["Client"] = relationship("Client", back_populates="hours_banks", lazy="selectin")
    transactions: Mapped[List["HoursBankTransaction"]] = relationship(
        "HoursBankTransaction",
        back_populates="bank",
        order_by="HoursBankTransaction.created_at.desc()",
        lazy="select",
    )

    @property
    def available_hours(self) -> Decimal:
        return (self.total_hours or Decimal("0")) - (self.used_hours or Decimal("0"))

    def __repr__(self) -> str:
        return (
            f"<HoursBank(id={self.id}, client_id={self.client_id}, "
            f"total={self.total_hours}, used={self.used_hours})>"
        )
