import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Optional
from datetime import datetime, timezone

from sqlalchemy import (
    Integer, String, Text, DateTime, Numeric, ForeignKey, Uuid, CheckConstraint
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base

if TYPE_CHECKING:
    from .hours_bank import HoursBank
    from .user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HoursBankTransaction(Base):
    """
    Append-only ledger entry of an hours bank. Rows are never updated or deleted.
    """
    __tablename__ = "hours_bank_transactions"
    __table_args__ = (
        CheckConstraint("type IN ('addition', 'consumption')", name="type_valid"),
        CheckConstraint("hours > 0", name="hours_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bank_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("hours_banks.id", ondelete="CASCADE"), index=True)
    type: Mapped[str] = mapped_column(String(20), index=True)
    hours: Mapped[Decimal] = mapped_column(Numeric(18, 6))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ticket_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    performed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    # Set in Python so rows written in one transaction keep a stable order.
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)

    bank: Mapped["HoursBank"] = relationship("HoursBank", back_populates="transactions")
    performed_by: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return f"<HoursBankTransaction(id={self.id}, bank_id={self.bank_id}, type='{self.type}', hours={self.hours})>"
