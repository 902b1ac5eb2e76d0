import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional
from datetime import date, datetime

from sqlalchemy import (
    Boolean, Integer, String, Text, Date, DateTime, Numeric, ForeignKey, Uuid, JSON, CheckConstraint, func
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base

if TYPE_CHECKING:
    from .client import Client


class License(Base):
    """
    Software license owned by a client, with seat accounting.
    """
    __tablename__ = "licenses"
    __table_args__ = (
        CheckConstraint("total_seats >= 0", name="total_seats_non_negative"),
        CheckConstraint("used_seats >= 0 AND used_seats <= total_seats", name="used_seats_within_total"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("clients.id"), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    vendor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    product: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    license_key: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    license_type: Mapped[str] = mapped_column(String(50), default="subscription", index=True)
    total_seats: Mapped[int] = mapped_column(Integer, default=1)
    used_seats: Mapped[int] = mapped_column(Integer, default=0)
    purchase_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(50), default="active", index=True)
    auto_renew: Mapped[bool] = mapped_column(Boolean, default=False)
    purchase_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    renewal_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="EUR")
    billing_cycle: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    supplier: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    extra_data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client: Mapped[Optional["Client"]] = relationship("Client", lazy="selectin")

    @property
    def available_seats(self) -> int:
        return max((self.total_seats or 0) - (self.used_seats or 0), 0)

    def __repr__(self) -> str:
        return f"<License(id={self.id}, name='{self.name}', seats={self.used_seats}/{self.total_seats})>"
