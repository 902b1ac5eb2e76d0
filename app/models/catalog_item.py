import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from datetime import datetime

from sqlalchemy import Boolean, Integer, String, Text, DateTime, Numeric, ForeignKey, Uuid, JSON, func
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base

if TYPE_CHECKING:
    from .catalog_category import CatalogCategory


class CatalogItem(Base):
    """
    Requestable entry of the service catalog. `item_type` decides how the
    ticket is routed and whether the approval step applies.
    """
    __tablename__ = "catalog_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("catalog_categories.id"), index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    short_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    full_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    item_type: Mapped[str] = mapped_column(String(20), default="service", index=True)
    default_priority: Mapped[str] = mapped_column(String(20), default="medium")
    requires_approval: Mapped[bool] = mapped_column(Boolean, default=False)
    skip_approval_for_incidents: Mapped[bool] = mapped_column(Boolean, default=True)
    default_direction_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("directions.id"), nullable=True)
    default_department_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("departments.id"), nullable=True)
    default_section_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("sections.id"), nullable=True)
    estimated_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    estimated_delivery_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    keywords: Mapped[List[str]] = mapped_column(JSON, default=list)
    order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category: Mapped["CatalogCategory"] = relationship("CatalogCategory", back_populates="items", lazy="selectin")

    def __repr__(self) -> str:
        return f"<CatalogItem(id={self.id}, name='{self.name}', item_type='{self.item_type}')>"
