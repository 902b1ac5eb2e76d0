import uuid
from typing import TYPE_CHECKING, List, Optional
from datetime import datetime

from sqlalchemy import Boolean, Integer, String, Text, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base

if TYPE_CHECKING:
    from .catalog_item import CatalogItem


class CatalogCategory(Base):
    """
    Node of the service catalog tree. `level` is 1 for roots and parent level + 1 below.
    """
    __tablename__ = "catalog_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("catalog_categories.id"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    level: Mapped[int] = mapped_column(Integer, default=1)
    default_direction_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("directions.id"), nullable=True)
    default_department_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("departments.id"), nullable=True)
    default_section_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("sections.id"), nullable=True)
    order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    parent: Mapped[Optional["CatalogCategory"]] = relationship(
        "CatalogCategory", remote_side=[id], back_populates="children", lazy="selectin"
    )
    children: Mapped[List["CatalogCategory"]] = relationship("CatalogCategory", back_populates="parent", lazy="select")
    items: Mapped[List["CatalogItem"]] = relationship("CatalogItem", back_populates="category", lazy="select")

    def __repr__(self) -> str:
        return f"<CatalogCategory(id={self.id}, name='{self.name}', level={self.level})>"
