import uuid
from typing import TYPE_CHECKING, List, Optional
from datetime import datetime

from sqlalchemy import Boolean, String, Text, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base

if TYPE_CHECKING:
    from .direction import Direction
    from .section import Section


class Department(Base):
    """
    Second level of the hierarchy; the Direction is optional.
    """
    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("clients.id"), nullable=True, index=True)
    direction_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("directions.id"), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(200), index=True)
    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    direction: Mapped[Optional["Direction"]] = relationship("Direction", back_populates="departments", lazy="selectin")
    sections: Mapped[List["Section"]] = relationship("Section", back_populates="department", lazy="select")

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, name='{self.name}')>"
