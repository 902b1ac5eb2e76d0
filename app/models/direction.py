import uuid
from typing import TYPE_CHECKING, List, Optional
from datetime import datetime

from sqlalchemy import Boolean, String, Text, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base

if TYPE_CHECKING:
    from .client import Client
    from .department import Department


class Direction(Base):
    """
    Top level of the organizational hierarchy (Direction -> Department -> Section).
    """
    __tablename__ = "directions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("clients.id"), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(200), index=True)
    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client: Mapped[Optional["Client"]] = relationship("Client", lazy="selectin")
    departments: Mapped[List["Department"]] = relationship("Department", back_populates="direction", lazy="select")

    def __repr__(self) -> str:
        return f"<Direction(id={self.id}, name='{self.name}')>"
