import uuid
from typing import TYPE_CHECKING, Optional
from datetime import datetime

from sqlalchemy import Boolean, String, Text, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base

if TYPE_CHECKING:
    from .direction import Direction
    from .department import Department


class Section(Base):
    """
    Third level of the hierarchy. A section has no direction column of its
    own: its direction is always the one of its department.
    """
    __tablename__ = "sections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("clients.id"), nullable=True, index=True)
    department_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("departments.id"), index=True)
    name: Mapped[str] = mapped_column(String(200), index=True)
    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    department: Mapped["Department"] = relationship("Department", back_populates="sections", lazy="selectin")

    @property
    def direction(self) -> Optional["Direction"]:
        return self.department.direction if self.department else None

    @property
    def direction_id(self) -> Optional[uuid.UUID]:
        return self.department.direction_id if self.department else None

    def __repr__(self) -> str:
        return f"<Section(id={self.id}, name='{self.name}', department_id={self.department_id})>"
