import uuid
from typing import TYPE_CHECKING, List, Optional
from datetime import datetime

from sqlalchemy import Boolean, String, Text, DateTime, Uuid, func
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base
from .role_permission import RolePermission

if TYPE_CHECKING:
    from .permission import Permission


class Role(Base):
    """
    Backend RBAC role. `name` matches the `users.role` value it grants
    permissions to.
    """
    __tablename__ = "roles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    permissions: Mapped[List["Permission"]] = relationship(
        "Permission",
        secondary=RolePermission.__table__,
        back_populates="roles",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name='{self.name}')>"
