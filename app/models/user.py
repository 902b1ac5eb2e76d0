import datetime
import uuid
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, ForeignKey, Boolean, String, JSON, Uuid
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base

if TYPE_CHECKING:
    from .client import Client
    from .direction import Direction
    from .department import Department
    from .section import Section
    from .notification import Notification


class User(Base):
    """
    ORM model for the 'users' table.

    `role` holds one of the system role names; `permissions` is an optional
    explicit list of permission tokens that overrides the role defaults.
    Users are deactivated (`is_active = False`), never deleted.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(50), index=True)
    permissions: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("clients.id"), nullable=True, index=True)
    direction_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("directions.id"), nullable=True, index=True)
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("departments.id"), nullable=True, index=True)
    section_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("sections.id"), nullable=True, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    last_login: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    client: Mapped[Optional["Client"]] = relationship("Client", back_populates="users", lazy="selectin")
    direction: Mapped[Optional["Direction"]] = relationship("Direction", lazy="selectin")
    department: Mapped[Optional["Department"]] = relationship("Department", lazy="selectin")
    section: Mapped[Optional["Section"]] = relationship("Section", lazy="selectin")
    notifications: Mapped[List["Notification"]] = relationship(
        "Notification",
        back_populates="user",
        lazy="select",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"
