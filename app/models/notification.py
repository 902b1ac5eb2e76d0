import uuid
from typing import TYPE_CHECKING, Optional
from datetime import datetime

from sqlalchemy import String, Text, DateTime, func, ForeignKey, Integer, Boolean, Uuid
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base

if TYPE_CHECKING:
    from .user import User


class Notification(Base):
    """
    ORM model for the 'notifications' table. Rows are what the REST list and
    the realtime `notification` event deliver to a user.
    """
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    message: Mapped[str] = mapped_column(Text)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    urgency: Mapped[int] = mapped_column(Integer, default=0, index=True)
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    reference_table: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="notifications", lazy="selectin")

    def __repr__(self) -> str:
        state = "read" if self.is_read else "unread"
        return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.type}', state='{state}')>"
