import uuid
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict

from .enums import NotificationTypeEnum


class NotificationBase(BaseModel):
    message: str = Field(..., description="Notification text")
    type: Optional[NotificationTypeEnum] = NotificationTypeEnum.INFO
    urgency: int = Field(0, ge=0, le=2, description="0 low, 1 medium, 2 high")
    reference_id: Optional[uuid.UUID] = None
    reference_table: Optional[str] = Field(None, max_length=100)

class NotificationCreate(NotificationBase):
    user_id: uuid.UUID

class NotificationUpdate(BaseModel):
    """Only the read state can be changed."""
    is_read: bool

class Notification(NotificationBase):
    id: uuid.UUID
    user_id: uuid.UUID
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class NotificationCount(BaseModel):
    unread_count: int
