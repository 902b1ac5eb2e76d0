import logging
from typing import List, Optional
from uuid import UUID
from datetime import datetime, timezone

from sqlalchemy.orm import Session
from sqlalchemy import select, update, func as sql_func

from app.models.notification import Notification
from app.models.user import User
from app.schemas.enums import NotificationTypeEnum
from app.schemas.notification import NotificationCreate, NotificationUpdate
from .base_service import BaseService

logger = logging.getLogger(__name__)

class NotificationService(BaseService[Notification, NotificationCreate, NotificationUpdate]):

    def create_internal(self, db: Session, *, obj_in: NotificationCreate) -> Notification:
        logger.debug(f"Creating internal notification for user ID: {obj_in.user_id}, message: '{obj_in.message[:30]}...'")
        if not obj_in.message:
            raise ValueError("The notification message cannot be empty.")
        obj_in_data = obj_in.model_dump()
        obj_in_data["type"] = obj_in.type.value if obj_in.type else None
        db_obj = self.model(**obj_in_data, is_read=False, read_at=None)
        db.add(db_obj)
        logger.info(f"Notification for user ID {db_obj.user_id} prepared for creation.")
        return db_obj

    def notify_users(
        self,
        db: Session,
        *,
        users: List[User],
        message: str,
        type: NotificationTypeEnum = NotificationTypeEnum.INFO,
        urgency: int = 0,
        reference_id: Optional[UUID] = None,
        reference_table: Optional[str] = None,
    ) -> List[Notification]:
        """One notification per user. Does NOT call db.commit()."""
        return [
            self.create_internal(
                db,
                obj_in=NotificationCreate(
                    user_id=user.id,
                    message=message,
                    type=type,
                    urgency=urgency,
                    reference_id=reference_id,
                    reference_table=reference_table,
                ),
            )
            for user in users
        ]

    def mark_as(self, db: Session, *, db_obj: Notification, read_status: bool) -> Notification:
        if db_obj.is_read == read_status:
            logger.debug(f"Notification ID {db_obj.id} already has is_read={read_status}. Nothing to change.")
            return db_obj

        db_obj.is_read = read_status
        db_obj.read_at = datetime.now(timezone.utc) if read_status else None
        db.add(db_obj)
        logger.info(f"Notification ID {db_obj.id} prepared for update to is_read={read_status}.")
        return db_obj

    def mark_all_as_read_for_user(self, db: Session, *, user_id: UUID) -> int:
        statement = (
            update(self.model)
            .where(self.model.user_id == user_id, self.model.is_read.is_(False))
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        affected_rows = db.execute(statement).rowcount
        logger.info(f"{affected_rows} notification(s) of user ID {user_id} prepared to be marked as read.")
        return affected_rows

    def get_multi_by_user(
        self, db: Session, *, user_id: UUID, unread_only: bool = False, skip: int = 0, limit: int = 50
    ) -> List[Notification]:
        statement = select(self.model).where(self.model.user_id == user_id)
        if unread_only:
            statement = statement.where(self.model.is_read.is_(False))
        statement = statement.order_by(self.model.created_at.desc(), self.model.id).offset(skip).limit(limit)
        return list(db.execute(statement).scalars().all())

    def get_unread_count_by_user(self, db: Session, *, user_id: UUID) -> int:
        statement = select(sql_func.count(self.model.id)).where(
            self.model.user_id == user_id,
            self.model.is_read.is_(False),
        )
        return db.execute(statement).scalar_one_or_none() or 0

notification_service = NotificationService(Notification)
