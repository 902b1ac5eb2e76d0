import logging
from typing import Any, List
from uuid import UUID as PyUUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from app.api import deps
from app.models.notification import Notification as NotificationModel
from app.models.user import User as UserModel
from app.schemas.common import Msg
from app.schemas.notification import Notification, NotificationUpdate, NotificationCount
from app.services.notification import notification_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_own_notification(db: Session, notification_id: PyUUID, current_user: UserModel) -> NotificationModel:
    notification = notification_service.get_or_404(db, id=notification_id)
    if notification.user_id != current_user.id:
        logger.warning(f"User {current_user.username} tried to access notification {notification_id} of another user.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot access this notification.")
    return notification


@router.get("/me", response_model=List[Notification], summary="My notifications")
def read_my_notifications(
    db: Session = Depends(deps.get_db),
    current_user: UserModel = Depends(deps.get_current_active_user),
    unread_only: bool = Query(False, description="Only unread notifications"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> Any:
    """Notifications of the current user, newest first."""
    return notification_service.get_multi_by_user(
        db, user_id=current_user.id, unread_only=unread_only, skip=skip, limit=limit
    )


@router.get("/me/unread-count", response_model=NotificationCount, summary="Number of unread notifications")
def read_unread_count(
    db: Session = Depends(deps.get_db),
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    return {"unread_count": notification_service.get_unread_count_by_user(db, user_id=current_user.id)}


@router.post("/me/mark-all-read", response_model=Msg, summary="Mark all my notifications as read")
def mark_all_read(
    db: Session = Depends(deps.get_db),
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    try:
        updated = notification_service.mark_all_as_read_for_user(db, user_id=current_user.id)
        db.commit()
        return {"msg": f"{updated} notification(s) marked as read."}
    except Exception:
        db.rollback()
        raise


@router.put("/{notification_id}/read", response_model=Notification, summary="Mark a notification as read or unread")
def mark_notification(
    *,
    db: Session = Depends(deps.get_db),
    notification_id: PyUUID,
    state_in: NotificationUpdate,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    notification = _get_own_notification(db, notification_id, current_user)
    try:
        notification = notification_service.mark_as(db, db_obj=notification, read_status=state_in.is_read)
        db.commit()
        db.refresh(notification)
        return notification
    except Exception:
        db.rollback()
        raise


@router.delete("/{notification_id}", response_model=Msg, summary="Delete one of my notifications")
def delete_notification(
    *,
    db: Session = Depends(deps.get_db),
    notification_id: PyUUID,
    current_user: UserModel = Depends(deps.get_current_active_user),
) -> Any:
    _get_own_notification(db, notification_id, current_user)
    try:
        notification_service.remove(db, id=notification_id)
        db.commit()
        logger.info(f"Notification {notification_id} deleted by {current_user.username}.")
        return {"msg": "Notification deleted."}
    except Exception:
        db.rollback()
        raise
