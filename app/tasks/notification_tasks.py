import logging
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy import select

from app.worker import celery_app
from app.db.session import SessionLocal
from app.core.rbac_matrix import get_rbac_matrix
from app.models.hours_bank import HoursBank
from app.models.user import User
from app.schemas.enums import NotificationTypeEnum
from app.services.hours_bank import hours_bank_service
from app.services.notification import notification_service

logger = logging.getLogger(__name__)


def get_hours_bank_recipients(db: Session) -> List[User]:
    """Active users holding an admin role."""
    admin_roles = sorted(get_rbac_matrix().admin_roles)
    statement = select(User).where(User.role.in_(admin_roles), User.is_active.is_(True)).order_by(User.username)
    return list(db.execute(statement).scalars().all())


def notify_low_balance(db: Session, bank_id: UUID) -> int:
    """
    Creates a low-balance notification for every admin when the bank is
    still below the threshold. Returns the number of notifications.
    Does NOT call db.commit().
    """
    bank = db.get(HoursBank, bank_id)
    if bank is None:
        logger.warning(f"Low-balance alert skipped: hours bank {bank_id} no longer exists.")
        return 0
    if not hours_bank_service.is_low_balance(bank):
        logger.info(f"Low-balance alert skipped: hours bank {bank_id} was topped up in the meantime.")
        return 0

    available = hours_bank_service.get_available(bank)
    client_name = bank.client.name if bank.client else str(bank.client_id)
    recipients = get_hours_bank_recipients(db)
    notification_service.notify_users(
        db,
        users=recipients,
        message=f"Hours bank of '{client_name}' is running low: {available} hours available.",
        type=NotificationTypeEnum.HOURS_BANK_LOW,
        urgency=2 if available <= 0 else 1,
        reference_id=bank.id,
        reference_table="hours_banks",
    )
    return len(recipients)


@celery_app.task(name="tasks.notify_low_hours_balance")
def notify_low_hours_balance(bank_id: str) -> str:
    """
    Celery task raised after a consumption leaves a bank below
    HOURS_BANK_LOW_BALANCE_THRESHOLD.
    """
    logger.info(f"Starting task: low-balance alert for hours bank {bank_id}")
    db: Session = SessionLocal()
    try:
        sent = notify_low_balance(db, UUID(bank_id))
        db.commit()
        logger.info(f"Task completed: {sent} low-balance notification(s) for hours bank {bank_id}.")
        return f"{sent} notification(s) created"
    except Exception as e:
        db.rollback()
        logger.error(f"Error in task notify_low_hours_balance for bank {bank_id}: {e}", exc_info=True)
        raise
    finally:
        db.close()
