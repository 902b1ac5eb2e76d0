import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from app.worker import celery_app
from app.db.session import SessionLocal
from app.models.hours_bank import HoursBank
from app.schemas.enums import NotificationTypeEnum
from app.services.hours_bank import hours_bank_service
from app.services.notification import notification_service
from app.tasks.notification_tasks import get_hours_bank_recipients

logger = logging.getLogger(__name__)


def expire_hours_banks(db: Session, today: Optional[date] = None) -> List[HoursBank]:
    """
    Deactivates the banks past their end date and tells the admins.
    Does NOT call db.commit().
    """
    expired = hours_bank_service.deactivate_expired(db, today=today)
    if not expired:
        return expired

    recipients = get_hours_bank_recipients(db)
    for bank in expired:
        client_name = bank.client.name if bank.client else str(bank.client_id)
        notification_service.notify_users(
            db,
            users=recipients,
            message=f"Hours bank of '{client_name}' expired on {bank.end_date} and was deactivated.",
            type=NotificationTypeEnum.HOURS_BANK_EXPIRED,
            urgency=1,
            reference_id=bank.id,
            reference_table="hours_banks",
        )
    return expired


@celery_app.task(name="tasks.deactivate_expired_hours_banks")
def deactivate_expired_hours_banks() -> str:
    """Nightly beat task, see `celery_app.conf.beat_schedule`."""
    logger.info("Starting task: deactivate expired hours banks")
    db: Session = SessionLocal()
    try:
        expired = expire_hours_banks(db)
        db.commit()
        logger.info(f"Task completed: {len(expired)} hours bank(s) deactivated.")
        return f"{len(expired)} hours bank(s) deactivated"
    except Exception as e:
        db.rollback()
        logger.error(f"Error in task deactivate_expired_hours_banks: {e}", exc_info=True)
        raise
    finally:
        db.close()
