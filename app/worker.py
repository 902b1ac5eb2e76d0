import logging
from celery import Celery
from celery.schedules import crontab

from app.core.config import settings
from app.core.logging_config import setup_logging

# The worker process logs like the API
setup_logging()
logger = logging.getLogger(__name__)
logger.info("Configuring Celery worker...")

celery_app = Celery(
    "worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.tasks.notification_tasks", "app.tasks.hours_bank_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "deactivate-expired-hours-banks": {
            "task": "tasks.deactivate_expired_hours_banks",
            "schedule": crontab(hour=2, minute=0),
        },
    },
)

logger.info(f"Celery worker configured. Broker: {settings.CELERY_BROKER_URL}")

# celery -A app.worker worker --loglevel=info
# celery -A app.worker beat --loglevel=info
