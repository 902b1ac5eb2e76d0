import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from app.core.config import settings

LOGS_DIR = Path(settings.LOG_DIR)
LOG_FILENAME = LOGS_DIR / "servicedesk.log"

LOG_LEVEL = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)-8s] [%(name)s] [%(process)d:%(threadName)s] [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def _build_handlers() -> list[logging.Handler]:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(LOG_LEVEL)

    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    # Rotates at midnight, keeps two weeks
    file_handler = TimedRotatingFileHandler(
        filename=LOG_FILENAME,
        when="midnight",
        interval=1,
        backupCount=14,
        encoding='utf-8',
        delay=True,
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(LOG_LEVEL)
    return [console_handler, file_handler]


def setup_logging():
    """Configures the root logger handlers and the level of noisy third-party loggers."""
    root_logger = logging.getLogger()
    root_logger.setLevel(LOG_LEVEL)
    # --reload imports twice; avoid duplicated handlers
    root_logger.handlers.clear()
    for handler in _build_handlers():
        root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.ERROR)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    root_logger.info("=" * 50)
    root_logger.info("Logging configured")
    root_logger.info(f"Log level: {logging.getLevelName(LOG_LEVEL)}")
    root_logger.info(f"Log file: {LOG_FILENAME}")
    root_logger.info("=" * 50)
