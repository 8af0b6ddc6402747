# app/core/logging_config.py

import logging
from logging.handlers import RotatingFileHandler
import sys

from app.config import settings

logger = logging.getLogger(__name__)

# Libraries whose chatter would drown out auth failures at INFO
QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "passlib": logging.ERROR,
}


def configure_logging():
    """
    Routes every logger through the root handler(s): stdout always, plus a
    rotating file when running in DEV with LOG_FILE_PATH set.
    """
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    formatter = logging.Formatter(settings.LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if settings.ENVIRONMENT == "DEV" and settings.LOG_FILE_PATH:
        try:
            settings.LOG_FILE_PATH.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                filename=settings.LOG_FILE_PATH,
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            logger.error(f"File logging disabled, cannot open {settings.LOG_FILE_PATH}: {e}")

    for name, library_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(library_level)

    logger.info(f"Logging configured at {logging.getLevelName(level)} for {settings.ENVIRONMENT}.")
