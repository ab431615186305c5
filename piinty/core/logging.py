"""
Logging setup shared by the API process and scripts.

Usage:
    from piinty.core.logging import setup_logging
    setup_logging()
    logger = logging.getLogger(__name__)
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from piinty.core.config import settings


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 7

# Loggers that are too chatty at INFO
NOISY_LOGGERS = [
    "pymongo",
    "motor",
    "httpcore",
    "httpx",
    "asyncio",
    "multipart",
]


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure the root logger.

    Args:
        level: level name for the console handler (default: settings.LOG_LEVEL)
        log_file: optional path of a daily-rotated log file (default: settings.LOG_FILE)

    Returns:
        The configured root logger.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    console_level = logging.getLevelName(level_name)
    if not isinstance(console_level, int):
        console_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file = log_file or settings.LOG_FILE
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=path,
            when="midnight",
            interval=1,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setLevel(console_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialised at {logging.getLevelName(console_level)}")
    if log_file:
        root_logger.info(f"  - file: {log_file} (daily rotation, {LOG_FILE_BACKUP_COUNT} kept)")

    return root_logger
