"""Logging setup for the API process and Celery workers.

``setup_logger()`` runs once at process start. It attaches handlers to the
``agencyflow`` logger; modules log through ``logging.getLogger(__name__)``
and inherit them. Chatty client libraries are held at WARNING so request
logs are not buried under per-call HTTP and SQL lines.
"""

import logging
import logging.handlers
import os
from typing import Optional

from agencyflow.core.config import get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Outbox delivery and the ORM log every call at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def setup_logger(
    name: str = "agencyflow",
    log_dir: Optional[str] = None,
    level: Optional[str] = None,
    file_logging: Optional[bool] = None,
    console_logging: bool = True,
) -> logging.Logger:
    """Configure the application logger.

    Unset arguments fall back to ``LOG_LEVEL``, ``LOG_DIR`` and
    ``FILE_LOGGING``. The file handler rotates at 10MB and keeps 5 files.
    Calling again only changes the level.

    Raises:
        ValueError: If the level name is not a standard logging level
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    if level_name not in LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of: {', '.join(LEVELS)}")

    logger = logging.getLogger(name)
    logger.setLevel(level_name)

    # The API and a worker can share an interpreter in tests
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if file_logging if file_logging is not None else settings.file_logging:
        log_dir = log_dir or settings.log_dir
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"), maxBytes=10485760, backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_logging:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    for quiet in QUIET_LOGGERS:
        logging.getLogger(quiet).setLevel(logging.WARNING)

    return logger
