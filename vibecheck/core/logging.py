"""
Logging configuration for VibeCheck.

The API, the runner and the seed command share one setup: console output plus
two size-rotated files under LOG_DIR, one with everything and one with errors
only. Modules log through the shared ``logger``.
"""

import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path
from typing import Optional, Union

from vibecheck.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = "vibecheck.log"
ERROR_LOG_FILE = "error.log"

# Chatty dependencies and the level they are held at
QUIET_LOGGERS = {
    "aiohttp": logging.WARNING,
    "sqlalchemy": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=settings.LOG_MAX_BYTES,
        backupCount=settings.LOG_BACKUP_COUNT,
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for the service.

    Replaces any handlers already on the root logger, so calling it again
    reconfigures rather than duplicates output.

    Args:
        log_dir: Directory for the log files, defaults to LOG_DIR.
        level: Root level name, defaults to LOG_LEVEL.

    Returns:
        The "vibecheck" logger.
    """
    log_path = Path(log_dir or settings.LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)
    root_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if isinstance(handler, RotatingFileHandler):
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_rotating_handler(log_path / LOG_FILE, logging.DEBUG, formatter))
    root_logger.addHandler(_rotating_handler(log_path / ERROR_LOG_FILE, logging.ERROR, formatter))

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    return logging.getLogger("vibecheck")


# Create logger instance
logger = setup_logging()
