"""
Logging setup for hitsaver.

Modules log through children of the ``hitsaver`` logger obtained with
``get_logger``. The command line calls ``configure_logging`` once per
invocation; it attaches a rotating ``processing.log`` and a console stream,
replacing whatever an earlier call attached.
"""
from __future__ import annotations

import logging
import time
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FILE_NAME = "processing.log"
ROOT_LOGGER_NAME = "hitsaver"

LOG_FORMAT = "%(asctime)sZ %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


class UtcFormatter(logging.Formatter):
    """Formatter stamping records in UTC."""

    converter = time.gmtime


def configure_logging(
    log_dir: Path,
    level: int = logging.INFO,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 10,
) -> Logger:
    """
    Attach file and console handlers to the ``hitsaver`` logger.

    Args:
        log_dir: Directory receiving processing.log (created if missing)
        level: Threshold for both handlers
        max_bytes: Rotation size of processing.log
        backup_count: Rotated files kept

    Returns:
        The ``hitsaver`` logger
    """
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    app_logger.setLevel(level)
    _detach_handlers(app_logger)

    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    formatter = UtcFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers = [
        RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"),
        logging.StreamHandler(),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        app_logger.addHandler(handler)

    app_logger.debug("Writing %s (rotate at %d bytes, keep %d)", log_path, max_bytes, backup_count)
    return app_logger


def get_logger(name: Optional[str] = None) -> Logger:
    """Return ``hitsaver.<name>``, or the ``hitsaver`` logger itself."""
    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    return app_logger.getChild(name) if name else app_logger


def _detach_handlers(logger: Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
