"""
Root logger configuration: stdout plus an optional rotating log file.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import List

from flatpanel_alpaca.config.models import LoggingConfig


LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s]: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def _build_handlers(config: LoggingConfig) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if config.file:
        handlers.append(RotatingFileHandler(
            config.file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        ))

    return handlers


def setup_logging(config: LoggingConfig) -> None:
    """
    Install the driver's handlers on the root logger.

    Any handlers already present are replaced. If the log file cannot be
    opened the driver keeps running with console output only.

    Args:
        config: Logging configuration.
    """
    root = logging.getLogger()
    root.setLevel(config.level)
    root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    try:
        handlers = _build_handlers(config)
        file_error = None
    except OSError as e:
        handlers = [logging.StreamHandler(sys.stdout)]
        file_error = e

    for handler in handlers:
        handler.setLevel(config.level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    if file_error is not None:
        root.error(f"Failed to open log file {config.file}: {file_error}")
    elif config.file:
        root.info(f"Logging to file: {config.file}")

    root.info(f"Logging initialized at level: {config.level}")
