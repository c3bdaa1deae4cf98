"""
Logging configuration for Floor Visualizer.
"""

import logging
from typing import Optional

from FV_Libs.constants import DEFAULT_LOG_LEVEL, LOG_FORMAT


def configure_logging(log_level: str = DEFAULT_LOG_LEVEL, log_file: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args:
        log_level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path to a log file
    """
    level = getattr(logging, str(log_level).upper(), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    handlers = [console_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True,
    )
