"""
Logging setup for applications using the Quoine client.

Only the "quoine" logger hierarchy is configured. Handlers the application
has put on the root logger (or anywhere else) are left alone, and calling
setup_logging again replaces just the handlers it installed before.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from config.settings import LoggingConfig

LOGGER_NAME = "quoine"

CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_FORMAT = (
    "%(asctime)s [%(levelname)s] %(name)s "
    "(%(filename)s:%(lineno)d): %(message)s"
)

_installed_handlers: List[logging.Handler] = []


def _level_value(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def _remove_installed_handlers(logger: logging.Logger) -> None:
    for handler in _installed_handlers:
        logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the quoine logger hierarchy.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path for logging
        propagate: Also pass records on to the root logger's handlers

    Returns:
        The configured "quoine" logger

    Raises:
        ValueError: If level is not a known log level
    """
    level_value = _level_value(level)
    logger = logging.getLogger(LOGGER_NAME)

    _remove_installed_handlers(logger)
    logger.setLevel(level_value)
    logger.propagate = propagate

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level_value)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)  # Log everything to file
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)
        _installed_handlers.append(file_handler)

    # Request URLs carry query strings; keep urllib3 quiet
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logger


def setup_logging_from_config(config: LoggingConfig) -> logging.Logger:
    """Configure logging from a LoggingConfig."""
    return setup_logging(config.level, config.file_path)
