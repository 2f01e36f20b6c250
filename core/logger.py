"""
Logging configuration for the receipt parser.
Every module gets a stdout logger; API keys and file bytes are never logged.
"""
import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Names handed out by setup_logger, so the level can be changed after startup
_configured_loggers = set()


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env LOG_LEVEL or INFO.

    Returns:
        Configured logger instance
    """
    log_level = getattr(logging, (level or os.getenv("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        # Avoid printing twice when the root logger is configured (uvicorn, pytest)
        logger.propagate = False

    _configured_loggers.add(name)
    return logger


def set_log_level(level: str) -> None:
    """
    Apply a log level to every logger created through setup_logger.

    Args:
        level: Log level name
    """
    log_level = getattr(logging, level.upper())
    for name in _configured_loggers:
        logging.getLogger(name).setLevel(log_level)
