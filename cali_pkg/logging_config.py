"""Structured logging configuration for Cali."""

import logging
import sys
from datetime import datetime
from typing import Optional

from . import config


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs structured log entries with timestamp, module, level, and message."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()
        message = f"{timestamp} [{record.levelname}] {record.name}: {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    console: Optional[bool] = None,
) -> logging.Logger:
    """Set up structured logging for the calculator core.

    Called once by the front end at startup. A full-screen terminal UI owns
    the terminal, so when a log file is given the stderr handler is left out
    unless ``console`` asks for it.

    Args:
        level: Logging level name (defaults to ``CALI_LOG_LEVEL``)
        log_file: File path to write logs to (defaults to ``CALI_LOG_FILE``)
        console: Also log to stderr (defaults to True only without a log file)

    Returns:
        The configured ``cali`` logger
    """
    level = level or config.LOG_LEVEL
    log_file = log_file or config.LOG_FILE
    if console is None:
        console = log_file is None

    logger = logging.getLogger("cali")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = StructuredFormatter()
    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "cali") -> logging.Logger:
    """Get a logger instance for a module.

    Args:
        name: Logger name (typically module name)

    Returns:
        Logger instance
    """
    return logging.getLogger(f"cali.{name}")


def safe_log(
    module_name: str, level: str, message: str, *args, exc_info: bool = False, **kwargs
) -> None:
    """Log a message without ever letting a logging failure reach the caller.

    Used from code paths that must not raise, such as the rate refresh that
    runs while the exchange-rate lock is held.

    Args:
        module_name: Module name for the logger
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        message: Log message format string
        *args: Arguments for message formatting
        exc_info: If True, include exception traceback
        **kwargs: Additional keyword arguments for logging
    """
    try:
        logger = get_logger(module_name)
        log_func = getattr(logger, level.lower(), logger.info)
        if exc_info:
            log_func(message, *args, exc_info=True, **kwargs)
        else:
            log_func(message, *args, **kwargs)
    except Exception:
        # A broken handler must not fail a calculation
        pass
