"""Structured logging configuration for Keycalc.

Every record is written as one line::

    2024-05-01T12:00:00 [DEBUG] keycalc.keys: Key op:+ | display='7' pending='+'

The trailing ``| name=value`` part is calculator context. Pass it through
``extra={"calc": {...}}`` (see ``calc_context``) so keystroke traces show
what the screen looked like after each key.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from . import config

ROOT_LOGGER_NAME = "keycalc"


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs timestamp, level, logger name, message and calculator context."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()
        message = f"{timestamp} [{record.levelname}] {record.name}: {record.getMessage()}"
        context = getattr(record, "calc", None)
        if context:
            fields = " ".join(f"{key}={value!r}" for key, value in context.items())
            message = f"{message} | {fields}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def calc_context(**fields: Any) -> dict[str, dict[str, Any]]:
    """Build the ``extra`` mapping for a log call, dropping empty fields.

    Example:
        logger.debug("Key %s", event, extra=calc_context(display="7", pending=None))
    """
    return {"calc": {key: value for key, value in fields.items() if value is not None}}


def setup_logging(
    level: Optional[str] = None, log_file: Optional[str] = None
) -> logging.Logger:
    """Set up structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            defaults to KEYCALC_LOG_LEVEL
        log_file: Optional file path to also write logs to; missing parent
            directories are created

    Returns:
        The configured "keycalc" logger
    """
    level_name = (level or config.LOG_LEVEL).upper()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name, logging.WARNING))

    # Reconfiguring replaces earlier handlers
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get the logger for a Keycalc module ("engine" -> "keycalc.engine")."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def safe_log(
    module_name: str, level: str, message: str, *args, exc_info: bool = False
) -> None:
    """Log a message without letting a broken handler reach the caller.

    Used on the history persistence path, which must never raise into the
    engine.

    Args:
        module_name: Module name for the logger
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        message: Log message format string
        *args: Arguments for message formatting
        exc_info: If True, include exception traceback
    """
    logger = get_logger(module_name)
    log_func = getattr(logger, level.lower(), logger.info)
    try:
        log_func(message, *args, exc_info=exc_info)
    except (OSError, ValueError):
        # A closed stream or bad format string must not break the caller
        pass
