"""
Logging setup for the scope calculator.

Every handler installed by setup_logging carries the session filter, so a
format string may reference %(session_id)s and %(stage)s even for records
logged outside a wizard request.
"""

import logging
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(session_id)s] %(message)s"


# Each asyncio task (one per request) works on its own copy.
_log_context: ContextVar[Dict[str, Any]] = ContextVar("scope_log_context", default={})


class ContextFilter(logging.Filter):
    """Stamps records with the wizard session and stage of the current task."""

    FIELDS = ("session_id", "stage")

    def filter(self, record: logging.LogRecord) -> bool:
        for name in self.FIELDS:
            if not hasattr(record, name):
                setattr(record, name, "-")
        record.__dict__.update(_log_context.get())
        return True


_session_filter = ContextFilter()


def _configure(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(_session_filter)
    return handler


def setup_logging(
    level: str = "INFO",
    log_format: str = DEFAULT_FORMAT,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Route every module logger through the root logger.

    Handlers installed earlier are replaced. When ``log_file`` is given its
    parent directory is created if missing.

    Args:
        level: Level name; unknown names fall back to INFO
        log_format: logging.Formatter format string
        log_file: Optional path of a log file written next to the console

    Returns:
        The root logger
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    formatter = logging.Formatter(log_format)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(_configure(handler, numeric_level, formatter))

    return root_logger


def set_context(**fields):
    """
    Attach fields to every following log record of the current task.

    Example:
        set_context(session_id="a1b2c3", stage="review")
        logger.info("Applied toggle")  # rendered with [a1b2c3]
    """
    _log_context.set({**_log_context.get(), **fields})


def clear_context():
    _log_context.set({})
