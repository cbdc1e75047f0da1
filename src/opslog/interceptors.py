"""
Standard library logging adapter.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .formatters import CallSite

if TYPE_CHECKING:
    from .core import Logger


class ErrorLevelHandler(logging.Handler):
    """
    Forward standard library records to ``Logger.error``.

    Every record goes to the Error path whatever its stdlib level. The record
    is formatted by the stdlib (``msg % args``) and attributed to the stdlib
    caller.
    """

    def __init__(self, logger: Logger):
        super().__init__(level=logging.NOTSET)
        self.logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = record.getMessage()
            self.logger.error_at(msg, CallSite(record.pathname, record.lineno))
        except Exception:
            self.handleError(record)


def as_std_logger(logger: Logger) -> logging.Logger:
    """
    Get a ``logging.Logger`` bound to ``logger``.

    ``std.error("Hello world")`` logs a plain message and
    ``std.error("Hello %s", True)`` a formatted one. Each call returns a new
    stdlib logger outside the ``logging`` registry, so adapters of loggers
    sharing a prefix stay independent. It doesn't propagate, so records never
    reach the root logger's handlers.
    """
    std = logging.Logger(f"opslog.{logger.prefix}", logging.DEBUG)
    std.propagate = False
    std.addHandler(ErrorLevelHandler(logger))
    return std
