"""
Severity-aware text logging for service code.

Every line carries its call site and the variables of the active operation
context; error-level lines unwind the error's cause chain with stack traces:

    ERROR fetcher: fetch.py:42 Unable to fetch [error=... op=fetch root_op=sync url=...]
    ERROR fetcher: fetch.py:42   at app.fetch.get (fetch.py:40)
    ERROR fetcher: fetch.py:42 Caused by: connection refused

Library: structlog processor chain, pydantic-settings for the trace flag.
"""

from . import ops
from .core import Logger, logger_for
from .errors import ChainError, as_chain
from .severity import Severity
from .state import LoggingState, get_outputs, on_fatal, register_reporter, set_outputs

__all__ = [
    "ChainError",
    "Logger",
    "LoggingState",
    "Severity",
    "as_chain",
    "get_outputs",
    "logger_for",
    "on_fatal",
    "ops",
    "register_reporter",
    "set_outputs",
]
