"""
Process-wide output state: sinks, reporters and the fatal handler.

Every ``Logger`` reads a ``LoggingState`` at call time. The module-level
functions operate on the default instance shared by all loggers that weren't
given their own.
"""

from __future__ import annotations

import os
import sys
import threading
from typing import Any, Callable, NamedTuple

from .severity import Severity

Reporter = Callable[[BaseException, str, Severity, dict[str, str]], None]
FatalHandler = Callable[[BaseException], None]


class Outputs(NamedTuple):
    error_out: Any
    debug_out: Any

    def for_severity(self, severity: Severity) -> Any:
        return self.error_out if severity.is_error else self.debug_out


class LoggingState:
    """
    Lock-guarded configuration slots.

    Each slot has its own lock, held only while reading or replacing the slot
    value. Sinks left unset resolve to the current ``sys.stderr`` (errors) and
    ``sys.stdout`` (debug) at write time.
    """

    def __init__(self) -> None:
        self._outputs_lock = threading.Lock()
        self._error_out: Any = None
        self._debug_out: Any = None

        self._reporters_lock = threading.Lock()
        self._reporters: list[Reporter] = []

        self._fatal_lock = threading.Lock()
        self._fatal_handler: FatalHandler | None = None

    # -------------------------------------------------------------------------
    # Outputs
    # -------------------------------------------------------------------------

    def set_outputs(self, error_out: Any, debug_out: Any) -> None:
        with self._outputs_lock:
            self._error_out = error_out
            self._debug_out = debug_out

    def get_outputs(self) -> Outputs:
        with self._outputs_lock:
            error_out, debug_out = self._error_out, self._debug_out
        return Outputs(
            error_out if error_out is not None else sys.stderr,
            debug_out if debug_out is not None else sys.stdout,
        )

    # -------------------------------------------------------------------------
    # Reporters
    # -------------------------------------------------------------------------

    def register_reporter(self, reporter: Reporter) -> None:
        """Register a callback invoked on every ERROR and FATAL log call."""
        with self._reporters_lock:
            self._reporters.append(reporter)

    def reporters(self) -> tuple[Reporter, ...]:
        with self._reporters_lock:
            return tuple(self._reporters)

    # -------------------------------------------------------------------------
    # Fatal handler
    # -------------------------------------------------------------------------

    def on_fatal(self, handler: FatalHandler) -> None:
        """Replace the action taken after a FATAL log call."""
        with self._fatal_lock:
            self._fatal_handler = handler

    def fatal_handler(self) -> FatalHandler:
        with self._fatal_lock:
            handler = self._fatal_handler
        return handler if handler is not None else self._exit

    def _exit(self, err: BaseException) -> None:
        for out in self.get_outputs():
            flush = getattr(out, "flush", None)
            if flush is not None:
                try:
                    flush()
                except (OSError, ValueError):
                    pass
        os._exit(1)

    def reset(self) -> None:
        """Restore defaults: standard streams, no reporters, exit on fatal."""
        self.set_outputs(None, None)
        with self._reporters_lock:
            self._reporters.clear()
        with self._fatal_lock:
            self._fatal_handler = None


_default_state = LoggingState()


def default_state() -> LoggingState:
    return _default_state


def set_outputs(error_out: Any, debug_out: Any) -> None:
    _default_state.set_outputs(error_out, debug_out)


def get_outputs() -> Outputs:
    return _default_state.get_outputs()


def register_reporter(reporter: Reporter) -> None:
    _default_state.register_reporter(reporter)


def on_fatal(handler: FatalHandler) -> None:
    _default_state.on_fatal(handler)
