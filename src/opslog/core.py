"""
Core logging engine: the ``Logger`` façade and its processor chain.

A log call runs through a structlog processor chain:

    add_severity -> add_operation_context -> render_error_chain -> render_line

and ends in ``SinkDispatcher``, which writes the rendered text to the sink
for the call's severity, runs reporters for ERROR/FATAL and the fatal handler
for FATAL.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from . import ops
from .config import LoggingSettings, get_logging_settings
from .errors import ChainError, as_chain, caller_frame, format_template
from .formatters import (
    UNKNOWN_CALL_SITE,
    CallSite,
    LineFormatter,
    error_block,
    error_context,
    message_text,
)
from .interceptors import as_std_logger
from .io import NopFile, TraceWriter, report_failure, write_to
from .severity import Severity
from .state import LoggingState, default_state


def _call_site(depth: int = 1) -> CallSite:
    """Location of the caller ``depth`` levels above the function calling this."""
    frame = caller_frame(depth + 1)
    if frame is None:
        return UNKNOWN_CALL_SITE
    return CallSite(frame.f_code.co_filename, frame.f_lineno)


# =============================================================================
# Structlog Processors
# =============================================================================


def add_severity(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["severity"] = Severity.from_method_name(method_name)
    return event_dict


def add_operation_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Snapshot the ambient operation context (globals excluded)."""
    event_dict["context"] = ops.as_map()
    return event_dict


def render_error_chain(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Merge error fields under the current context and build the stack block."""
    chain = as_chain(event_dict.get("err"))
    if chain is None:
        event_dict["block"] = []
        return event_dict

    context = error_context(chain)
    context.update(event_dict["context"])
    event_dict["context"] = context
    event_dict["block"] = error_block(chain)
    return event_dict


def render_line(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> tuple[tuple[Any, ...], dict[str, Any]]:
    """Render the final text; pass the pieces reporters need alongside it."""
    text = LineFormatter.format(
        event_dict["severity"],
        event_dict["prefix"],
        event_dict.get("call_site", UNKNOWN_CALL_SITE),
        event_dict.get("event", ""),
        event_dict["context"],
        event_dict["block"],
    )
    return (text,), {
        "prefix": event_dict["prefix"],
        "err": event_dict.get("err"),
        "context": event_dict["context"],
    }


PROCESSORS = [
    add_severity,
    add_operation_context,
    render_error_chain,
    render_line,
]


# =============================================================================
# Sink Dispatch
# =============================================================================


class SinkDispatcher:
    """
    End of the processor chain.

    Method names match severities so structlog routes each call here by
    level. Sinks, reporters and the fatal handler are read from the state at
    call time.
    """

    def __init__(self, state: LoggingState):
        self._state = state

    def trace(self, text: str, **kw: Any) -> None:
        self._dispatch(Severity.TRACE, text, **kw)

    def debug(self, text: str, **kw: Any) -> None:
        self._dispatch(Severity.DEBUG, text, **kw)

    def error(self, text: str, **kw: Any) -> None:
        self._dispatch(Severity.ERROR, text, **kw)

    def fatal(self, text: str, **kw: Any) -> None:
        self._dispatch(Severity.FATAL, text, **kw)

    def _dispatch(
        self,
        severity: Severity,
        text: str,
        *,
        prefix: str,
        err: BaseException | None = None,
        context: dict[str, str] | None = None,
    ) -> None:
        write_to(self._state.get_outputs().for_severity(severity), text)
        if not severity.is_error or err is None:
            return

        for reporter in self._state.reporters():
            try:
                reporter(err, prefix, severity, dict(context or {}))
            except Exception as exc:
                report_failure("Reporter failed", exc)

        if severity is Severity.FATAL:
            self._state.fatal_handler()(err)


# =============================================================================
# Logger
# =============================================================================


class Logger:
    """
    Per-prefix logging façade.

    Plain forms (``trace``, ``debug``) join their arguments with spaces;
    ``f`` forms apply ``%``-style substitution. ``error``/``fatal`` take an
    exception or any value and return the logged exception, so callers can
    ``raise log.error(...)``.
    """

    def __init__(self, prefix: str, state: LoggingState | None = None, settings: LoggingSettings | None = None):
        self.prefix = prefix
        self._state = state if state is not None else default_state()
        self._trace_on = (settings if settings is not None else get_logging_settings()).trace_enabled_for(prefix)
        self._log = structlog.wrap_logger(
            SinkDispatcher(self._state),
            processors=PROCESSORS,
            wrapper_class=structlog.BoundLogger,
            context_class=dict,
            prefix=prefix,
        ).bind()

    def __repr__(self) -> str:
        return f"Logger({self.prefix!r})"

    @property
    def state(self) -> LoggingState:
        return self._state

    def is_trace_enabled(self) -> bool:
        return self._trace_on

    # -------------------------------------------------------------------------
    # TRACE / DEBUG
    # -------------------------------------------------------------------------

    def trace(self, *args: Any) -> None:
        self._log.trace(message_text(args), call_site=_call_site())

    def tracef(self, template: str, *args: Any) -> None:
        self._log.trace(format_template(template, args), call_site=_call_site())

    def debug(self, *args: Any) -> None:
        self._log.debug(message_text(args), call_site=_call_site())

    def debugf(self, template: str, *args: Any) -> None:
        self._log.debug(format_template(template, args), call_site=_call_site())

    # -------------------------------------------------------------------------
    # ERROR / FATAL
    # -------------------------------------------------------------------------

    def error(self, arg: Any) -> BaseException:
        return self.error_at(arg, _call_site())

    def errorf(self, template: str, *args: Any) -> ChainError:
        err = ChainError(template, *args, skip=1)
        self._emit_error(Severity.ERROR, err, _call_site())
        return err

    def fatal(self, arg: Any) -> BaseException:
        return self._emit_error(Severity.FATAL, arg, _call_site())

    def fatalf(self, template: str, *args: Any) -> ChainError:
        err = ChainError(template, *args, skip=1)
        self._emit_error(Severity.FATAL, err, _call_site())
        return err

    def error_at(self, arg: Any, call_site: CallSite) -> BaseException:
        """ERROR with an explicit call site, for adapters forwarding records."""
        return self._emit_error(Severity.ERROR, arg, call_site)

    def _emit_error(self, severity: Severity, arg: Any, call_site: CallSite) -> BaseException:
        err = arg if isinstance(arg, BaseException) else Exception(message_text((arg,)))
        chain = as_chain(err)
        message = chain.message if chain is not None else message_text((err,))
        getattr(self._log, severity.method_name)(message, call_site=call_site, err=err)
        return err

    # -------------------------------------------------------------------------
    # Adapters
    # -------------------------------------------------------------------------

    def as_std_logger(self) -> logging.Logger:
        """A standard library logger whose records all go to ``error``."""
        return as_std_logger(self)

    def trace_out(self) -> TraceWriter | NopFile:
        """
        A writable sink that logs each written line at TRACE.

        Lines are attributed to the caller of ``trace_out``. When tracing is
        off for this prefix the sink discards everything.
        """
        if not self._trace_on:
            return NopFile()
        call_site = _call_site()
        return TraceWriter(lambda line: self._log.trace(line, call_site=call_site))


def logger_for(prefix: str, state: LoggingState | None = None) -> Logger:
    """Get a logger for ``prefix``; cheap, create as many as needed."""
    return Logger(prefix, state=state)
