"""
Errors that carry their own cause chain.

``ChainError`` records, at construction time, the format template and its
arguments, the location it was created at, the call stack, the operation
context active at that moment, and a predecessor (the first exception among
its arguments, or ``raise ... from``). Native exceptions that have been raised
expose the same information through ``ExceptionChain``, built from their
traceback.

``as_chain()`` is the capability check used by the logger: it returns a chain
view, or ``None`` for payloads that are plain messages.
"""

from __future__ import annotations

import inspect
import traceback
from types import FrameType, TracebackType
from typing import Any, Iterator, NamedTuple

from . import ops


class Frame(NamedTuple):
    """One stack frame: qualified function name, file path and line."""

    function: str
    file: str
    line: int


def _qualified_name(frame: FrameType) -> str:
    code = frame.f_code
    module = frame.f_globals.get("__name__", "?")
    return f"{module}.{getattr(code, 'co_qualname', code.co_name)}"


def _to_frames(walk: Iterator[tuple[FrameType, int]]) -> list[Frame]:
    return [Frame(_qualified_name(f), f.f_code.co_filename, lineno) for f, lineno in walk]


def caller_frame(depth: int) -> FrameType | None:
    """Return the frame ``depth`` levels above the function calling this one."""
    frame = inspect.currentframe()
    if frame is None:
        return None
    frame = frame.f_back
    for _ in range(depth):
        if frame is None:
            break
        frame = frame.f_back
    return frame


def stack_from(frame: FrameType | None) -> list[Frame]:
    """Frames from ``frame`` outwards, innermost first."""
    if frame is None:
        return []
    return _to_frames(traceback.walk_stack(frame))


def stack_from_traceback(tb: TracebackType | None) -> list[Frame]:
    """Frames of a traceback, innermost (the raise point) first."""
    if tb is None:
        return []
    frames = _to_frames(traceback.walk_tb(tb))
    frames.reverse()
    return frames


def safe_str(value: Any) -> str:
    """``str(value)``, or the default object repr when ``__str__`` fails."""
    try:
        return str(value)
    except Exception:
        return object.__repr__(value)


def format_template(template: str, args: tuple[Any, ...]) -> str:
    """
    Apply ``%``-style positional substitution.

    A template without arguments is used literally. A template that doesn't
    match its arguments is left unresolved.
    """
    text = safe_str(template)
    if not args:
        return text
    try:
        return text % args
    except Exception:
        return text


def type_tag(exc: BaseException) -> str:
    cls = type(exc)
    return f"{cls.__module__}.{cls.__qualname__}"


def _predecessor(exc: BaseException) -> BaseException | None:
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__context__ is not None and not exc.__suppress_context__:
        return exc.__context__
    return None


# =============================================================================
# Chain-capable errors
# =============================================================================


class ChainError(Exception):
    """
    An error created from a format template.

    Args:
        template: ``%``-style template; the resolved text is the message.
        *args: template arguments. The first exception among them becomes
            the predecessor of this error.
        skip: extra frames to skip when recording the creation location,
            for helpers that build errors on behalf of their caller.
    """

    def __init__(self, template: str, *args: Any, skip: int = 0):
        self._template = safe_str(template)
        self._args = args
        self._message = format_template(self._template, args)
        super().__init__(self._message)

        self._stack = stack_from(caller_frame(skip + 1))
        self._context = ops.as_map()
        self._fields: dict[str, str] = {}
        self._cause = next((a for a in args if isinstance(a, BaseException)), None)

    @property
    def template(self) -> str:
        return self._template

    @property
    def message(self) -> str:
        return self._message

    @property
    def stack(self) -> list[Frame]:
        return list(self._stack)

    @property
    def location(self) -> Frame | None:
        return self._stack[0] if self._stack else None

    @property
    def type_tag(self) -> str:
        return type_tag(self)

    @property
    def context(self) -> dict[str, str]:
        """Operation context captured when this error was created."""
        return dict(self._context)

    @property
    def fields(self) -> dict[str, str]:
        return dict(self._fields)

    @property
    def cause(self) -> BaseException | None:
        if self._cause is not None:
            return self._cause
        return _predecessor(self)

    def with_field(self, key: str, value: Any) -> ChainError:
        """Attach an extra context field. Returns self for chaining."""
        self._fields[key] = safe_str(value)
        return self


class ExceptionChain:
    """Chain view over a native exception, built from its traceback."""

    def __init__(self, exc: BaseException):
        self.exc = exc
        self._stack = stack_from_traceback(exc.__traceback__)

    @property
    def template(self) -> str:
        return self.message

    @property
    def message(self) -> str:
        return safe_str(self.exc) or type(self.exc).__name__

    @property
    def stack(self) -> list[Frame]:
        return list(self._stack)

    @property
    def location(self) -> Frame | None:
        return self._stack[0] if self._stack else None

    @property
    def type_tag(self) -> str:
        return type_tag(self.exc)

    @property
    def context(self) -> dict[str, str]:
        return {}

    @property
    def fields(self) -> dict[str, str]:
        return {}

    @property
    def cause(self) -> BaseException | None:
        return _predecessor(self.exc)


def chain_of(exc: BaseException) -> ChainError | ExceptionChain:
    """Chain view of any exception. Never-raised exceptions have no frames."""
    if isinstance(exc, ChainError):
        return exc
    return ExceptionChain(exc)


def as_chain(value: Any) -> ChainError | ExceptionChain | None:
    """
    Return a chain view when ``value`` exposes a cause chain.

    ``ChainError`` always does; other exceptions only once they've been
    raised. Anything else is a plain message and yields ``None``.
    """
    if isinstance(value, ChainError):
        return value
    if isinstance(value, BaseException) and value.__traceback__ is not None:
        return ExceptionChain(value)
    return None


def iter_chain(chain: ChainError | ExceptionChain) -> Iterator[ChainError | ExceptionChain]:
    """Yield ``chain`` and then each predecessor, stopping on a repeat."""
    seen: set[int] = set()
    current: ChainError | ExceptionChain | None = chain
    while current is not None:
        key = id(current if isinstance(current, ChainError) else current.exc)
        if key in seen:
            return
        seen.add(key)
        yield current
        cause = current.cause
        current = chain_of(cause) if cause is not None else None
