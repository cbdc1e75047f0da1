"""
Operation context.

An operation is a named scope carrying key/value variables. Operations nest:
``begin()`` opens a child of the current operation and makes it current,
``end()`` makes its parent current again. The active chain is flattened into
a single mapping by ``as_map()``, which is what log lines and errors carry.

Usage:
    from opslog import ops

    with ops.begin("fetch").set("url", url):
        log.debug("fetching")  # ... [op=fetch root_op=fetch url=...]

The current operation lives in a ``ContextVar``, so every thread and asyncio
task has its own chain.
"""

from __future__ import annotations

import threading
from contextvars import ContextVar
from typing import Any

OP_KEY = "op"
ROOT_OP_KEY = "root_op"

_current: ContextVar[Op | None] = ContextVar("opslog_current_op", default=None)

_globals: dict[str, str] = {}
_globals_lock = threading.Lock()


class Op:
    """A named operation scope. Create with ``begin()``."""

    __slots__ = ("name", "parent", "_vars", "_lock")

    def __init__(self, name: str, parent: Op | None = None):
        self.name = name
        self.parent = parent
        self._vars: dict[str, str] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any) -> Op:
        """Set a variable on this operation. Returns self for chaining."""
        with self._lock:
            self._vars[key] = str(value)
        return self

    def end(self) -> None:
        """Make this operation's parent the current operation."""
        _current.set(self.parent)

    @property
    def root(self) -> Op:
        op = self
        while op.parent is not None:
            op = op.parent
        return op

    def chain(self) -> list[Op]:
        """Operations from the root down to this one."""
        ops: list[Op] = []
        op: Op | None = self
        while op is not None:
            ops.append(op)
            op = op.parent
        ops.reverse()
        return ops

    def variables(self) -> dict[str, str]:
        with self._lock:
            return dict(self._vars)

    def __enter__(self) -> Op:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.end()

    def __repr__(self) -> str:
        return f"Op({self.name!r})"


def begin(name: str) -> Op:
    """Open a child of the current operation and make it current."""
    op = Op(name, parent=_current.get())
    _current.set(op)
    return op


def current() -> Op | None:
    return _current.get()


def clear() -> None:
    """Drop the whole operation chain of the current context."""
    _current.set(None)


def set_global(key: str, value: Any) -> None:
    """Set a process-wide variable. Globals are only included on request."""
    with _globals_lock:
        _globals[key] = str(value)


def clear_globals() -> None:
    with _globals_lock:
        _globals.clear()


def as_map(include_globals: bool = False) -> dict[str, str]:
    """
    Flatten the active operation chain into a mapping.

    Variables of outer operations are applied first so inner ones win. When an
    operation is active the mapping also holds ``op`` (innermost name) and
    ``root_op`` (outermost name). Reading never mutates the context.
    """
    result: dict[str, str] = {}
    if include_globals:
        with _globals_lock:
            result.update(_globals)

    op = _current.get()
    if op is None:
        return result

    chain = op.chain()
    for scope in chain:
        result.update(scope.variables())
    result[OP_KEY] = op.name
    result[ROOT_OP_KEY] = chain[0].name
    return result
