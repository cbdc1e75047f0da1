"""
I/O utilities: sink writes and the trace bridge.
"""

from __future__ import annotations

import queue
import sys
import threading
from typing import Any, Callable


def report_failure(what: str, exc: BaseException) -> None:
    """Last-resort notice on the interpreter's original stderr."""
    stream = sys.__stderr__
    if stream is None:
        return
    try:
        stream.write(f"{what}: {exc}\n")
        stream.flush()
    except (OSError, ValueError):
        pass


def write_to(out: Any, text: str) -> None:
    """
    Write ``text`` to a sink in a single call, then flush it.

    Text streams get ``str``; sinks that reject ``str`` get UTF-8 bytes.
    Failures are reported, never raised to the logging caller.
    """
    try:
        try:
            out.write(text)
        except TypeError:
            out.write(text.encode("utf-8"))
        flush = getattr(out, "flush", None)
        if flush is not None:
            flush()
    except Exception as exc:
        report_failure("Unable to log", exc)


class NopFile:
    """Accepts and discards everything written to it."""

    closed = False

    def write(self, s: str | bytes) -> int:
        return len(s)

    def flush(self) -> None:
        pass

    def writable(self) -> bool:
        return True

    def isatty(self) -> bool:
        return False

    def close(self) -> None:
        pass


_EOF = object()


class TraceWriter:
    """
    Write side of the trace bridge.

    Written bytes go into an in-memory pipe. A single reader thread splits
    them into lines and hands each line to ``emit``, in write order. The
    reader stops on the first read failure, end of stream included, after
    emitting exactly one ``TraceWriter closed due to unexpected error`` line.
    From then on writes are discarded.
    """

    CLOSED_MESSAGE = "TraceWriter closed due to unexpected error: %s"

    def __init__(self, emit: Callable[[str], Any], encoding: str = "utf-8"):
        self._emit = emit
        self.encoding = encoding
        self._pipe: queue.SimpleQueue[Any] = queue.SimpleQueue()
        self._linebuf = bytearray()
        self._eof = False

        self._state_lock = threading.Lock()
        self._write_closed = False
        self._read_failed = False
        self._read_closed = threading.Event()

        self._reader = threading.Thread(target=self._read_loop, name="opslog-trace-reader", daemon=True)
        self._reader.start()

    # -------------------------------------------------------------------------
    # Write side
    # -------------------------------------------------------------------------

    def write(self, buf: str | bytes) -> int:
        if isinstance(buf, str):
            buf = buf.encode(self.encoding)
        with self._state_lock:
            if not self._write_closed and not self._read_failed:
                self._pipe.put(bytes(buf))
        return len(buf)

    def flush(self) -> None:
        pass

    def writable(self) -> bool:
        return True

    def isatty(self) -> bool:
        return False

    def close(self) -> None:
        """Close the write side; the reader sees end of stream."""
        with self._state_lock:
            if self._write_closed:
                return
            self._write_closed = True
            self._pipe.put(_EOF)

    @property
    def closed(self) -> bool:
        return self._write_closed or self._read_failed

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until the reader has emitted its terminal line."""
        return self._read_closed.wait(timeout)

    def __enter__(self) -> TraceWriter:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def _readline(self) -> str:
        while True:
            idx = self._linebuf.find(b"\n")
            if idx >= 0:
                line = bytes(self._linebuf[:idx])
                del self._linebuf[: idx + 1]
                return self._decode(line)

            if self._eof:
                raise EOFError("EOF")

            chunk = self._pipe.get()
            if chunk is _EOF:
                self._eof = True
                if self._linebuf:
                    line = bytes(self._linebuf)
                    self._linebuf.clear()
                    return self._decode(line)
                continue
            self._linebuf.extend(chunk)

    def _decode(self, line: bytes) -> str:
        return line.decode(self.encoding, errors="replace").rstrip("\r")

    def _read_loop(self) -> None:
        try:
            while True:
                self._emit(self._readline())
        except Exception as exc:
            self._finish(exc)

    def _finish(self, exc: BaseException) -> None:
        with self._state_lock:
            if self._read_failed:
                return
            self._read_failed = True
            self._linebuf.clear()
        try:
            self._emit(self.CLOSED_MESSAGE % exc)
        finally:
            self._read_closed.set()
