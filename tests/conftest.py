import io
import re
import threading

import pytest

from opslog import ops
from opslog.config import get_logging_settings
from opslog.state import default_state, set_outputs

_NUMBERS = re.compile(r"[0-9]+")


class SynchronizedBuffer:
    """Text sink guarded by a lock; sinks are responsible for their own safety."""

    def __init__(self):
        self._buf = io.StringIO()
        self._lock = threading.Lock()

    def write(self, s: str) -> int:
        with self._lock:
            return self._buf.write(s)

    def getvalue(self) -> str:
        with self._lock:
            return self._buf.getvalue()

    def normalized(self) -> str:
        """Output with every number replaced by 999, so line numbers don't matter."""
        return _NUMBERS.sub("999", self.getvalue())

    def lines(self) -> list[str]:
        return self.normalized().splitlines()


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    """
    Restore default logging state around every test.

    The fatal handler is replaced by a no-op so FATAL calls don't end the test
    run; tests exercising the default handler reset it themselves.
    """
    monkeypatch.delenv("TRACE", raising=False)
    monkeypatch.delenv("OPSLOG_TRACE", raising=False)
    get_logging_settings.cache_clear()
    state = default_state()
    state.reset()
    state.on_fatal(lambda err: None)
    ops.clear()
    ops.clear_globals()
    yield
    state.reset()
    get_logging_settings.cache_clear()
    ops.clear()
    ops.clear_globals()


@pytest.fixture
def error_out() -> SynchronizedBuffer:
    return SynchronizedBuffer()


@pytest.fixture
def debug_out() -> SynchronizedBuffer:
    return SynchronizedBuffer()


@pytest.fixture
def outputs(error_out, debug_out):
    """Route both sinks of the default state to fresh buffers."""
    set_outputs(error_out, debug_out)
    return error_out, debug_out
