"""
Log severities and their sink routing.
"""

from __future__ import annotations

from enum import IntEnum


class Severity(IntEnum):
    TRACE = 1
    DEBUG = 2
    ERROR = 3
    FATAL = 4

    def __str__(self) -> str:
        return self.name

    @property
    def method_name(self) -> str:
        """Name of the sink logger method this severity is dispatched to."""
        return self.name.lower()

    @property
    def is_error(self) -> bool:
        """ERROR and FATAL go to the error sink and are reported."""
        return self >= Severity.ERROR

    @classmethod
    def from_method_name(cls, method_name: str) -> Severity:
        return cls[method_name.upper()]
