"""
Logging Configuration.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_TRUTHY = {"1", "t", "true", "y", "yes", "on"}
_FALSY = {"", "0", "f", "false", "n", "no", "off"}


class LoggingSettings(BaseSettings):
    """
    Trace bridge configuration.

    ``OPSLOG_TRACE`` (or plain ``TRACE``) is either a boolean turning tracing on
    or off for every logger, or a comma-separated list of logger prefixes.
    """

    model_config = SettingsConfigDict(
        env_prefix="OPSLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    trace: str = Field(
        default="",
        validation_alias=AliasChoices("OPSLOG_TRACE", "TRACE"),
        description="Boolean, or comma-separated logger prefixes to trace",
    )

    @property
    def trace_all(self) -> bool:
        return self.trace.strip().lower() in _TRUTHY

    @property
    def trace_disabled(self) -> bool:
        return self.trace.strip().lower() in _FALSY

    @property
    def trace_prefixes(self) -> frozenset[str]:
        if self.trace_all or self.trace_disabled:
            return frozenset()
        return frozenset(p.strip() for p in self.trace.split(",") if p.strip())

    def trace_enabled_for(self, prefix: str) -> bool:
        return self.trace_all or prefix in self.trace_prefixes


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """
    Settings read from the environment and ``.env``.

    Uses lru_cache so the environment is only read once per process; call
    ``get_logging_settings.cache_clear()`` to pick up changes.
    """
    return LoggingSettings()
