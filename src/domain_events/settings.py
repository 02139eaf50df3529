"""Runtime configuration using Pydantic Settings.

This module centralizes the configuration consumed by the event bus and its
generic handlers. Values can be provided via environment variables (preferred)
or fall back to the defaults below. A ``Settings`` instance is intended to be
retrieved via ``get_settings`` which caches the object for reuse across the
process. Settings are read when a bus or handler is constructed; there is no
hot reload.

Environment variable prefix: ``DOMAIN_EVENTS_`` (e.g. ``DOMAIN_EVENTS_LOG_LEVEL``).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the event system.

    Attributes map directly to environment variables using the
    ``DOMAIN_EVENTS_`` prefix (case-insensitive). For example,
    ``audit_table_enabled`` <- ``DOMAIN_EVENTS_AUDIT_TABLE_ENABLED``.
    """

    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Application log level",
    )
    event_bus_adapter: str = Field(
        default="memory",
        description="Subscription registry implementation used by the event bus",
    )  # fmt: skip
    audit_table_enabled: bool = Field(
        default=False,
        description="Persist audit records for handled events",
    )  # fmt: skip
    database_url: str | None = Field(
        default=None,
        description="Connection string of the audit store database",
    )  # fmt: skip
    audit_log_path: str | None = Field(
        default=None,
        description="File receiving the [AUDIT] log lines",
    )  # fmt: skip
    sql_log: bool = Field(
        default=False,
        description="Enable SQL query logging",
    )  # fmt: skip
    handler_workers: int = Field(
        default=4,
        ge=1,
        description="Worker threads for asynchronous handler submission",
    )  # fmt: skip

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | None) -> str:
        """Normalize and validate log level."""
        if v is None:
            return "INFO"

        v_upper = str(v).upper()

        allowed = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR"}
        if v_upper not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {', '.join(sorted(allowed))}")

        return v_upper

    @field_validator("event_bus_adapter", mode="before")
    @classmethod
    def normalize_adapter(cls, v: str | None) -> str:
        """Adapter names are matched case-insensitively."""
        if v is None:
            return "memory"
        return str(v).strip().lower()

    model_config = SettingsConfigDict(
        env_prefix="DOMAIN_EVENTS_",
        case_sensitive=False,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached ``Settings`` instance.

    The first invocation reads environment variables / .env file; subsequent
    calls reuse the same object to ensure consistent config.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
