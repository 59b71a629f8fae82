"""Settings for recordstore.

All fields can be set through ``RECORDSTORE_*`` environment variables
(e.g. ``RECORDSTORE_DATABASE_URL=postgresql://...``) or a ``.env`` file.

Examples:
    >>> from recordstore.settings import RecordStoreSettings
    >>> s = RecordStoreSettings(table_prefix="app_")
    >>> s.table_prefix
    'app_'

Tags:
    settings, configuration, pydantic, environment, recordstore

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class RecordStoreSettings(BaseSettings):
    """Connection, naming and logging configuration.

    Fields
    ──────
    database_url : SQLite path/URL, ``memory``, or ``postgresql://`` URL
    table_prefix : Prepended to every derived table name
    tag_name     : Field-metadata key read by ``column()`` / ``relation()``
    data_dir     : Base directory for relative SQLite paths
    pool_size    : SQLAlchemy pool size (PostgreSQL)
    max_overflow : SQLAlchemy pool overflow (PostgreSQL)
    pool_timeout : Seconds to wait for a pooled connection (PostgreSQL)
    log_level    : Structlog log level
    json_logs    : JSON output; ``None`` auto-detects from the terminal
    echo_sql     : Echo SQL through SQLAlchemy (PostgreSQL bridge only)
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORDSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default=":memory:", description="Database URL or SQLite path")
    table_prefix: str = Field(default="", description="Table name prefix")
    tag_name: str = Field(default="db", description="Field metadata key")
    data_dir: str | None = Field(default=None, description="Base directory for relative SQLite paths")

    # ── PostgreSQL pool ──────────────────────────────────────────
    pool_size: int | None = Field(default=None, ge=1)
    max_overflow: int | None = Field(default=None, ge=0)
    pool_timeout: int | None = Field(default=None, ge=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
    echo_sql: bool = False

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return upper

    @field_validator("tag_name")
    @classmethod
    def _check_tag_name(cls, value: str) -> str:
        if not value:
            raise ValueError("tag_name must not be empty")
        return value


@lru_cache(maxsize=1)
def get_settings() -> RecordStoreSettings:
    """Return the process-wide settings, loaded once."""
    return RecordStoreSettings()


def clear_settings_cache() -> None:
    """Forget the cached settings (tests, reloads)."""
    get_settings.cache_clear()


__all__ = [
    "RecordStoreSettings",
    "get_settings",
    "clear_settings_cache",
]
