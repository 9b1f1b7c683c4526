"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache): single instance per process
    - Every setting has a default: the palette runs without a .env file

Design Decisions:
    - PALETTE_ env prefix keeps palette settings apart from the host's own variables
    - SQLite via aiosqlite by default; any SQLAlchemy async URL is accepted
"""

from enum import Enum
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from palette.core.domain_types import (
    DEBOUNCE_MS, FETCH_TIMEOUT_SECONDS, MAX_POPULAR_ENTRIES,
    MAX_RECENT_SEARCHES, MAX_SEARCH_HISTORY, POPULAR_SEARCHES_SHOWN,
    KeyValueBackend,
)


class LogFormat(str, Enum):
    JSON = "json"
    TEXT = "text"


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="PALETTE_", case_sensitive=False,
    )

    # Search behaviour
    debounce_ms: int = DEBOUNCE_MS
    fetch_timeout_seconds: float = FETCH_TIMEOUT_SECONDS

    # History
    max_recent_searches: int = MAX_RECENT_SEARCHES
    popular_searches_shown: int = POPULAR_SEARCHES_SHOWN
    max_popular_entries: int = MAX_POPULAR_ENTRIES
    max_search_history: int = MAX_SEARCH_HISTORY

    # Search service
    search_api_url: str = "http://localhost:8080"
    search_max_retries: int = 2
    search_timeout_seconds: float = 8.0
    search_base_delay_ms: int = 200
    search_max_delay_ms: int = 2_000

    # Storage
    kv_backend: KeyValueBackend = KeyValueBackend.SQL
    database_url: str = "sqlite+aiosqlite:///./palette.db"
    database_pool_size: int = 5
    database_max_overflow: int = 5

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_sqlite_url(cls, v: str) -> str:
        """Plain sqlite:// URLs need the aiosqlite driver for async engines."""
        if isinstance(v, str) and v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    # API
    cors_origins: list[str] = ["http://localhost:3000"]
    session_idle_timeout_seconds: float = 1_800.0
    session_sweep_interval_seconds: float = 60.0
    stream_backlog: int = 32

    # Observability
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.JSON


@lru_cache
def get_settings() -> Settings:
    return Settings()
