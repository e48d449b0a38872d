"""Service configuration loaded from TABSESSION_* environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class TabSessionSettings(BaseSettings):
    """Workspace tab session settings.

    All fields are read from environment variables with the ``TABSESSION_``
    prefix.  For example, ``TABSESSION_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    The same settings object configures both sides of the persistence API:
    the tab manager (which store to talk to, debounce timing) and the
    persistence service (which backend to write to).
    """

    model_config = SettingsConfigDict(
        env_prefix="TABSESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False
    """Emit one JSON object per log line instead of the colored text format."""

    # -- Storage ---------------------------------------------------------------
    tab_store: Literal["local", "s3", "sql", "http"] = "local"

    database_url: str | None = None
    """PostgreSQL connection string (psycopg).  Required when tab_store = "sql"."""

    data_root: str = "./data"
    """Root directory for the local store."""

    data_prefix: str | None = None
    """Optional namespace prefix inserted into all store paths / object keys."""

    # S3 (only when tab_store = "s3")
    s3_endpoint: str | None = None
    s3_bucket: str | None = None
    s3_region: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: SecretStr | None = None
    s3_path_style: bool = False
    """Use path-style addressing (required by MinIO and some S3-compatible services)."""

    # HTTP (only when tab_store = "http")
    persistence_url: str | None = None
    """Base URL of a running persistence service, e.g. ``http://localhost:8000``."""

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000

    # -- Tab manager -----------------------------------------------------------
    debounce_seconds: float = 2.0
    """Quiet period after the last tab mutation before the tab set is written."""

    last_closed_limit: int = 10
    """How many closed tabs can be reopened."""

    soft_tab_limit: int = 15
    """Open-tab count above which a warning is logged.  Opening is never refused."""

    save_retry_attempts: int = 3
    save_retry_max_wait: float = 8.0
    """Upper bound (seconds) of the exponential backoff between save attempts."""

    dashboard_route: str = "/dashboard"
    post_logout_route: str = "/auth"


def get_settings() -> TabSessionSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> TabSessionSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return TabSessionSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
