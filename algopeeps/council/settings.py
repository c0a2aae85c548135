"""Service configuration loaded from ALGOPEEPS_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OPENCODE_URL = "http://localhost:4096"


class AlgopeepsSettings(BaseSettings):
    """Algopeeps council settings.

    All fields are read from environment variables with the ``ALGOPEEPS_``
    prefix.  For example, ``ALGOPEEPS_LISTEN_ADDR=127.0.0.1:7777`` maps to
    ``listen_addr``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ALGOPEEPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_file: str | None = None
    """Write logs here instead of stderr (stderr is owned by the dashboard)."""

    # -- Editor listener -------------------------------------------------------
    listen_addr: str = ":9999"
    """``host:port`` for editor connections.  Empty host binds all interfaces."""

    max_line_bytes: int = 64 * 1024 * 1024
    """Upper bound for a single framed line, enforced by the stream reader."""

    # -- Agent backend ---------------------------------------------------------
    opencode_url: str = DEFAULT_OPENCODE_URL
    request_timeout: float = 30.0
    """Seconds before a non-streaming backend request gives up."""

    session_retry_attempts: int = 3
    session_retry_delay: float = 1.0
    """Seconds between two session creation attempts."""

    # -- Dashboard -------------------------------------------------------------
    refresh_per_second: float = 4.0


def get_settings() -> AlgopeepsSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


@lru_cache(maxsize=1)
def _get_settings_cached() -> AlgopeepsSettings:
    return AlgopeepsSettings()
