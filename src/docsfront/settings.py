"""Environment-driven configuration for docsfront.

Delays are configuration, not constants: the search debounce window and the
hover card show/hide delays are read from the environment so that a site
can tune them and tests can shrink them.

Environment variables:
    DOCSFRONT_API_URL: Base URL for the analytics and suggestion endpoints
    DOCSFRONT_LOG_LEVEL: Log level (default: INFO)
    DOCSFRONT_SEARCH_DEBOUNCE_SECONDS: Search debounce window (default: 0.3)
    DOCSFRONT_HOVER_SHOW_DELAY_SECONDS: Hover card show delay (default: 0.3)
    DOCSFRONT_HOVER_HIDE_DELAY_SECONDS: Hover card hide delay (default: 0.2)
    DOCSFRONT_ANALYTICS_TIMEOUT: Analytics request timeout (default: 5)
    DOCSFRONT_REDIS_URL: Redis URL for the shared preference store (optional)
    DOCSFRONT_FIXTURES_PATH: Directory holding fixture JSON for the API server
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_API_URL = "http://localhost:4000"
DEFAULT_SEARCH_DEBOUNCE_SECONDS = 0.3
DEFAULT_HOVER_SHOW_DELAY_SECONDS = 0.3
DEFAULT_HOVER_HIDE_DELAY_SECONDS = 0.2
DEFAULT_ANALYTICS_TIMEOUT = 5.0


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if value < 0:
        return default
    return value


def get_api_url() -> str:
    return os.getenv("DOCSFRONT_API_URL", DEFAULT_API_URL).strip().rstrip("/")


def get_log_level() -> str:
    return os.getenv("DOCSFRONT_LOG_LEVEL", "INFO")


def get_redis_url() -> str | None:
    value = os.getenv("DOCSFRONT_REDIS_URL", "").strip()
    return value or None


def get_fixtures_path() -> Path:
    """Return the fixture directory, defaulting to the packaged fixtures."""
    env_path = os.getenv("DOCSFRONT_FIXTURES_PATH")
    if env_path:
        return Path(env_path)
    return Path(__file__).resolve().parent / "fixtures"


@dataclass(frozen=True)
class WidgetTimings:
    """Delays used by the interactive widgets, in seconds."""

    search_debounce: float = DEFAULT_SEARCH_DEBOUNCE_SECONDS
    hover_show_delay: float = DEFAULT_HOVER_SHOW_DELAY_SECONDS
    hover_hide_delay: float = DEFAULT_HOVER_HIDE_DELAY_SECONDS

    @classmethod
    def from_env(cls) -> WidgetTimings:
        return cls(
            search_debounce=_get_float(
                "DOCSFRONT_SEARCH_DEBOUNCE_SECONDS", DEFAULT_SEARCH_DEBOUNCE_SECONDS
            ),
            hover_show_delay=_get_float(
                "DOCSFRONT_HOVER_SHOW_DELAY_SECONDS", DEFAULT_HOVER_SHOW_DELAY_SECONDS
            ),
            hover_hide_delay=_get_float(
                "DOCSFRONT_HOVER_HIDE_DELAY_SECONDS", DEFAULT_HOVER_HIDE_DELAY_SECONDS
            ),
        )


def get_analytics_timeout() -> float:
    return _get_float("DOCSFRONT_ANALYTICS_TIMEOUT", DEFAULT_ANALYTICS_TIMEOUT)
