"""
Configuration module for the notes client.

The client reads its configuration from environment variables, with
defaults that match the local docker-compose setup (backend on 8080,
Mailpit on 8025).
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Optional


class Settings:
    """Defines runtime configuration for the notes client."""

    # Streamlit
    debug: bool = False
    app_title: str = "Notes"
    log_level: str = "INFO"

    # Backend
    backend_url: str = "http://127.0.0.1:8080"
    api_prefix: str = "/api"
    request_timeout_seconds: float = 30.0
    csrf_retry_delay_seconds: float = 1.0

    # Mailpit
    mailpit_base_url: str = "http://mailpit:8025"
    mailpit_wait_timeout_seconds: float = 30.0
    mailpit_poll_interval_seconds: float = 0.5

    def update_from_env(self) -> None:
        """Override defaults with values from the environment."""
        self.debug = os.getenv("APP_DEBUG", str(self.debug)).lower() in {
            "1",
            "true",
            "yes",
        }
        self.app_title = os.getenv("APP_TITLE", self.app_title)
        self.log_level = os.getenv("LOG_LEVEL", self.log_level).upper()

        self.backend_url = os.getenv("BACKEND_URL", self.backend_url)
        self.api_prefix = os.getenv("API_PREFIX", self.api_prefix)
        self.request_timeout_seconds = float(
            os.getenv("REQUEST_TIMEOUT_SECONDS", str(self.request_timeout_seconds))
        )
        self.csrf_retry_delay_seconds = float(
            os.getenv("CSRF_RETRY_DELAY_SECONDS", str(self.csrf_retry_delay_seconds))
        )

        self.mailpit_base_url = os.getenv("MAILPIT_BASE_URL", self.mailpit_base_url)
        self.mailpit_wait_timeout_seconds = float(
            os.getenv(
                "MAILPIT_WAIT_TIMEOUT_SECONDS",
                str(self.mailpit_wait_timeout_seconds),
            )
        )
        self.mailpit_poll_interval_seconds = float(
            os.getenv(
                "MAILPIT_POLL_INTERVAL_SECONDS",
                str(self.mailpit_poll_interval_seconds),
            )
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of Settings populated from environment."""
    settings = Settings()
    settings.update_from_env()
    return settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Install a single root handler; safe to call on every Streamlit rerun."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(h, "_notes_client", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        handler._notes_client = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


__all__ = ["Settings", "get_settings", "configure_logging"]
