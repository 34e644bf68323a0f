"""
Entry-point to run the Streamlit app and check the backend is reachable.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from streamlit.web import cli as stcli

from .api import APIClient, APIError
from .config import configure_logging, get_settings


logger = logging.getLogger(__name__)

APP_PATH = Path(__file__).resolve().with_name("streamlit_app.py")


def check_backend() -> bool:
    settings = get_settings()
    try:
        status = APIClient(settings).health()
    except APIError as exc:
        logger.warning("Backend at %s is not healthy: %s", settings.backend_url, exc.message)
        return False
    logger.info("Backend at %s is up: %s", settings.backend_url, status)
    return True


def main() -> None:
    configure_logging()
    check_backend()
    sys.argv = ["streamlit", "run", str(APP_PATH), *sys.argv[1:]]
    sys.exit(stcli.main())


if __name__ == "__main__":
    main()
