"""
Streamlit entry point for the notes client.

Run with ``notes-client`` or ``streamlit run SOURCE/notes_client/streamlit_app.py``.
"""

from __future__ import annotations

import streamlit as st

from notes_client.config import configure_logging, get_settings
from notes_client.markup import HASH_BRIDGE_SCRIPT, STYLES
from notes_client.views import (
    bootstrap,
    display_flash,
    ensure_session_defaults,
    persist_session,
    render_nav,
    route,
)


def inject_styles() -> None:
    st.markdown(STYLES, unsafe_allow_html=True)
    st.html(HASH_BRIDGE_SCRIPT, unsafe_allow_javascript=True)


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    st.set_page_config(page_title=settings.app_title, page_icon="📝", layout="wide")
    ensure_session_defaults()
    inject_styles()
    bootstrap()

    render_nav()
    display_flash()
    route()
    persist_session()


if __name__ == "__main__":
    main()
