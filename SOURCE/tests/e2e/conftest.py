from typing import Dict

import pytest

from notes_client import views
from notes_client.config import get_settings
from notes_client.mailpit import MailpitClient


@pytest.fixture(autouse=True)
def browser_cookies(monkeypatch) -> Dict[str, str]:
    """Cookie store of one browser, shared by every AppTest opened in a test."""
    jar: Dict[str, str] = {}

    def write(value):
        if value:
            jar[views.SESSION_COOKIE] = value
        else:
            jar.pop(views.SESSION_COOKIE, None)

    monkeypatch.setattr(views, "read_browser_cookie", lambda: jar.get(views.SESSION_COOKIE))
    monkeypatch.setattr(views, "write_browser_cookie", write)
    return jar


@pytest.fixture
def app_mailpit(app_backend) -> MailpitClient:
    client = MailpitClient(get_settings())
    client.clear()
    return client
