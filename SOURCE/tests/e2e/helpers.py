"""
Helpers for driving the real Streamlit app script headlessly.
"""

import re
import uuid
from pathlib import Path

from streamlit.testing.v1 import AppTest

import notes_client
from notes_client.mailpit import extract_token_from_email


APP_SCRIPT = Path(notes_client.__file__).resolve().with_name("streamlit_app.py")


def build_user(prefix="user", password="Password1"):
    safe_prefix = re.sub(r"[^a-z0-9]", "", prefix.lower())[:10] or "user"
    base = f"{safe_prefix}{uuid.uuid4().hex[-8:]}"
    return {"username": base, "email": f"{base}@test.com", "password": password}


def open_app(location="#home"):
    at = AppTest.from_file(str(APP_SCRIPT), default_timeout=30)
    at.session_state["location"] = location
    at.run()
    return at


def goto(at, location):
    at.session_state["location"] = location
    at.run()
    return at


def click(at, label):
    """Click the page's (non-navigation) button with this label."""
    button = next(
        b for b in at.button if b.label == label and not (b.key or "").startswith("nav_")
    )
    button.click().run()
    return at


def headings(at):
    return [h.value for h in at.title] + [h.value for h in at.header]


def markdown_text(at):
    return "\n".join(m.value for m in at.markdown)


def register(at, user):
    goto(at, "#register")
    assert "Create your account" in headings(at)
    at.text_input(key="register_username").input(user["username"])
    at.text_input(key="register_email").input(user["email"])
    at.text_input(key="register_password").input(user["password"])
    click(at, "Create account")
    assert "Verify your email" in headings(at)
    return at


def verify_email(at, mailpit, user):
    message = mailpit.wait_for_email(to=user["email"], subject="Verify your")
    token = extract_token_from_email(message, "verify-email")
    goto(at, f"#verify-email?token={token}")
    assert "Email verified" in headings(at)
    return at
