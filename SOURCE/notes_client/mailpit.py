"""
Small client for the Mailpit HTTP API, used to pick up emailed token links
during end-to-end runs and from ``scripts/fetch_token.py``.
"""

from __future__ import annotations

import datetime as dt
import logging
import time
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional

import requests

from .config import Settings, get_settings
from .tokens import extract_token


logger = logging.getLogger(__name__)


class MailTimeout(TimeoutError):
    """No matching message arrived before the deadline."""


def get_message_id(message: Dict[str, Any]) -> Optional[str]:
    return message.get("ID") or message.get("id") or message.get("Id")


def get_message_subject(message: Dict[str, Any]) -> str:
    return message.get("Subject") or message.get("subject") or ""


def get_message_recipients(message: Dict[str, Any]) -> List[str]:
    to = (
        message.get("To")
        or message.get("to")
        or message.get("Recipients")
        or message.get("recipients")
        or []
    )
    if isinstance(to, str):
        return [to]
    recipients = []
    for entry in to:
        if not entry:
            continue
        if isinstance(entry, str):
            recipients.append(entry)
            continue
        address = (
            entry.get("Address")
            or entry.get("address")
            or entry.get("Email")
            or entry.get("email")
            or entry.get("Mailbox")
        )
        if address:
            recipients.append(address)
    return recipients


def get_message_created(message: Dict[str, Any]) -> float:
    created = (
        message.get("Created")
        or message.get("created")
        or message.get("Date")
        or message.get("date")
        or ""
    )
    if not created:
        return 0.0
    try:
        parsed = dt.datetime.fromisoformat(str(created).replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(str(created))
        except (TypeError, ValueError):
            return 0.0
    if parsed is None:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.timestamp()


def get_message_body(message: Dict[str, Any]) -> str:
    return (
        message.get("Text")
        or message.get("text")
        or message.get("HTML")
        or message.get("html")
        or message.get("Body")
        or message.get("body")
        or ""
    )


def pick_latest_message(messages: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not messages:
        return None
    return max(messages, key=get_message_created)


def matches(message: Dict[str, Any], to: str = "", subject: str = "") -> bool:
    lower_to = to.lower()
    lower_subject = subject.lower()
    recipients = [recipient.lower() for recipient in get_message_recipients(message)]
    if lower_to and not any(lower_to in recipient for recipient in recipients):
        return False
    if lower_subject and lower_subject not in get_message_subject(message).lower():
        return False
    return True


def extract_token_from_email(message: Dict[str, Any], route: str) -> str:
    return extract_token(get_message_body(message), route)


class MailpitClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.base_url = (base_url or self.settings.mailpit_base_url).rstrip("/")

    def url(self, path: str) -> str:
        return f"{self.base_url}/api/v1{path}"

    def clear(self) -> bool:
        """Delete every message; a failed clear is reported, not raised."""
        try:
            response = self.session.delete(self.url("/messages"), timeout=10)
        except requests.RequestException as exc:
            logger.warning("Could not clear Mailpit: %s", exc)
            return False
        return response.ok

    def list_messages(self) -> List[Dict[str, Any]]:
        response = self.session.get(self.url("/messages"), timeout=10)
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError:
            return []
        if not isinstance(data, dict):
            return []
        return data.get("messages") or data.get("Messages") or data.get("items") or []

    def get_message(self, message_id: str) -> Dict[str, Any]:
        response = self.session.get(self.url(f"/message/{message_id}"), timeout=10)
        response.raise_for_status()
        return response.json()

    def wait_for_email(
        self,
        to: str = "",
        subject: str = "",
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Poll until the newest message matching recipient and subject shows up."""
        timeout = self.settings.mailpit_wait_timeout_seconds if timeout is None else timeout
        deadline = time.monotonic() + timeout

        while time.monotonic() < deadline:
            try:
                candidates = [m for m in self.list_messages() if matches(m, to, subject)]
            except requests.RequestException as exc:
                logger.debug("Mailpit not ready: %s", exc)
                candidates = []

            match = pick_latest_message(candidates)
            if match:
                message_id = get_message_id(match)
                if not message_id:
                    raise ValueError("Mailpit message missing ID")
                try:
                    return self.get_message(message_id)
                except requests.RequestException as exc:
                    logger.debug("Could not fetch message %s: %s", message_id, exc)

            time.sleep(self.settings.mailpit_poll_interval_seconds)

        target = f" to {to}" if to else ""
        with_subject = f" with subject {subject}" if subject else ""
        raise MailTimeout(f"Timed out waiting for email{target}{with_subject}")


__all__ = [
    "MailpitClient",
    "MailTimeout",
    "extract_token_from_email",
    "get_message_body",
    "get_message_created",
    "get_message_id",
    "get_message_recipients",
    "get_message_subject",
    "matches",
    "pick_latest_message",
]
