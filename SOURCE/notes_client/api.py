"""
HTTP client for the notes backend.

Wraps a ``requests.Session`` (which keeps the session cookie), attaches the
CSRF token to mutating requests, refreshes it once when the backend rejects
it, and turns every failure into an :class:`APIError`.
"""

from __future__ import annotations

import base64
import enum
import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from .config import Settings, get_settings
from .schemas import Note, User


logger = logging.getLogger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "DELETE", "PATCH"})
CSRF_HEADER = "X-CSRF-Token"


class ErrorKind(str, enum.Enum):
    TIMEOUT = "timeout"
    OFFLINE = "offline"
    CONNECTION = "connection"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    SERVER = "server"
    REQUEST = "request"


class APIError(Exception):
    """Raised for any failed backend call. ``status`` is 0 for transport errors."""

    def __init__(
        self,
        message: str,
        status: int = 0,
        data: Any = None,
        kind: ErrorKind = ErrorKind.REQUEST,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data
        self.kind = kind

    def __repr__(self) -> str:
        return f"APIError({self.message!r}, status={self.status}, kind={self.kind.value})"


def _error_message(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, str) and error:
            return error
    return None


def _is_csrf_failure(data: Any) -> bool:
    message = _error_message(data)
    return bool(message) and "csrf token" in message.lower()


def _parse_body(response: requests.Response) -> Any:
    content_type = response.headers.get("content-type") or ""
    if "application/json" not in content_type:
        return None
    text = response.text
    return json.loads(text) if text else {}


def classify_response(response: requests.Response, data: Any) -> APIError:
    """Build the error for a non-2xx response (CSRF retry is handled by the caller)."""
    status = response.status_code
    message = _error_message(data)
    if status == 401:
        return APIError(
            message or "Session expired. Please log in again.",
            status,
            data,
            ErrorKind.UNAUTHORIZED,
        )
    if status == 403:
        return APIError(message or "Access denied.", status, data, ErrorKind.FORBIDDEN)
    if status >= 500:
        return APIError(
            message or "Server error. Please try again later.",
            status,
            data,
            ErrorKind.SERVER,
        )
    return APIError(message or "Request failed", status, data, ErrorKind.REQUEST)


class APIClient:
    """Session-scoped client; one instance per signed-in browser session."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.timeout = self.settings.request_timeout_seconds
        self.csrf_token: Optional[str] = None
        self.auth = AuthAPI(self)
        self.notes = NotesAPI(self)

    def api_url(self, path: str) -> str:
        return f"{self.settings.backend_url.rstrip('/')}{self.settings.api_prefix}{path}"

    def init(self) -> None:
        self.fetch_csrf_token()

    def export_session(self) -> str:
        """Serialize the backend cookies so a reloaded page can resume the session."""
        cookies = [
            [cookie.name, cookie.value, cookie.domain, cookie.path]
            for cookie in self.session.cookies
        ]
        if not cookies:
            return ""
        raw = json.dumps(cookies, separators=(",", ":")).encode()
        return base64.urlsafe_b64encode(raw).decode()

    def restore_session(self, value: Optional[str]) -> bool:
        """Load cookies saved by :meth:`export_session`; unreadable values are ignored."""
        if not value:
            return False
        try:
            cookies = json.loads(base64.urlsafe_b64decode(value.encode()))
            for name, cookie_value, domain, path in cookies:
                self.session.cookies.set(name, cookie_value, domain=domain, path=path)
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring unreadable stored session: %s", exc)
            return False
        return True

    def fetch_csrf_token(self, retries: int = 1) -> Optional[str]:
        """Fetch a fresh CSRF token, retrying once after a short delay."""
        attempt = 0
        while True:
            try:
                response = self.session.get(self.api_url("/csrf"), timeout=self.timeout)
                if not response.ok:
                    raise APIError("Failed to fetch CSRF token", response.status_code)
                self.csrf_token = (_parse_body(response) or {}).get("token")
                return self.csrf_token
            except (requests.RequestException, APIError, ValueError) as exc:
                logger.error("Failed to fetch CSRF token: %s", exc)
                if attempt >= retries:
                    return None
                attempt += 1
                time.sleep(self.settings.csrf_retry_delay_seconds)

    def request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        retried: bool = False,
    ) -> Any:
        method = method.upper()
        headers = {"Content-Type": "application/json"}
        if self.csrf_token and method in MUTATING_METHODS:
            headers[CSRF_HEADER] = self.csrf_token

        kwargs: Dict[str, Any] = {
            "headers": headers,
            "params": params,
            "timeout": timeout or self.timeout,
        }
        if payload is not None and method != "GET":
            kwargs["json"] = payload

        try:
            response = self.session.request(method, self.api_url(path), **kwargs)
            data = _parse_body(response)
        except requests.Timeout as exc:
            logger.warning("%s %s timed out: %s", method, path, exc)
            raise APIError(
                "Request timed out. Please check your connection.",
                0,
                kind=ErrorKind.TIMEOUT,
            ) from exc
        except requests.ConnectionError as exc:
            logger.warning("%s %s could not reach the backend: %s", method, path, exc)
            raise APIError(
                "No internet connection. Please check your network.",
                0,
                kind=ErrorKind.OFFLINE,
            ) from exc
        except (requests.RequestException, ValueError) as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise APIError(
                "Connection error. Please try again.",
                0,
                kind=ErrorKind.CONNECTION,
            ) from exc

        if response.ok:
            return data

        if response.status_code == 403 and _is_csrf_failure(data) and not retried:
            logger.info("CSRF token rejected for %s %s; refreshing", method, path)
            self.fetch_csrf_token()
            return self.request(
                method, path, payload, params=params, timeout=timeout, retried=True
            )

        error = classify_response(response, data)
        logger.debug("%s %s -> %s", method, path, repr(error))
        raise error

    def health(self) -> Dict[str, Any]:
        url = f"{self.settings.backend_url.rstrip('/')}/health"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise APIError("Connection error. Please try again.", 0, kind=ErrorKind.CONNECTION) from exc
        data = _parse_body(response)
        if not response.ok:
            raise classify_response(response, data)
        return data or {}


def _user_from(data: Any) -> Optional[User]:
    if isinstance(data, dict) and data.get("user"):
        return User.model_validate(data["user"])
    return None


class AuthAPI:
    def __init__(self, client: APIClient) -> None:
        self.client = client

    def register(self, email: str, password: str, username: str) -> Optional[User]:
        data = self.client.request(
            "POST",
            "/auth/register",
            {"email": email, "password": password, "username": username},
        )
        return _user_from(data)

    def login(self, email: str, password: str) -> Optional[User]:
        data = self.client.request("POST", "/auth/login", {"email": email, "password": password})
        return _user_from(data)

    def logout(self) -> None:
        self.client.request("POST", "/auth/logout")

    def me(self) -> Optional[User]:
        return _user_from(self.client.request("GET", "/auth/me"))

    def change_password(self, current_password: str, new_password: str) -> Any:
        return self.client.request(
            "POST",
            "/auth/password",
            {"current_password": current_password, "new_password": new_password},
        )

    def verify_email(self, token: str) -> Any:
        return self.client.request("POST", "/auth/verify-email", {"token": token})

    def resend_verification(self) -> Any:
        return self.client.request("POST", "/auth/resend-verification")

    def magic_link(self, email: str) -> Any:
        return self.client.request("POST", "/auth/magic-link", {"email": email})

    def verify_magic_link(self, token: str) -> Optional[User]:
        data = self.client.request("GET", "/auth/magic-link/verify", params={"token": token})
        return _user_from(data)

    def forgot_password(self, email: str) -> Any:
        return self.client.request("POST", "/auth/forgot-password", {"email": email})

    def reset_password(self, token: str, password: str) -> Any:
        return self.client.request(
            "POST", "/auth/reset-password", {"token": token, "password": password}
        )


class NotesAPI:
    def __init__(self, client: APIClient) -> None:
        self.client = client

    def list(self) -> List[Note]:
        data = self.client.request("GET", "/notes") or {}
        return [Note.model_validate(item) for item in data.get("notes") or []]

    def create(self, title: str, body: str) -> Note:
        data = self.client.request("POST", "/notes", {"title": title, "body": body})
        return Note.model_validate(data["note"])

    def update(self, note_id: str, title: str, body: str) -> Note:
        data = self.client.request("PUT", f"/notes/{note_id}", {"title": title, "body": body})
        return Note.model_validate(data["note"])

    def remove(self, note_id: str) -> None:
        self.client.request("DELETE", f"/notes/{note_id}")


__all__ = [
    "APIClient",
    "APIError",
    "AuthAPI",
    "ErrorKind",
    "NotesAPI",
    "classify_response",
]
