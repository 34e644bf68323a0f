"""
Emailed token links and their redemption.

Three flows share one shape: a hex token arrives in a hash fragment such as
``#verify-email?token=<hex>``, the page shows a loading state, calls the
matching backend endpoint once, and ends either verified or failed::

    pending -> redeeming -> verified | failed

What differs is the effect afterwards:

* ``verify-email`` re-checks the session and stays on the page.
* ``magic-link`` signs the user in from the response and moves to ``#app``.
* ``reset-password`` is not redeemed on load; the token only unlocks the
  new-password form and is redeemed when that form is submitted.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from .api import APIClient, APIError
from .schemas import User


logger = logging.getLogger(__name__)


class TokenFlow(str, enum.Enum):
    VERIFY_EMAIL = "verify-email"
    MAGIC_LINK = "magic-link"
    RESET_PASSWORD = "reset-password"

    @property
    def redeems_on_load(self) -> bool:
        return self is not TokenFlow.RESET_PASSWORD


class RedemptionStatus(str, enum.Enum):
    PENDING = "pending"
    REDEEMING = "redeeming"
    VERIFIED = "verified"
    FAILED = "failed"


LOADING_MESSAGES = {
    TokenFlow.VERIFY_EMAIL: "Verifying...",
    TokenFlow.MAGIC_LINK: "Signing you in...",
    TokenFlow.RESET_PASSWORD: "Resetting your password...",
}

FAILURE_TITLES = {
    TokenFlow.VERIFY_EMAIL: "Verification failed",
    TokenFlow.MAGIC_LINK: "Magic link failed",
    TokenFlow.RESET_PASSWORD: "Password reset failed",
}

FAILURE_FALLBACKS = {
    TokenFlow.VERIFY_EMAIL: "Unable to verify email.",
    TokenFlow.MAGIC_LINK: "Unable to sign in.",
    TokenFlow.RESET_PASSWORD: "Unable to reset password.",
}


class TokenNotFound(LookupError):
    """No ``#<route>?token=<hex>`` link in the given text."""


def token_pattern(route: str) -> "re.Pattern[str]":
    return re.compile(rf"#{re.escape(route)}\?token=([a-f0-9]+)", re.IGNORECASE)


def extract_token(text: str, route: str) -> str:
    match = token_pattern(route).search(text or "")
    if not match:
        raise TokenNotFound(f"Unable to find {route} token in email")
    return match.group(1)


@dataclass(frozen=True)
class Redemption:
    flow: TokenFlow
    token: str
    status: RedemptionStatus = RedemptionStatus.PENDING
    user: Optional[User] = None
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.status in (RedemptionStatus.VERIFIED, RedemptionStatus.FAILED)

    @property
    def failure_title(self) -> str:
        return FAILURE_TITLES[self.flow]


def begin(flow: TokenFlow, token: str) -> Redemption:
    return Redemption(flow=flow, token=token)


def _session_user(client: APIClient) -> Optional[User]:
    try:
        return client.auth.me()
    except APIError:
        return None


def redeem(
    client: APIClient,
    redemption: Redemption,
    password: Optional[str] = None,
) -> Redemption:
    """Call the flow's endpoint once and return the finished redemption."""
    if redemption.status is not RedemptionStatus.PENDING:
        raise ValueError(f"Redemption already {redemption.status.value}")

    redemption = replace(redemption, status=RedemptionStatus.REDEEMING)
    flow = redemption.flow
    try:
        if flow is TokenFlow.VERIFY_EMAIL:
            client.auth.verify_email(redemption.token)
            user = _session_user(client)
        elif flow is TokenFlow.MAGIC_LINK:
            user = client.auth.verify_magic_link(redemption.token)
        else:
            if not password:
                raise ValueError("A new password is required to redeem a reset token")
            client.auth.reset_password(redemption.token, password)
            user = _session_user(client)
    except APIError as exc:
        logger.info("%s token redemption failed: %s", flow.value, exc.message)
        return replace(
            redemption,
            status=RedemptionStatus.FAILED,
            error=exc.message or FAILURE_FALLBACKS[flow],
        )

    logger.info("%s token redeemed", flow.value)
    return replace(redemption, status=RedemptionStatus.VERIFIED, user=user)


class RedemptionLedger:
    """
    Remembers finished redemptions for one session so that a token is sent
    to the backend at most once, however often the page is re-rendered.
    """

    def __init__(self) -> None:
        self._entries: Dict[Tuple[TokenFlow, str], Redemption] = {}

    def get(self, flow: TokenFlow, token: str) -> Optional[Redemption]:
        return self._entries.get((flow, token))

    def redeem_once(self, client: APIClient, flow: TokenFlow, token: str) -> Redemption:
        existing = self.get(flow, token)
        if existing is not None:
            return existing
        result = redeem(client, begin(flow, token))
        self._entries[(flow, token)] = result
        return result

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "TokenFlow",
    "RedemptionStatus",
    "Redemption",
    "RedemptionLedger",
    "TokenNotFound",
    "LOADING_MESSAGES",
    "FAILURE_TITLES",
    "begin",
    "redeem",
    "extract_token",
    "token_pattern",
]
