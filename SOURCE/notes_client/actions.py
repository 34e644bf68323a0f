"""
User intents and the dispatch table that carries them out.

Views never call the API directly: they dispatch an :class:`Action` with a
payload and get back an :class:`Outcome` holding the new state, an optional
redirect and an optional notification. Failures become notifications; the
user can always retry.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError

from . import state as st_
from .api import APIClient, APIError
from .router import Route, build_hash
from .schemas import (
    BODY_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    NoteDraft,
    RegisterRequest,
    ResetPasswordRequest,
)
from .tokens import RedemptionStatus, TokenFlow, begin, redeem


logger = logging.getLogger(__name__)

Message = Tuple[str, str]


class Action(str, enum.Enum):
    REGISTER = "register"
    LOGIN = "login"
    LOGOUT = "logout"
    MAGIC_LINK = "magic-link"
    RESEND_VERIFICATION = "resend-verification"
    FORGOT_PASSWORD = "forgot-password"
    RESET_PASSWORD = "reset-password"
    CHANGE_PASSWORD = "change-password"
    LOAD_NOTES = "load-notes"
    SAVE_NOTE = "save-note"
    EDIT_NOTE = "edit-note"
    DELETE_NOTE = "delete-note"
    CANCEL_EDIT = "cancel-edit"


@dataclass(frozen=True)
class Outcome:
    state: st_.SessionState
    redirect: Optional[str] = None
    message: Optional[Message] = None


def _text(payload: Mapping[str, Any], key: str, strip: bool = True) -> str:
    value = payload.get(key)
    text = "" if value is None else str(value)
    return text.strip() if strip else text


def _failure(state: st_.SessionState, error: APIError, fallback: str) -> Outcome:
    return Outcome(state, message=("error", error.message or fallback))


def _validation_message(error: ValidationError) -> str:
    messages = []
    for entry in error.errors():
        loc = ".".join(str(part) for part in entry.get("loc") or ())
        msg = entry.get("msg")
        if msg:
            messages.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(messages) or str(error)


def register(client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]) -> Outcome:
    try:
        data = RegisterRequest(
            username=_text(payload, "username"),
            email=_text(payload, "email"),
            password=_text(payload, "password", strip=False),
        )
    except ValidationError as exc:
        return Outcome(state, message=("error", _validation_message(exc)))
    try:
        user = client.auth.register(data.email, data.password, data.username)
    except APIError as exc:
        return _failure(state, exc, "Unable to register.")
    return Outcome(
        st_.signed_in(state, user),
        redirect=build_hash(Route.CHECK_EMAIL, type="verification", email=data.email),
    )


def login(client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]) -> Outcome:
    email = _text(payload, "email")
    password = _text(payload, "password", strip=False)
    if not email or not password:
        return Outcome(state, message=("error", "Email and password are required."))
    try:
        user = client.auth.login(email, password)
    except APIError as exc:
        return _failure(state, exc, "Unable to sign in.")
    return Outcome(st_.signed_in(state, user), redirect=build_hash(Route.APP))


def logout(client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]) -> Outcome:
    try:
        client.auth.logout()
    except APIError as exc:
        # Local sign-out proceeds even if the backend call fails.
        logger.info("Logout request failed, clearing local session anyway: %s", exc.message)
    return Outcome(st_.signed_out(state), redirect=build_hash(Route.HOME))


def magic_link(client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]) -> Outcome:
    email = _text(payload, "email")
    if not email:
        return Outcome(state, message=("error", "Enter your email first."))
    try:
        client.auth.magic_link(email)
    except APIError as exc:
        return _failure(state, exc, "Unable to send magic link.")
    return Outcome(state, redirect=build_hash(Route.CHECK_EMAIL, type="magic-link", email=email))


def resend_verification(
    client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]
) -> Outcome:
    try:
        client.auth.resend_verification()
    except APIError as exc:
        return _failure(state, exc, "Unable to resend verification.")
    return Outcome(state, message=("success", "Verification email sent."))


def forgot_password(
    client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]
) -> Outcome:
    email = _text(payload, "email")
    if not email:
        return Outcome(state, message=("error", "Enter your email first."))
    try:
        client.auth.forgot_password(email)
    except APIError as exc:
        return _failure(state, exc, "Unable to send reset email.")
    return Outcome(state, redirect=build_hash(Route.CHECK_EMAIL, type="reset", email=email))


def reset_password(
    client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]
) -> Outcome:
    token = _text(payload, "token")
    password = _text(payload, "password", strip=False)
    if not token:
        return Outcome(state, message=("error", "This reset link is missing its token."))
    if not password:
        return Outcome(state, message=("error", "Enter a new password."))
    try:
        data = ResetPasswordRequest(token=token, password=password)
    except ValidationError as exc:
        return Outcome(state, message=("error", _validation_message(exc)))

    result = redeem(client, begin(TokenFlow.RESET_PASSWORD, data.token), password=data.password)
    if result.status is RedemptionStatus.FAILED:
        return Outcome(state, message=("error", result.error or "Unable to reset password."))
    return Outcome(
        st_.signed_in(state, result.user),
        redirect=build_hash(Route.APP),
        message=("success", "Password updated."),
    )


def change_password(
    client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]
) -> Outcome:
    current = _text(payload, "current_password", strip=False)
    new = _text(payload, "new_password", strip=False)
    if not current or not new:
        return Outcome(state, message=("error", "Both passwords are required."))
    try:
        client.auth.change_password(current, new)
    except APIError as exc:
        return _failure(state, exc, "Unable to change password.")
    return Outcome(state, message=("success", "Password changed."))


def load_notes(client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]) -> Outcome:
    try:
        notes = client.notes.list()
    except APIError as exc:
        return _failure(state, exc, "Unable to load notes.")
    return Outcome(st_.notes_loaded(state, notes))


def save_note(client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]) -> Outcome:
    title = _text(payload, "title")
    body = _text(payload, "body")
    if not title or not body:
        return Outcome(state, message=("error", "Title and body are required."))
    try:
        draft = NoteDraft(title=title, body=body)
    except ValidationError:
        return Outcome(
            state,
            message=(
                "error",
                f"Title must be at most {TITLE_MAX_LENGTH} characters "
                f"and body at most {BODY_MAX_LENGTH}.",
            ),
        )

    try:
        if state.editing_note_id:
            note = client.notes.update(state.editing_note_id, draft.title, draft.body)
            new_state = st_.note_updated(state, note)
            message = ("success", "Note updated.")
        else:
            note = client.notes.create(draft.title, draft.body)
            new_state = st_.note_created(state, note)
            message = ("success", "Note added.")
    except APIError as exc:
        return _failure(state, exc, "Unable to save note.")
    return Outcome(st_.stop_editing(new_state), message=message)


def edit_note(client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]) -> Outcome:
    return Outcome(st_.start_editing(state, _text(payload, "note_id")))


def delete_note(client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]) -> Outcome:
    note_id = _text(payload, "note_id")
    if not note_id:
        return Outcome(state)
    try:
        client.notes.remove(note_id)
    except APIError as exc:
        return _failure(state, exc, "Unable to delete note.")
    return Outcome(st_.note_deleted(state, note_id), message=("success", "Note deleted."))


def cancel_edit(client: APIClient, state: st_.SessionState, payload: Mapping[str, Any]) -> Outcome:
    return Outcome(st_.stop_editing(state))


Handler = Callable[[APIClient, st_.SessionState, Mapping[str, Any]], Outcome]

HANDLERS: Dict[Action, Handler] = {
    Action.REGISTER: register,
    Action.LOGIN: login,
    Action.LOGOUT: logout,
    Action.MAGIC_LINK: magic_link,
    Action.RESEND_VERIFICATION: resend_verification,
    Action.FORGOT_PASSWORD: forgot_password,
    Action.RESET_PASSWORD: reset_password,
    Action.CHANGE_PASSWORD: change_password,
    Action.LOAD_NOTES: load_notes,
    Action.SAVE_NOTE: save_note,
    Action.EDIT_NOTE: edit_note,
    Action.DELETE_NOTE: delete_note,
    Action.CANCEL_EDIT: cancel_edit,
}


def dispatch(
    action: Action,
    client: APIClient,
    state: st_.SessionState,
    payload: Optional[Mapping[str, Any]] = None,
) -> Outcome:
    handler = HANDLERS[Action(action)]
    logger.debug("Dispatching %s", Action(action).value)
    return handler(client, state, payload or {})


__all__ = ["Action", "Outcome", "HANDLERS", "dispatch"]
