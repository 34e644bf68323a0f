"""
Streamlit renderers, one per route, plus the glue that keeps the session
state, the current location and flash messages in ``st.session_state``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import streamlit as st

from .actions import Action, Outcome, dispatch
from .api import APIClient
from .markup import (
    eyebrow_html,
    flash_html,
    note_title_html,
    pill_html,
    session_cookie_script,
)
from .router import (
    Location,
    Route,
    build_hash,
    guard,
    location_from_query_params,
    parse_hash,
    query_params_for,
)
from .schemas import BODY_MAX_LENGTH, TITLE_MAX_LENGTH
from .state import SessionState, notes_label, reconstruct, signed_in
from .tokens import (
    LOADING_MESSAGES,
    Redemption,
    RedemptionLedger,
    RedemptionStatus,
    TokenFlow,
)


def ensure_session_defaults() -> None:
    defaults = {
        "client": None,
        "app_state": SessionState(),
        "ledger": None,
        "location": None,
        "flash": None,
        "notes_synced": False,
        "browser_cookie": None,
    }
    for key, value in defaults.items():
        st.session_state.setdefault(key, value)


SESSION_COOKIE = "notes_session"


def read_browser_cookie() -> Optional[str]:
    return st.context.cookies.get(SESSION_COOKIE)


def write_browser_cookie(value: str) -> None:
    st.html(session_cookie_script(SESSION_COOKIE, value), unsafe_allow_javascript=True)


def bootstrap() -> None:
    """First run of a session: stored cookies, CSRF token, session check, initial location."""
    if st.session_state["client"] is None:
        client = APIClient()
        stored = read_browser_cookie()
        if client.restore_session(stored):
            st.session_state["browser_cookie"] = stored
        client.init()
        st.session_state["client"] = client
        st.session_state["app_state"] = reconstruct(client)
    if st.session_state["ledger"] is None:
        st.session_state["ledger"] = RedemptionLedger()
    if st.session_state["location"] is None:
        st.session_state["location"] = location_from_query_params(st.query_params.to_dict())


def persist_session() -> None:
    """Mirror the backend session cookie into the browser whenever it changes."""
    value = get_client().export_session()
    if value != (st.session_state["browser_cookie"] or ""):
        write_browser_cookie(value)
        st.session_state["browser_cookie"] = value


def get_client() -> APIClient:
    return st.session_state["client"]


def current_state() -> SessionState:
    return st.session_state["app_state"]


def set_flash(level: str, message: str) -> None:
    st.session_state["flash"] = (level, message)


def pop_flash() -> Optional[Tuple[str, str]]:
    flash = st.session_state.get("flash")
    st.session_state["flash"] = None
    return flash


def display_flash() -> None:
    flash = pop_flash()
    if not flash:
        return
    level, message = flash
    st.markdown(flash_html(level, message), unsafe_allow_html=True)


def navigate(hash_value: str) -> None:
    st.session_state["location"] = hash_value
    st.query_params.from_dict(query_params_for(hash_value))
    st.rerun()


def apply(outcome: Outcome) -> None:
    st.session_state["app_state"] = outcome.state
    if outcome.message:
        set_flash(*outcome.message)
    if outcome.redirect:
        navigate(outcome.redirect)
    else:
        st.rerun()


def run_action(action: Action, payload: Optional[Mapping[str, Any]] = None) -> None:
    apply(dispatch(action, get_client(), current_state(), payload))


def render_nav() -> None:
    cols = st.columns([6, 1, 1])
    if current_state().authenticated:
        if cols[1].button("Notes", key="nav_app"):
            navigate(build_hash(Route.APP))
        if cols[2].button("Sign out", key="nav_logout"):
            run_action(Action.LOGOUT)
    else:
        if cols[1].button("Sign in", key="nav_login"):
            navigate(build_hash(Route.LOGIN))
        if cols[2].button("Create account", key="nav_register"):
            navigate(build_hash(Route.REGISTER))


def back_to_sign_in(key: str) -> None:
    if st.button("Back to sign in", key=key):
        navigate(build_hash(Route.LOGIN))


def render_home(location: Location) -> None:
    st.markdown(eyebrow_html("Simple, secure notes"), unsafe_allow_html=True)
    st.title("Capture the ideas that matter.")
    st.write(
        "A lightweight notes app with email-first authentication, "
        "built to be forked and customized."
    )
    cols = st.columns(2)
    if cols[0].button("Create your account", key="home_register", type="primary"):
        navigate(build_hash(Route.REGISTER))
    if cols[1].button("Sign in", key="home_login"):
        navigate(build_hash(Route.LOGIN))


def render_login(location: Location) -> None:
    st.header("Welcome back")
    st.caption("Sign in with your password or request a magic link.")
    with st.form("login_form"):
        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        cols = st.columns(2)
        submitted = cols[0].form_submit_button("Sign in", type="primary")
        wants_magic_link = cols[1].form_submit_button("Email me a magic link")
    if submitted:
        run_action(Action.LOGIN, {"email": email, "password": password})
    elif wants_magic_link:
        run_action(Action.MAGIC_LINK, {"email": email})

    if st.button("Forgot password?", key="login_forgot"):
        navigate(build_hash(Route.FORGOT_PASSWORD))


def render_register(location: Location) -> None:
    st.header("Create your account")
    st.caption("Start with a verified email and a secure password.")
    with st.form("register_form"):
        username = st.text_input("Name", key="register_username", max_chars=100)
        email = st.text_input("Email", key="register_email")
        password = st.text_input("Password", type="password", key="register_password")
        submitted = st.form_submit_button("Create account", type="primary")
    if submitted:
        run_action(
            Action.REGISTER,
            {"username": username, "email": email, "password": password},
        )

    st.write("Already have an account?")
    if st.button("Sign in instead", key="register_login"):
        navigate(build_hash(Route.LOGIN))


CHECK_EMAIL_TITLES = {
    "verification": "Verify your email",
    "magic-link": "Check your inbox",
    "reset": "Reset link sent",
}

CHECK_EMAIL_MESSAGES = {
    "verification": "We sent you a verification link. Open it to activate your account.",
    "magic-link": "Open the magic link to sign in without a password.",
    "reset": "Use the reset link to choose a new password.",
}


def render_check_email(location: Location) -> None:
    kind = location.params.get("type") or "verification"
    email = location.params.get("email", "")
    st.header(CHECK_EMAIL_TITLES.get(kind, "Check your email"))
    st.caption(CHECK_EMAIL_MESSAGES.get(kind, "Check your inbox for the next step."))
    if email:
        st.markdown(pill_html(email), unsafe_allow_html=True)
    if kind == "verification":
        if st.button("Resend verification", key="resend_verification"):
            run_action(Action.RESEND_VERIFICATION)
    back_to_sign_in("check_email_back")


def redeem_from_location(location: Location, flow: TokenFlow) -> Tuple[Optional[Redemption], bool]:
    """Return the redemption for the location's token and whether it ran just now."""
    token = location.params.get("token")
    if not token:
        return None, False
    ledger: RedemptionLedger = st.session_state["ledger"]
    existing = ledger.get(flow, token)
    if existing is not None:
        return existing, False
    with st.spinner(LOADING_MESSAGES[flow]):
        return ledger.redeem_once(get_client(), flow, token), True


def render_redemption_failure(redemption: Redemption) -> None:
    st.header(redemption.failure_title)
    st.caption(redemption.error or "")
    back_to_sign_in(f"{redemption.flow.value}_failed_back")


def render_verify_email(location: Location) -> None:
    redemption, fresh = redeem_from_location(location, TokenFlow.VERIFY_EMAIL)
    if redemption is None:
        render_not_found(location)
        return
    if redemption.status is RedemptionStatus.FAILED:
        render_redemption_failure(redemption)
        return
    if fresh:
        st.session_state["app_state"] = signed_in(current_state(), redemption.user)
        # Nav was drawn before the session check; redraw it.
        st.rerun()
    st.header("Email verified")
    st.caption("Your email is confirmed. You can keep going now.")
    if st.button("Open notes", key="verify_open_notes", type="primary"):
        navigate(build_hash(Route.APP))


def render_magic_link(location: Location) -> None:
    redemption, fresh = redeem_from_location(location, TokenFlow.MAGIC_LINK)
    if redemption is None:
        render_not_found(location)
        return
    if redemption.status is RedemptionStatus.FAILED:
        render_redemption_failure(redemption)
        return
    if fresh:
        st.session_state["app_state"] = signed_in(current_state(), redemption.user)
    navigate(build_hash(Route.APP))


def render_forgot_password(location: Location) -> None:
    st.header("Reset your password")
    st.caption("We will email you a link to reset your password.")
    with st.form("forgot_password_form"):
        email = st.text_input("Email", key="forgot_email")
        submitted = st.form_submit_button("Send reset link", type="primary")
    if submitted:
        run_action(Action.FORGOT_PASSWORD, {"email": email})
    back_to_sign_in("forgot_back")


def render_reset_password(location: Location) -> None:
    token = location.params.get("token")
    if not token:
        render_not_found(location)
        return
    st.header("Create a new password")
    st.caption("Choose a strong password to secure your account.")
    with st.form("reset_password_form"):
        password = st.text_input("New password", type="password", key="reset_password")
        submitted = st.form_submit_button("Reset password", type="primary")
    if submitted:
        with st.spinner(LOADING_MESSAGES[TokenFlow.RESET_PASSWORD]):
            outcome = dispatch(
                Action.RESET_PASSWORD,
                get_client(),
                current_state(),
                {"token": token, "password": password},
            )
        apply(outcome)


def render_note_form(app_state: SessionState) -> None:
    editing = app_state.editing_note
    suffix = editing.id if editing else "new"
    st.subheader("Edit note" if editing else "New note")
    with st.form(f"note_form_{suffix}", clear_on_submit=True):
        title = st.text_input(
            "Title",
            value=editing.title if editing else "",
            max_chars=TITLE_MAX_LENGTH,
            key=f"note_title_{suffix}",
        )
        body = st.text_area(
            "Body",
            value=editing.body if editing else "",
            max_chars=BODY_MAX_LENGTH,
            height=160,
            key=f"note_body_{suffix}",
        )
        cols = st.columns(2)
        saved = cols[0].form_submit_button(
            "Save changes" if editing else "Add note", type="primary"
        )
        cleared = cols[1].form_submit_button("Clear")
    if saved:
        run_action(Action.SAVE_NOTE, {"title": title, "body": body})
    elif cleared:
        run_action(Action.CANCEL_EDIT)


def render_notes_list(app_state: SessionState) -> None:
    header_cols = st.columns([3, 1])
    header_cols[0].subheader("Recent notes")
    header_cols[1].caption(notes_label(len(app_state.notes)))

    if not app_state.notes:
        st.info("No notes yet. Write your first one.")
        return

    for note in app_state.notes:
        with st.container():
            cols = st.columns([4, 1, 1])
            cols[0].markdown(note_title_html(note.title), unsafe_allow_html=True)
            if cols[1].button("Edit", key=f"edit_{note.id}"):
                run_action(Action.EDIT_NOTE, {"note_id": note.id})
            if cols[2].button("Delete", key=f"delete_{note.id}"):
                run_action(Action.DELETE_NOTE, {"note_id": note.id})
            # Note bodies are shown as plain text, never parsed as markup.
            st.text(note.body)
        st.divider()


def render_change_password() -> None:
    with st.expander("Change password"):
        with st.form("change_password_form", clear_on_submit=True):
            current = st.text_input(
                "Current password", type="password", key="current_password"
            )
            new = st.text_input("New password", type="password", key="new_password")
            submitted = st.form_submit_button("Change password")
        if submitted:
            run_action(
                Action.CHANGE_PASSWORD,
                {"current_password": current, "new_password": new},
            )


def render_notes_app(location: Location) -> None:
    if not st.session_state["notes_synced"]:
        st.session_state["notes_synced"] = True
        apply(dispatch(Action.LOAD_NOTES, get_client(), current_state()))

    app_state = current_state()
    user = app_state.user
    st.markdown(
        eyebrow_html(f"Hello {user.username if user and user.username else 'there'}"),
        unsafe_allow_html=True,
    )
    st.header("Your notes")
    if user and user.email:
        st.markdown(pill_html(user.email), unsafe_allow_html=True)

    form_col, list_col = st.columns([2, 3])
    with form_col:
        render_note_form(app_state)
        render_change_password()
    with list_col:
        render_notes_list(app_state)


def render_not_found(location: Location) -> None:
    st.header("Page not found")
    st.caption("That route doesn't exist. Try the home page.")
    if st.button("Back home", key="not_found_home"):
        navigate(build_hash(Route.HOME))


RENDERERS: Dict[str, Callable[[Location], None]] = {
    Route.HOME.value: render_home,
    Route.LOGIN.value: render_login,
    Route.REGISTER.value: render_register,
    Route.CHECK_EMAIL.value: render_check_email,
    Route.VERIFY_EMAIL.value: render_verify_email,
    Route.MAGIC_LINK.value: render_magic_link,
    Route.FORGOT_PASSWORD.value: render_forgot_password,
    Route.RESET_PASSWORD.value: render_reset_password,
    Route.APP.value: render_notes_app,
}


def route() -> None:
    location = parse_hash(st.session_state["location"])
    redirect = guard(location, current_state().authenticated)
    if redirect:
        navigate(redirect)
    if location.route != Route.APP.value:
        st.session_state["notes_synced"] = False
    RENDERERS.get(location.route, render_not_found)(location)


__all__ = [
    "RENDERERS",
    "apply",
    "bootstrap",
    "display_flash",
    "ensure_session_defaults",
    "navigate",
    "persist_session",
    "render_nav",
    "route",
    "run_action",
    "set_flash",
]
