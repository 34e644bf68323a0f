import pytest

from notes_client.tokens import (
    RedemptionLedger,
    RedemptionStatus,
    TokenFlow,
    TokenNotFound,
    begin,
    extract_token,
    redeem,
)


EMAIL_TEXT = (
    "Hello!\n"
    "Verify: http://localhost:8080/#verify-email?token=0a1b2c3d\n"
    "Or sign in: http://localhost:8080/#magic-link?token=FFEE99\n"
)


def test_extract_token_by_route():
    assert extract_token(EMAIL_TEXT, "verify-email") == "0a1b2c3d"
    assert extract_token(EMAIL_TEXT, "magic-link") == "FFEE99"


def test_extract_token_requires_matching_route():
    with pytest.raises(TokenNotFound, match="reset-password"):
        extract_token(EMAIL_TEXT, "reset-password")


def test_extract_token_stops_at_non_hex():
    assert extract_token("#reset-password?token=abc123xyz", "reset-password") == "abc123"


def test_reset_password_is_not_redeemed_on_load():
    assert TokenFlow.VERIFY_EMAIL.redeems_on_load
    assert TokenFlow.MAGIC_LINK.redeems_on_load
    assert not TokenFlow.RESET_PASSWORD.redeems_on_load


def register_and_get_token(client, backend, mailpit, route, subject):
    client.init()
    client.auth.register("tok@test.com", "Password1", "tok")
    message = mailpit.wait_for_email(to="tok@test.com", subject=subject)
    return extract_token(message["Text"], route)


def test_verify_email_redemption_rechecks_session(client, backend, mailpit):
    token = register_and_get_token(client, backend, mailpit, "verify-email", "Verify your")

    result = redeem(client, begin(TokenFlow.VERIFY_EMAIL, token))

    assert result.status is RedemptionStatus.VERIFIED
    assert result.user.email == "tok@test.com"
    assert backend.users["tok@test.com"]["verified"]
    assert backend.calls_to("GET", "/auth/me") == 1


def test_magic_link_redemption_signs_in(client, backend, mailpit):
    client.init()
    client.auth.register("tok@test.com", "Password1", "tok")
    client.auth.logout()
    client.auth.magic_link("tok@test.com")
    message = mailpit.wait_for_email(to="tok@test.com", subject="login link")
    token = extract_token(message["Text"], "magic-link")

    result = redeem(client, begin(TokenFlow.MAGIC_LINK, token))

    assert result.status is RedemptionStatus.VERIFIED
    assert result.user.username == "tok"
    assert backend.signed_in_emails() == ["tok@test.com"]


def test_failed_redemption_carries_backend_message(client, backend):
    client.init()
    result = redeem(client, begin(TokenFlow.VERIFY_EMAIL, "deadbeef"))
    assert result.status is RedemptionStatus.FAILED
    assert result.error == "Invalid or expired token"
    assert result.failure_title == "Verification failed"
    assert result.finished


def test_reset_redemption_needs_password(client, backend):
    with pytest.raises(ValueError):
        redeem(client, begin(TokenFlow.RESET_PASSWORD, "abc"))


def test_finished_redemption_cannot_run_again(client, backend):
    client.init()
    failed = redeem(client, begin(TokenFlow.MAGIC_LINK, "abc"))
    with pytest.raises(ValueError):
        redeem(client, failed)


def test_ledger_calls_backend_once_per_token(client, backend, mailpit):
    token = register_and_get_token(client, backend, mailpit, "verify-email", "Verify your")
    ledger = RedemptionLedger()

    first = ledger.redeem_once(client, TokenFlow.VERIFY_EMAIL, token)
    second = ledger.redeem_once(client, TokenFlow.VERIFY_EMAIL, token)

    assert first is second
    assert first.status is RedemptionStatus.VERIFIED
    assert backend.calls_to("POST", "/auth/verify-email") == 1
    assert len(ledger) == 1


def test_redeemed_token_cannot_be_reused(client, backend, mailpit):
    token = register_and_get_token(client, backend, mailpit, "verify-email", "Verify your")

    assert redeem(client, begin(TokenFlow.VERIFY_EMAIL, token)).status is RedemptionStatus.VERIFIED
    again = redeem(client, begin(TokenFlow.VERIFY_EMAIL, token))
    assert again.status is RedemptionStatus.FAILED
