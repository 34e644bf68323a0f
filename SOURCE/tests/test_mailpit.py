import pytest
import requests
import responses

from notes_client.mailpit import (
    MailpitClient,
    MailTimeout,
    extract_token_from_email,
    get_message_body,
    get_message_created,
    get_message_recipients,
    matches,
    pick_latest_message,
)
from notes_client.tokens import TokenNotFound


def test_recipients_accept_mailpit_and_plain_shapes():
    assert get_message_recipients({"To": [{"Name": "A", "Address": "a@test.com"}]}) == ["a@test.com"]
    assert get_message_recipients({"to": ["b@test.com", None]}) == ["b@test.com"]
    assert get_message_recipients({"recipients": "c@test.com"}) == ["c@test.com"]
    assert get_message_recipients({}) == []


def test_created_parses_iso_and_rfc2822():
    iso = get_message_created({"Created": "2024-05-01T10:00:00.000Z"})
    rfc = get_message_created({"Date": "Wed, 01 May 2024 10:00:00 +0000"})
    assert iso == rfc > 0
    assert get_message_created({"Created": "not a date"}) == 0
    assert get_message_created({}) == 0


def test_pick_latest_message():
    older = {"ID": "1", "Created": "2024-05-01T10:00:00Z"}
    newer = {"ID": "2", "Created": "2024-05-01T10:00:05Z"}
    assert pick_latest_message([older, newer])["ID"] == "2"
    assert pick_latest_message([]) is None


def test_matches_on_recipient_and_subject_substrings():
    message = {"Subject": "Verify your email address", "To": [{"Address": "Bob@Test.com"}]}
    assert matches(message, to="bob@test.com", subject="verify your")
    assert not matches(message, to="alice@test.com")
    assert not matches(message, subject="reset")
    assert matches(message)


def test_body_falls_back_to_html():
    assert get_message_body({"HTML": "<a href='#x'>x</a>"}) == "<a href='#x'>x</a>"


def test_extract_token_from_email():
    message = {"Text": "Click http://app/#reset-password?token=c0ffee to continue"}
    assert extract_token_from_email(message, "reset-password") == "c0ffee"
    with pytest.raises(TokenNotFound):
        extract_token_from_email(message, "magic-link")


def test_wait_for_email_returns_full_latest_message(mailpit, backend):
    backend.mailpit.deliver("bob@test.com", "Verify your email", "old #verify-email?token=aa")
    backend.mailpit.deliver("someone@test.com", "Verify your email", "#verify-email?token=bb")
    backend.mailpit.deliver("bob@test.com", "Verify your email", "new #verify-email?token=cc")

    message = mailpit.wait_for_email(to="bob@test.com", subject="Verify your")

    assert extract_token_from_email(message, "verify-email") == "cc"


def test_wait_for_email_times_out(mailpit, backend):
    with pytest.raises(MailTimeout, match="nobody@test.com"):
        mailpit.wait_for_email(to="nobody@test.com", timeout=0.05)


def test_clear(mailpit, backend):
    backend.mailpit.deliver("bob@test.com", "hi", "body")
    assert mailpit.clear()
    assert mailpit.list_messages() == []


def test_clear_reports_unreachable_mailpit(settings, mocked):
    mocked.add(
        responses.DELETE,
        f"{settings.mailpit_base_url}/api/v1/messages",
        body=requests.ConnectionError("down"),
    )
    assert MailpitClient(settings).clear() is False
