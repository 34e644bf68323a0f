import pytest
import responses

from notes_client.api import APIClient
from notes_client.config import Settings, get_settings
from notes_client.mailpit import MailpitClient

from fake_backend import FakeBackend, FakeMailpit


def make_settings(**overrides) -> Settings:
    settings = Settings()
    settings.backend_url = "http://backend.test"
    settings.mailpit_base_url = "http://mailpit.test:8025"
    settings.csrf_retry_delay_seconds = 0
    settings.mailpit_poll_interval_seconds = 0.01
    settings.mailpit_wait_timeout_seconds = 1
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def client(settings) -> APIClient:
    return APIClient(settings)


@pytest.fixture
def backend(settings, mocked) -> FakeBackend:
    mailpit = FakeMailpit(settings.mailpit_base_url)
    fake = FakeBackend(settings, mailpit)
    fake.install(mocked)
    mailpit.install(mocked)
    return fake


@pytest.fixture
def mailpit(settings, backend) -> MailpitClient:
    return MailpitClient(settings)


@pytest.fixture
def app_backend(mocked) -> FakeBackend:
    """Fake services at the URLs the Streamlit app resolves from the environment."""
    env_settings = get_settings()
    mailpit = FakeMailpit(env_settings.mailpit_base_url)
    fake = FakeBackend(env_settings, mailpit)
    fake.install(mocked)
    mailpit.install(mocked)
    return fake
