"""Pytest configuration and shared fixtures"""
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from contactrelay.api.app import create_app
from contactrelay.config import AppConfig, RateLimitConfig, ServiceConfig, SmtpConfig
from contactrelay.config.config_loader import ENV_OVERRIDES
from contactrelay.core.rate_limiter import RateLimiter
from contactrelay.errors import DeliveryError

SMTP_ENV = {
    "SMTP_HOST": "smtp.example.com",
    "SMTP_PORT": "587",
    "SMTP_USER": "relay@example.com",
    "SMTP_PASS": "secret-password",
    "TO_EMAIL": "owner@example.com",
}

OTHER_ENV = ["SMTP_USE_TLS", "SMTP_TIMEOUT", "MAIL_FROM_NAME"]

VALID_FORM = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "message": "Hello, I am interested in your services.",
}


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMailSender:
    """MailSender stand-in that records messages instead of sending them"""

    def __init__(self, error: Optional[DeliveryError] = None):
        self.error = error
        self.sent: List[dict] = []

    async def send(
        self,
        config: SmtpConfig,
        from_display: str,
        to_email: str,
        subject: str,
        html_body: str,
        reply_to: Optional[str] = None,
    ) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(
            {
                "config": config,
                "from_display": from_display,
                "to_email": to_email,
                "subject": subject,
                "html_body": html_body,
                "reply_to": reply_to,
            }
        )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the service reads"""
    for name in list(SMTP_ENV) + OTHER_ENV + list(ENV_OVERRIDES.values()):
        # setenv first so teardown also removes values loaded from a .env file
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def smtp_env(clean_env, monkeypatch):
    """Complete SMTP configuration in the environment"""
    for name, value in SMTP_ENV.items():
        monkeypatch.setenv(name, value)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sender() -> FakeMailSender:
    return FakeMailSender()


@pytest.fixture
def app_config() -> AppConfig:
    """Configuration with the default 3-per-window policy"""
    return AppConfig(
        service=ServiceConfig(
            service_name="test-contact-api",
            site_name="Test Site",
            allowed_origin="https://example.com",
            admin_key="admin-secret",
        ),
        rate_limit=RateLimitConfig(max_requests=3, window_seconds=60, block_seconds=0),
    )


@pytest.fixture
def client(smtp_env, app_config, fake_sender, fake_clock) -> Generator[TestClient, None, None]:
    """TestClient over an app with a fake sender and clock"""
    limiter = RateLimiter(app_config.rate_limit, clock=fake_clock)
    app = create_app(config=app_config, sender=fake_sender, limiter=limiter)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sender_factory():
    """Build a FakeMailSender, optionally failing with the given error"""
    return FakeMailSender


@pytest.fixture
def build_client(smtp_env, fake_clock):
    """Build TestClients for custom configurations"""
    clients = []

    def _build(config: AppConfig, sender: FakeMailSender) -> TestClient:
        limiter = RateLimiter(config.rate_limit, clock=fake_clock)
        test_client = TestClient(create_app(config=config, sender=sender, limiter=limiter))
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _build

    for test_client in clients:
        test_client.__exit__(None, None, None)
