"""
Tests for the contact relay HTTP API
"""
from fastapi.testclient import TestClient

from contactrelay.api.app import create_app
from contactrelay.api.contact import SUCCESS_MESSAGE
from contactrelay.config import NotificationConfig
from contactrelay.core.rate_limiter import RateLimiter
from contactrelay.errors import DeliveryError
from contactrelay.version import __version__

CONTACT_URL = "/api/contact"

VALID_FORM = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "message": "Hello, I am interested in your services.",
}


class TestContactSuccess:
    """Test delivered submissions"""

    def test_valid_submission(self, client, fake_sender):
        response = client.post(CONTACT_URL, json=VALID_FORM)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == SUCCESS_MESSAGE
        assert body["status"] == 200
        assert body["timestamp"].endswith("Z")
        assert response.headers["access-control-allow-origin"] == "https://example.com"

        assert len(fake_sender.sent) == 1
        sent = fake_sender.sent[0]
        assert sent["to_email"] == "owner@example.com"
        assert sent["from_display"] == "Contact Form"
        assert sent["reply_to"] == "jane@example.com"
        assert sent["subject"] == "New contact message from Jane Doe - Test Site"
        assert "Jane Doe" in sent["html_body"]
        assert "Hello, I am interested in your services." in sent["html_body"]

    def test_message_markup_is_escaped_in_email(self, client, fake_sender):
        form = {**VALID_FORM, "message": "Hi <b>there</b>, I'd like a quote."}
        response = client.post(CONTACT_URL, json=form)

        assert response.status_code == 200
        html_body = fake_sender.sent[0]["html_body"]
        assert "Hi &lt;b&gt;there&lt;/b&gt;, I&#x27;d like a quote." in html_body
        assert "<b>there</b>" not in html_body

    def test_form_encoded_body(self, client, fake_sender):
        response = client.post(CONTACT_URL, data=VALID_FORM)
        assert response.status_code == 200
        assert len(fake_sender.sent) == 1

    def test_unknown_fields_are_ignored(self, client, fake_sender):
        response = client.post(CONTACT_URL, json={**VALID_FORM, "phone": "555-0100"})
        assert response.status_code == 200

    def test_matching_origin_is_accepted(self, client):
        response = client.post(
            CONTACT_URL, json=VALID_FORM, headers={"Origin": "https://example.com"}
        )
        assert response.status_code == 200


class TestContactRejections:
    """Test requests that never reach the mail server"""

    def test_missing_fields(self, client, fake_sender):
        response = client.post(CONTACT_URL, json={})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Name is required"
        assert body["status"] == 400
        assert body["fields"] == {
            "name": "Name is required",
            "email": "Email is required",
            "message": "Message is required",
        }
        assert fake_sender.sent == []

    def test_invalid_email(self, client, fake_sender):
        response = client.post(CONTACT_URL, json={**VALID_FORM, "email": "not-an-email"})

        assert response.status_code == 400
        assert response.json()["error"] == "Email format is not valid"
        assert fake_sender.sent == []

    def test_invalid_json(self, client, fake_sender):
        response = client.post(
            CONTACT_URL,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert "fields" not in response.json()
        assert fake_sender.sent == []

    def test_json_array_body(self, client):
        response = client.post(CONTACT_URL, json=["Jane Doe"])
        assert response.status_code == 400

    def test_non_string_field(self, client):
        response = client.post(CONTACT_URL, json={**VALID_FORM, "name": {"first": "Jane"}})
        assert response.status_code == 400

    def test_wrong_origin(self, client, fake_sender):
        response = client.post(
            CONTACT_URL, json=VALID_FORM, headers={"Origin": "https://evil.example"}
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Origin not allowed"
        assert response.headers["access-control-allow-origin"] == "https://example.com"
        assert fake_sender.sent == []

    def test_get_not_allowed(self, client):
        response = client.get(CONTACT_URL)

        assert response.status_code == 405
        assert response.headers["allow"] == "POST, OPTIONS"
        assert response.headers["access-control-allow-origin"] == "https://example.com"


class TestPreflight:
    """Test CORS preflight"""

    def test_options_returns_cors_headers(self, client):
        response = client.options(CONTACT_URL)

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "https://example.com"
        assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
        assert response.headers["access-control-allow-headers"] == "Content-Type"
        assert response.headers["access-control-max-age"] == "86400"

    def test_options_from_other_origin(self, client):
        response = client.options(CONTACT_URL, headers={"Origin": "https://evil.example"})
        assert response.status_code == 200

    def test_options_is_never_rate_limited(self, client):
        for _ in range(3):
            client.post(CONTACT_URL, json=VALID_FORM)
        assert client.post(CONTACT_URL, json=VALID_FORM).status_code == 429

        response = client.options(CONTACT_URL)
        assert response.status_code == 200


class TestRateLimit:
    """Test per-IP limiting"""

    def test_fourth_request_is_limited(self, client, fake_sender):
        for _ in range(3):
            assert client.post(CONTACT_URL, json=VALID_FORM).status_code == 200

        response = client.post(CONTACT_URL, json=VALID_FORM)

        assert response.status_code == 429
        assert response.headers["retry-after"] == "60"
        assert response.json()["error"] == "Too many requests. Please try again in 1 minute."
        assert len(fake_sender.sent) == 3

    def test_invalid_submissions_count_towards_limit(self, client):
        for _ in range(3):
            assert client.post(CONTACT_URL, json={}).status_code == 400
        assert client.post(CONTACT_URL, json=VALID_FORM).status_code == 429

    def test_window_resets(self, client, fake_clock):
        for _ in range(3):
            client.post(CONTACT_URL, json=VALID_FORM)
        assert client.post(CONTACT_URL, json=VALID_FORM).status_code == 429

        fake_clock.advance(61)
        assert client.post(CONTACT_URL, json=VALID_FORM).status_code == 200

    def test_limits_are_per_client_ip(self, client):
        for _ in range(3):
            client.post(CONTACT_URL, json=VALID_FORM, headers={"X-Forwarded-For": "192.0.2.1"})

        limited = client.post(CONTACT_URL, json=VALID_FORM, headers={"X-Forwarded-For": "192.0.2.1"})
        other = client.post(CONTACT_URL, json=VALID_FORM, headers={"X-Forwarded-For": "192.0.2.2"})

        assert limited.status_code == 429
        assert other.status_code == 200


class TestDeliveryFailures:
    """Test configuration and SMTP failures"""

    def test_missing_smtp_configuration(self, client, fake_sender, monkeypatch):
        monkeypatch.delenv("SMTP_HOST")
        monkeypatch.delenv("SMTP_PASS")

        response = client.post(CONTACT_URL, json=VALID_FORM)

        assert response.status_code == 500
        assert "SMTP" not in response.text
        assert "administrator" in response.json()["error"]
        assert fake_sender.sent == []

    def test_mail_server_unreachable(self, app_config, build_client, sender_factory):
        sender = sender_factory(error=DeliveryError(DeliveryError.TRANSPORT, "Connection refused"))
        client = build_client(app_config, sender)

        response = client.post(CONTACT_URL, json=VALID_FORM)

        assert response.status_code == 503
        assert response.json()["error"] == "Could not send your message. Please try again later."
        assert "Connection refused" not in response.text

    def test_authentication_failure(self, app_config, build_client, sender_factory):
        sender = sender_factory(error=DeliveryError(DeliveryError.AUTH, "535 bad credentials"))
        client = build_client(app_config, sender)

        response = client.post(CONTACT_URL, json=VALID_FORM)

        assert response.status_code == 500
        assert response.json()["error"] == "Could not send your message. Please try again later."
        assert "535" not in response.text

    def test_unexpected_error(self, app_config, build_client, sender_factory):
        client = build_client(app_config, sender_factory(error=RuntimeError("boom")))

        response = client.post(CONTACT_URL, json=VALID_FORM)

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
        assert "boom" not in response.text


class TestFanOut:
    """Test notifications after delivery"""

    def test_auto_response_sent_after_delivery(self, smtp_env, app_config, fake_clock, sender_factory):
        config = app_config.model_copy(
            update={"notifications": NotificationConfig(auto_response_enabled=True)}
        )
        sender = sender_factory()
        app = create_app(
            config=config,
            sender=sender,
            limiter=RateLimiter(config.rate_limit, clock=fake_clock),
        )

        with TestClient(app) as client:
            response = client.post(CONTACT_URL, json=VALID_FORM)
            assert response.status_code == 200

        # Shutdown drains outstanding notifications
        assert [sent["to_email"] for sent in sender.sent] == [
            "owner@example.com",
            "jane@example.com",
        ]
        assert sender.sent[1]["subject"] == "Thanks for contacting Test Site"

    def test_failed_auto_response_does_not_fail_request(
        self, smtp_env, app_config, fake_clock, sender_factory
    ):
        config = app_config.model_copy(
            update={"notifications": NotificationConfig(auto_response_enabled=True)}
        )

        class PrimaryOnlySender:
            def __init__(self):
                self.sent = []

            async def send(self, config, from_display, to_email, subject, html_body, reply_to=None):
                if to_email == "jane@example.com":
                    raise DeliveryError(DeliveryError.REJECTED, "550 mailbox unavailable")
                self.sent.append(to_email)

        sender = PrimaryOnlySender()
        app = create_app(
            config=config,
            sender=sender,
            limiter=RateLimiter(config.rate_limit, clock=fake_clock),
        )

        with TestClient(app) as client:
            response = client.post(CONTACT_URL, json=VALID_FORM)

        assert response.status_code == 200
        assert sender.sent == ["owner@example.com"]


class TestHealthAndAnalytics:
    """Test auxiliary endpoints"""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == __version__
        assert body["service"] == "test-contact-api"
        assert response.headers["cache-control"] == "no-cache"

    def test_unknown_route(self, client):
        response = client.get("/api/unknown")

        assert response.status_code == 404
        assert response.json()["status"] == 404

    def test_analytics_requires_admin_key(self, client):
        assert client.get("/api/analytics").status_code == 401
        response = client.get("/api/analytics", headers={"X-Admin-Key": "wrong"})
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_analytics_counts_attempts(self, client):
        client.post(CONTACT_URL, json=VALID_FORM)
        client.post(CONTACT_URL, json={})
        client.options(CONTACT_URL)

        response = client.get("/api/analytics", headers={"X-Admin-Key": "admin-secret"})

        assert response.status_code == 200
        body = response.json()
        assert body["total_submissions"] == 2
        assert body["success_rate"] == 50.0
        assert body["error_stats"] == {"HTTP 400": 1}
        assert response.headers["access-control-allow-origin"] == "*"

    def test_analytics_get_only(self, client):
        response = client.post("/api/analytics", headers={"X-Admin-Key": "admin-secret"})

        assert response.status_code == 405
        assert response.headers["allow"] == "GET"

    def test_health_get_only(self, client):
        response = client.post("/api/health")

        assert response.status_code == 405
        assert response.json()["status"] == 405


class TestStaticFiles:
    """Test landing page serving"""

    def test_serves_static_dir(self, tmp_path, app_config, build_client, sender_factory):
        (tmp_path / "index.html").write_text("<h1>Landing</h1>")
        config = app_config.model_copy(
            update={"service": app_config.service.model_copy(update={"static_dir": str(tmp_path)})}
        )
        client = build_client(config, sender_factory())

        assert client.get("/").text == "<h1>Landing</h1>"
        assert client.get("/api/health").status_code == 200

    def test_missing_static_dir_is_ignored(self, tmp_path, app_config, build_client, sender_factory):
        config = app_config.model_copy(
            update={"service": app_config.service.model_copy(update={"static_dir": str(tmp_path / "missing")})}
        )
        client = build_client(config, sender_factory())

        assert client.get("/").status_code == 404


class TestCreateApp:
    """Test dependency wiring"""

    def test_injected_dependencies_are_used(self, app_config, fake_clock, fake_sender):
        # A new limiter has no clients, so it must not be mistaken for "not given"
        limiter = RateLimiter(app_config.rate_limit, clock=fake_clock)
        assert len(limiter) == 0

        app = create_app(config=app_config, sender=fake_sender, limiter=limiter)

        service = app.state.contact_service
        assert service.limiter is limiter
        assert service.sender is fake_sender
        assert app.state.config is app_config

    def test_injected_limiter_clock_drives_window(self, smtp_env, app_config, fake_clock, fake_sender):
        limiter = RateLimiter(app_config.rate_limit, clock=fake_clock)
        app = create_app(config=app_config, sender=fake_sender, limiter=limiter)

        with TestClient(app) as client:
            for _ in range(3):
                client.post(CONTACT_URL, json=VALID_FORM)
            assert client.post(CONTACT_URL, json=VALID_FORM).status_code == 429

            fake_clock.advance(61)
            assert client.post(CONTACT_URL, json=VALID_FORM).status_code == 200
