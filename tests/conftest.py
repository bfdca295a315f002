"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Settings & logging: mock_settings, mock_logfire, logfire_capture
2. Messaging: mock_messaging_service, respx_mock
3. Webhook helpers: test_client, sign_body, post_webhook
4. Payload builders: make_envelope, text_event, postback_event
"""

import json
import os
from contextlib import contextmanager
from unittest.mock import MagicMock, Mock, patch

import pytest
import respx

# Must be set before logfire is used anywhere in the test session
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

import logfire  # noqa: E402

from pancitos_bot.config import Settings  # noqa: E402
from pancitos_bot.services.messaging_protocol import MockMessagingService  # noqa: E402
from pancitos_bot.services.signature import compute_signature  # noqa: E402

TEST_APP_SECRET = "test-app-secret"
TEST_VERIFY_TOKEN = "TOKEN"
TEST_PAGE_TOKEN = "test-page-token"

# Modules holding a module-level ``logfire`` reference
LOGFIRE_MODULES = (
    "pancitos_bot.services.signature",
    "pancitos_bot.services.event_dispatcher",
    "pancitos_bot.services.facebook_service",
    "pancitos_bot.services.messaging_protocol",
    "pancitos_bot.middleware.correlation_id",
    "pancitos_bot.logging_config",
    "pancitos_bot.main",
)


def build_settings(**overrides) -> Settings:
    values = {
        "messenger_app_secret": TEST_APP_SECRET,
        "messenger_validation_token": TEST_VERIFY_TOKEN,
        "messenger_page_access_token": TEST_PAGE_TOKEN,
        "server_url": "https://pancitos.example.com",
        "env": "local",
        "logfire_token": None,
        "sentry_dsn": None,
    }
    values.update(overrides)
    return Settings(**values)


# =============================================================================
# Payload Builders
# =============================================================================


def make_envelope(*events, object_type="page", page_id="page-123", time=1234567890):
    """Single-entry webhook body holding ``events`` in order."""
    return {
        "object": object_type,
        "entry": [{"id": page_id, "time": time, "messaging": list(events)}],
    }


def text_event(text, sender_id="user-456", page_id="page-123", **message_fields):
    message = {"mid": "mid.1457764197618:41d102a3e1ae206a38", "text": text}
    message.update(message_fields)
    return {
        "sender": {"id": sender_id},
        "recipient": {"id": page_id},
        "timestamp": 1458692752478,
        "message": message,
    }


def postback_event(payload, sender_id="user-456", page_id="page-123"):
    return {
        "sender": {"id": sender_id},
        "recipient": {"id": page_id},
        "timestamp": 1458692752478,
        "postback": {"payload": payload, "title": "Tipos de Panes"},
    }


# =============================================================================
# Settings & Logging
# =============================================================================


@pytest.fixture
def mock_settings(monkeypatch):
    """Mock application settings wherever get_settings is imported."""
    settings = build_settings()

    monkeypatch.setattr("pancitos_bot.config.get_settings", lambda: settings)
    monkeypatch.setattr("pancitos_bot.api.webhook.get_settings", lambda: settings)
    monkeypatch.setattr("pancitos_bot.main.get_settings", lambda: settings)
    monkeypatch.setattr("pancitos_bot.logging_config.get_settings", lambda: settings)
    return settings


@pytest.fixture
def mock_logfire(monkeypatch):
    """
    Mock Logfire for testing without actual logging.

    Useful for tests that don't need to verify logging behavior.
    """

    @contextmanager
    def mock_span(*args, **kwargs):
        yield MagicMock()

    mock_logfire_module = MagicMock()
    mock_logfire_module.info = Mock()
    mock_logfire_module.warn = Mock()
    mock_logfire_module.error = Mock()
    mock_logfire_module.span = mock_span
    mock_logfire_module.configure = Mock()
    mock_logfire_module.instrument_fastapi = Mock()

    for module in LOGFIRE_MODULES:
        monkeypatch.setattr(f"{module}.logfire", mock_logfire_module)

    return mock_logfire_module


@pytest.fixture
def logfire_capture():
    """
    Capture Logfire logs for testing.

    Yields a list of ``(level, args, kwargs)`` tuples.
    """
    captured_logs = []

    def capture(level):
        def _capture(*args, **kwargs):
            captured_logs.append((level, args, kwargs))

        return _capture

    with (
        patch.object(logfire, "info", side_effect=capture("info")),
        patch.object(logfire, "warn", side_effect=capture("warn")),
        patch.object(logfire, "error", side_effect=capture("error")),
    ):
        yield captured_logs


# =============================================================================
# Messaging
# =============================================================================


@pytest.fixture
def respx_mock():
    """Respx mock fixture for HTTP mocking."""
    with respx.mock as router:
        yield router


@pytest.fixture
def mock_messaging_service(monkeypatch):
    """MockMessagingService installed as the webhook's delivery service."""
    service = MockMessagingService()
    monkeypatch.setattr(
        "pancitos_bot.api.webhook.get_messaging_service", lambda settings: service
    )
    return service


# =============================================================================
# Webhook Helpers
# =============================================================================


@pytest.fixture
def test_client(mock_settings, mock_logfire):
    """FastAPI TestClient for E2E tests."""
    from fastapi.testclient import TestClient

    from pancitos_bot.main import app

    return TestClient(app)


@pytest.fixture
def sign_body(mock_settings):
    """Return a function producing the X-Hub-Signature value for a body."""

    def _sign(body: bytes) -> str:
        return compute_signature(body, mock_settings.messenger_app_secret)

    return _sign


@pytest.fixture
def post_webhook(test_client, sign_body):
    """POST a JSON payload to /webhook with a valid signature."""

    def _post(payload, signature=None, headers=None):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        request_headers = {
            "Content-Type": "application/json",
            "X-Hub-Signature": signature or sign_body(body),
        }
        request_headers.update(headers or {})
        return test_client.post("/webhook", content=body, headers=request_headers)

    return _post
