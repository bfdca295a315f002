"""End-to-end tests for webhook message processing flow."""

import json
from unittest.mock import patch

from conftest import make_envelope, postback_event, text_event
from pancitos_bot.constants import TIPOS_PANES, WELCOME_TEXT
from pancitos_bot.models.outbound import GenericTemplate, TextWithButtons


class TestWebhookMessageFlow:
    """Test complete webhook message processing flow."""

    def test_text_message_gets_greeting(self, post_webhook, mock_messaging_service):
        response = post_webhook(make_envelope(text_event("hello")))

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

        assert len(mock_messaging_service.sent_messages) == 1
        reply = mock_messaging_service.sent_messages[0]
        assert reply.recipient_id == "user-456"
        assert isinstance(reply.template, TextWithButtons)
        assert reply.template.text == WELCOME_TEXT

    def test_keyword_gets_carousel(self, post_webhook, mock_messaging_service):
        response = post_webhook(make_envelope(text_event(TIPOS_PANES)))

        assert response.status_code == 200
        reply = mock_messaging_service.sent_messages[0]
        assert isinstance(reply.template, GenericTemplate)
        assert [element.title for element in reply.template.elements] == [
            "Pan Pita",
            "Pan Batido",
            "Dobladitas",
        ]

    def test_postback_flow(self, post_webhook, mock_messaging_service):
        response = post_webhook(
            make_envelope(postback_event(TIPOS_PANES), postback_event("other"))
        )

        assert response.status_code == 200
        assert len(mock_messaging_service.sent_messages) == 1
        assert isinstance(
            mock_messaging_service.sent_messages[0].template, GenericTemplate
        )

    def test_echo_not_answered(self, post_webhook, mock_messaging_service):
        response = post_webhook(
            make_envelope(text_event("hello", is_echo=True, app_id=1517776481860111))
        )

        assert response.status_code == 200
        assert mock_messaging_service.sent_messages == []

    def test_non_page_object_ignored(self, post_webhook, mock_messaging_service):
        response = post_webhook(
            make_envelope(text_event("hello"), object_type="instagram")
        )

        assert response.status_code == 200
        assert response.json() == {"status": "ignored"}
        assert mock_messaging_service.sent_messages == []

    def test_batched_entries_answered_in_order(self, post_webhook, mock_messaging_service):
        payload = {
            "object": "page",
            "entry": [
                {"id": "page-123", "time": 1, "messaging": [text_event("a", sender_id="u1")]},
                {"id": "page-123", "time": 2, "messaging": [text_event("b", sender_id="u2")]},
            ],
        }

        post_webhook(payload)

        assert [m.recipient_id for m in mock_messaging_service.sent_messages] == [
            "u1",
            "u2",
        ]

    def test_replayed_delivery_is_processed_twice(self, post_webhook, mock_messaging_service):
        payload = make_envelope(text_event("hello"))

        first = post_webhook(payload)
        second = post_webhook(payload)

        assert first.status_code == second.status_code == 200
        assert len(mock_messaging_service.sent_messages) == 2

    def test_malformed_events_still_acknowledged(self, post_webhook, mock_messaging_service):
        payload = make_envelope(
            {"message": {"text": "no sender"}},
            text_event("hello"),
        )

        response = post_webhook(payload)

        assert response.status_code == 200
        assert len(mock_messaging_service.sent_messages) == 1

    def test_empty_entry_acknowledged(self, post_webhook, mock_messaging_service):
        response = post_webhook({"object": "page", "entry": []})

        assert response.status_code == 200
        assert mock_messaging_service.sent_messages == []

    def test_send_failure_still_acknowledged(self, post_webhook, monkeypatch):
        from pancitos_bot.services.messaging_protocol import MockMessagingService

        failing = MockMessagingService(should_fail_send=True)
        monkeypatch.setattr(
            "pancitos_bot.api.webhook.get_messaging_service", lambda settings: failing
        )

        response = post_webhook(make_envelope(text_event("hello")))

        assert response.status_code == 200
        assert len(failing.sent_messages) == 1

    def test_send_exception_still_acknowledged(self, post_webhook, monkeypatch):
        class ExplodingService:
            async def send(self, outbound):
                raise RuntimeError("boom")

        monkeypatch.setattr(
            "pancitos_bot.api.webhook.get_messaging_service",
            lambda settings: ExplodingService(),
        )

        response = post_webhook(make_envelope(text_event("hello")))

        assert response.status_code == 200

    def test_invalid_json_rejected(self, post_webhook, mock_messaging_service):
        response = post_webhook(b"{not json")

        assert response.status_code == 400
        assert mock_messaging_service.sent_messages == []

    def test_non_object_json_rejected(self, post_webhook, mock_messaging_service):
        response = post_webhook(b'["page"]')

        assert response.status_code == 400


class TestWebhookSignature:
    """Signature verification gates all processing."""

    def test_missing_signature_rejected(self, test_client, mock_messaging_service):
        with patch("pancitos_bot.api.webhook.get_event_dispatcher") as mock_factory:
            response = test_client.post(
                "/webhook", json=make_envelope(text_event("hello"))
            )

        assert response.status_code == 403
        assert "Missing" in response.json()["detail"]
        mock_factory.assert_not_called()
        assert mock_messaging_service.sent_messages == []

    def test_wrong_signature_rejected(self, post_webhook, mock_messaging_service):
        with patch("pancitos_bot.api.webhook.get_event_dispatcher") as mock_factory:
            response = post_webhook(
                make_envelope(text_event("hello")),
                signature="sha1=0000000000000000000000000000000000000000",
            )

        assert response.status_code == 403
        mock_factory.assert_not_called()
        assert mock_messaging_service.sent_messages == []

    def test_signature_over_raw_bytes(self, test_client, sign_body, mock_messaging_service):
        """Signed body with unusual spacing verifies as sent."""
        body = b'{ "object" : "page",\n  "entry" : [] }'

        response = test_client.post(
            "/webhook",
            content=body,
            headers={"Content-Type": "application/json", "X-Hub-Signature": sign_body(body)},
        )

        assert response.status_code == 200

    def test_tampered_body_rejected(self, test_client, sign_body, mock_messaging_service):
        body = json.dumps(make_envelope(text_event("hello"))).encode()
        signature = sign_body(body)
        tampered = body.replace(b"hello", b"HELLO")

        response = test_client.post(
            "/webhook",
            content=tampered,
            headers={"Content-Type": "application/json", "X-Hub-Signature": signature},
        )

        assert response.status_code == 403
        assert mock_messaging_service.sent_messages == []

    def test_unsigned_allowed_in_test_mode(self, test_client, monkeypatch, mock_messaging_service):
        from conftest import build_settings

        settings = build_settings(allow_unsigned_webhooks=True)
        monkeypatch.setattr("pancitos_bot.api.webhook.get_settings", lambda: settings)

        response = test_client.post("/webhook", json=make_envelope(text_event("hello")))

        assert response.status_code == 200
        assert len(mock_messaging_service.sent_messages) == 1
