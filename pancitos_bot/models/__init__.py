"""Messenger webhook and Send API models."""

from pancitos_bot.models.messenger import (
    MalformedEnvelopeError,
    MessagingEvent,
    WebhookEnvelope,
    parse_messaging_event,
)
from pancitos_bot.models.outbound import OutboundMessage, SendResult

__all__ = [
    "MalformedEnvelopeError",
    "MessagingEvent",
    "WebhookEnvelope",
    "parse_messaging_event",
    "OutboundMessage",
    "SendResult",
]
