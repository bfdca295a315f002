"""Webhook event dispatch.

Walks a page webhook batch in order, turns each raw messaging event into one
variant and routes it to its handler. Message and postback handlers consult
the reply policy; the rest only log. A bad entry, bad event or failing
handler is logged and skipped without touching its siblings, because the
webhook must always be acknowledged once the signature is valid.

https://developers.facebook.com/docs/messenger-platform/webhook-reference
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import logfire
from pydantic import ValidationError

from pancitos_bot.constants import PAGE_OBJECT_TYPE
from pancitos_bot.logging_config import mask_pii
from pancitos_bot.models.messenger import (
    AccountLinkEvent,
    DeliveryEvent,
    MalformedEnvelopeError,
    MessageEvent,
    MessagingEvent,
    OptinEvent,
    PageEntry,
    PostbackEvent,
    ReadEvent,
    UnknownEvent,
    WebhookEnvelope,
    parse_messaging_event,
    parse_page_entry,
)
from pancitos_bot.models.outbound import OutboundMessage
from pancitos_bot.services import reply_policy


@dataclass
class DispatchResult:
    """What one webhook batch produced."""

    processed: bool
    events_seen: int = 0
    events_skipped: int = 0
    entries_skipped: int = 0
    handler_failures: int = 0
    replies: list[OutboundMessage] = field(default_factory=list)


class EventDispatcher:
    """Route messaging events to per-variant handlers.

    Handlers take the event and its page entry and return the reply to send,
    if any.
    """

    HANDLERS: dict[str, str] = {
        "optin": "_on_optin",
        "message": "_on_message",
        "delivery": "_on_delivery",
        "postback": "_on_postback",
        "read": "_on_read",
        "account_linking": "_on_account_link",
        "unknown": "_on_unknown",
    }

    def __init__(
        self,
        reply_to_message: Callable[..., OutboundMessage | None] = reply_policy.reply_to_message,
        reply_to_postback: Callable[..., OutboundMessage | None] = reply_policy.reply_to_postback,
    ):
        self._reply_to_message = reply_to_message
        self._reply_to_postback = reply_to_postback

    def dispatch(self, payload: Mapping[str, Any]) -> DispatchResult:
        """Process one decoded webhook body.

        Non-page objects are acknowledged without touching any handler.
        """
        object_type = payload.get("object")
        if object_type != PAGE_OBJECT_TYPE:
            logfire.info("Ignoring non-page webhook", object_type=str(object_type))
            return DispatchResult(processed=False)

        result = DispatchResult(processed=True)

        try:
            envelope = WebhookEnvelope.model_validate(payload)
        except ValidationError as e:
            logfire.warn(
                "Malformed webhook envelope",
                error_count=e.error_count(),
            )
            return result

        for raw_entry in envelope.entry:
            try:
                entry = parse_page_entry(raw_entry)
            except MalformedEnvelopeError as e:
                logfire.warn("Skipping malformed page entry", reason=str(e))
                result.entries_skipped += 1
                continue

            for raw_event in entry.messaging:
                result.events_seen += 1
                try:
                    event = parse_messaging_event(raw_event)
                except MalformedEnvelopeError as e:
                    logfire.info(
                        "Webhook received unknown messaging event",
                        page_id=entry.id,
                        reason=str(e),
                    )
                    result.events_skipped += 1
                    continue

                try:
                    reply = self._handle(event, entry)
                except Exception as e:
                    logfire.error(
                        "Messaging event handler failed",
                        page_id=entry.id,
                        kind=event.kind,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    result.handler_failures += 1
                    continue

                if reply is not None:
                    result.replies.append(reply)

        return result

    def _handle(self, event: MessagingEvent, entry: PageEntry) -> OutboundMessage | None:
        handler = getattr(self, self.HANDLERS[event.kind])
        return handler(event, entry)

    # =========================================================================
    # Handlers
    # =========================================================================

    def _on_optin(self, event: OptinEvent, entry: PageEntry) -> None:
        # ref is the 'data-ref' of the "Send to Messenger" plugin
        logfire.info(
            "Received authentication",
            sender_id=event.sender_id,
            page_id=event.recipient_id,
            pass_through_param=event.optin.ref,
            timestamp=event.timestamp,
        )

    def _on_message(self, event: MessageEvent, entry: PageEntry) -> OutboundMessage | None:
        message = event.message
        logfire.info(
            "Received message",
            sender_id=event.sender_id,
            page_id=event.recipient_id,
            timestamp=event.timestamp,
            message_id=message.id,
            has_text=message.text is not None,
            attachment_count=len(message.attachments or ()),
        )

        if message.is_echo:
            logfire.info(
                "Received echo",
                message_id=message.id,
                app_id=message.app_id,
                metadata=message.metadata,
            )
        elif message.quick_reply is not None:
            logfire.info(
                "Quick reply",
                message_id=message.id,
                payload=message.quick_reply_payload,
            )

        return self._reply_to_message(event.sender_id, message)

    def _on_delivery(self, event: DeliveryEvent, entry: PageEntry) -> None:
        delivery = event.delivery
        for message_id in delivery.mids or ():
            logfire.info("Received delivery confirmation", message_id=message_id)
        logfire.info(
            "All messages before watermark were delivered",
            watermark=delivery.watermark,
            sequence_number=delivery.seq,
        )

    def _on_postback(self, event: PostbackEvent, entry: PageEntry) -> OutboundMessage | None:
        logfire.info(
            "Received postback",
            sender_id=event.sender_id,
            page_id=event.recipient_id,
            payload=event.postback.payload,
            timestamp=event.timestamp,
        )
        return self._reply_to_postback(event.sender_id, event.postback)

    def _on_read(self, event: ReadEvent, entry: PageEntry) -> None:
        logfire.info(
            "Received message read event",
            sender_id=event.sender_id,
            watermark=event.read.watermark,
            sequence_number=event.read.seq,
        )

    def _on_account_link(self, event: AccountLinkEvent, entry: PageEntry) -> None:
        logfire.info(
            "Received account link event",
            sender_id=event.sender_id,
            status=event.account_linking.status,
            authorization_code=mask_pii(event.account_linking.authorization_code),
        )

    def _on_unknown(self, event: UnknownEvent, entry: PageEntry) -> None:
        logfire.info(
            "Webhook received unknown messaging event",
            page_id=entry.id,
            fields=sorted(event.raw),
        )


def get_event_dispatcher() -> EventDispatcher:
    """Factory for the dispatcher used by the webhook."""
    return EventDispatcher()
