"""Incoming Facebook Messenger webhook models.

A webhook call carries a batch of page entries, each with a list of
messaging events. Messenger marks the kind of an event by which optional
field is present (``optin``, ``message``, ``delivery`` ...), so raw events are
turned into one explicit variant by ``parse_messaging_event``.
"""

from typing import Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class MalformedEnvelopeError(ValueError):
    """Raised when an entry or event is missing the fields it needs."""

    pass


class _Frozen(BaseModel):
    model_config = ConfigDict(
        frozen=True, populate_by_name=True, coerce_numbers_to_str=True
    )


# =============================================================================
# Variant payloads
# =============================================================================


class Optin(_Frozen):
    """'Send to Messenger' authentication; ``ref`` is the plugin's data-ref."""

    ref: str | None = None


class QuickReply(_Frozen):
    payload: str | None = None


class InboundMessage(_Frozen):
    """Incoming message. Text and attachments are not expected together."""

    id: str | None = Field(default=None, alias="mid")
    is_echo: bool = False
    app_id: int | str | None = None
    metadata: str | None = None
    text: str | None = None
    attachments: tuple[Any, ...] | None = None
    quick_reply: QuickReply | None = None

    @property
    def quick_reply_payload(self) -> str | None:
        return self.quick_reply.payload if self.quick_reply else None


class Delivery(_Frozen):
    mids: tuple[str, ...] | None = None
    watermark: int | None = None
    seq: int | None = None


class Postback(_Frozen):
    """Button tap carrying a developer-defined payload."""

    payload: str | None = None
    title: str | None = None


class Read(_Frozen):
    watermark: int | None = None
    seq: int | None = None


class AccountLinking(_Frozen):
    status: str | None = None
    authorization_code: str | None = None


# =============================================================================
# Messaging events (tagged union)
# =============================================================================


class _Event(_Frozen):
    sender_id: str
    recipient_id: str
    timestamp: int | None = None


class OptinEvent(_Event):
    kind: Literal["optin"] = "optin"
    optin: Optin


class MessageEvent(_Event):
    kind: Literal["message"] = "message"
    message: InboundMessage


class DeliveryEvent(_Event):
    kind: Literal["delivery"] = "delivery"
    delivery: Delivery


class PostbackEvent(_Event):
    kind: Literal["postback"] = "postback"
    postback: Postback


class ReadEvent(_Event):
    kind: Literal["read"] = "read"
    read: Read


class AccountLinkEvent(_Event):
    kind: Literal["account_linking"] = "account_linking"
    account_linking: AccountLinking


class UnknownEvent(_Frozen):
    """Event with none of the known payload fields; logged and dropped."""

    kind: Literal["unknown"] = "unknown"
    raw: dict[str, Any]


MessagingEvent = Union[
    OptinEvent,
    MessageEvent,
    DeliveryEvent,
    PostbackEvent,
    ReadEvent,
    AccountLinkEvent,
    UnknownEvent,
]

# First field present (not null) wins, even when it is an empty object
EVENT_PRECEDENCE: tuple[tuple[str, type[_Event]], ...] = (
    ("optin", OptinEvent),
    ("message", MessageEvent),
    ("delivery", DeliveryEvent),
    ("postback", PostbackEvent),
    ("read", ReadEvent),
    ("account_linking", AccountLinkEvent),
)


def _participant_id(raw: Mapping[str, Any], key: str) -> Any:
    participant = raw.get(key)
    if isinstance(participant, Mapping):
        return participant.get("id")
    return None


def parse_messaging_event(raw: Any) -> MessagingEvent:
    """Build exactly one event variant from a raw messaging event.

    Raises:
        MalformedEnvelopeError: the event is not an object, or the detected
            variant is missing sender/recipient ids or has a bad payload.
    """
    if not isinstance(raw, Mapping):
        raise MalformedEnvelopeError(
            f"Messaging event must be an object, got {type(raw).__name__}"
        )

    for field, event_cls in EVENT_PRECEDENCE:
        if raw.get(field) is None:
            continue
        try:
            return event_cls(
                sender_id=_participant_id(raw, "sender"),
                recipient_id=_participant_id(raw, "recipient"),
                timestamp=raw.get("timestamp"),
                **{field: raw[field]},
            )
        except ValidationError as e:
            raise MalformedEnvelopeError(
                f"Invalid '{field}' event: {e.error_count()} validation error(s)"
            ) from e

    return UnknownEvent(raw=dict(raw))


# =============================================================================
# Envelope
# =============================================================================


class PageEntry(_Frozen):
    """One page's batch of events. Events stay raw until dispatch."""

    id: str
    time: int | None = None
    messaging: tuple[Any, ...] = ()


class WebhookEnvelope(_Frozen):
    """Top-level webhook payload. Only ``object == "page"`` is processed."""

    object: str | None = None
    entry: tuple[Any, ...] = ()


def parse_page_entry(raw: Any) -> PageEntry:
    """Validate one raw page entry.

    Raises:
        MalformedEnvelopeError: the entry lacks an id or has a bad shape.
    """
    if not isinstance(raw, Mapping):
        raise MalformedEnvelopeError(
            f"Page entry must be an object, got {type(raw).__name__}"
        )
    try:
        return PageEntry.model_validate(raw)
    except ValidationError as e:
        raise MalformedEnvelopeError(
            f"Invalid page entry: {e.error_count()} validation error(s)"
        ) from e
