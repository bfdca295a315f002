"""Outgoing Send API models.

Payloads are frozen and built fresh for each reply; ``to_graph_payload``
produces the JSON body expected by ``/me/messages``.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# Buttons
# =============================================================================


class WebUrlButton(_Frozen):
    type: Literal["web_url"] = "web_url"
    url: str
    title: str


class PostbackButton(_Frozen):
    type: Literal["postback"] = "postback"
    title: str
    payload: str


class PhoneNumberButton(_Frozen):
    type: Literal["phone_number"] = "phone_number"
    title: str
    payload: str


Button = Annotated[
    Union[WebUrlButton, PostbackButton, PhoneNumberButton],
    Field(discriminator="type"),
]


# =============================================================================
# Templates
# =============================================================================


class TextWithButtons(_Frozen):
    """Button template: a text bubble with up to three buttons."""

    template_type: Literal["button"] = "button"
    text: str
    buttons: tuple[Button, ...]


class GenericElement(_Frozen):
    """One carousel card."""

    title: str
    subtitle: str
    item_url: str
    image_url: str
    buttons: tuple[Button, ...]


class GenericTemplate(_Frozen):
    """Generic template: a horizontally scrolling carousel of cards."""

    template_type: Literal["generic"] = "generic"
    elements: tuple[GenericElement, ...]


Template = Annotated[
    Union[TextWithButtons, GenericTemplate],
    Field(discriminator="template_type"),
]


class OutboundMessage(_Frozen):
    """A reply addressed to one Messenger user."""

    recipient_id: str
    template: Template

    def to_graph_payload(self) -> dict[str, Any]:
        """Serialize to the Send API request body."""
        return {
            "recipient": {"id": self.recipient_id},
            "message": {
                "attachment": {
                    "type": "template",
                    "payload": self.template.model_dump(mode="json"),
                }
            },
        }


class SendResult(BaseModel):
    """Outcome of one Send API call. Only ever logged."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    success: bool
    message_id: str | None = None
    recipient_id: str | None = None
    error_detail: str | None = None
    status_code: int | None = None

    @property
    def degraded(self) -> bool:
        """Accepted by the API but no message id came back."""
        return self.success and self.message_id is None
