"""Scripted replies for Pancitos DevC.

Maps an inbound message or postback to the reply that should be sent, or
``None`` when nothing is sent. Everything here is pure: no I/O, no logging,
and a fresh payload for every call, so it can be tested by value.
"""

from pancitos_bot.constants import (
    ATTACHMENT_RECEIVED_TEXT,
    PAGE_PHONE_NUMBER,
    PAGE_URL,
    PRODUCT_URL,
    QUICK_REPLY_TEXT,
    TIPOS_PANES,
    WELCOME_TEXT,
)
from pancitos_bot.models.messenger import InboundMessage, Postback
from pancitos_bot.models.outbound import (
    GenericElement,
    GenericTemplate,
    OutboundMessage,
    PhoneNumberButton,
    PostbackButton,
    TextWithButtons,
    WebUrlButton,
)

# (title, subtitle, image_url) of each carousel card
BREAD_CATALOG: tuple[tuple[str, str, str], ...] = (
    (
        "Pan Pita",
        "El más exquisito pan pita del mundo",
        "https://s-media-cache-ak0.pinimg.com/originals/55/4f/fb/554ffb0678dca55167e0d74ee0806a4f.jpg",
    ),
    (
        "Pan Batido",
        "El más exquisito pan batido del mundo",
        "https://imageneselsalvador.files.wordpress.com/2015/04/pan-batido.jpg",
    ),
    (
        "Dobladitas",
        "La más exquisita dobladita del mundo",
        "https://gcdn.emol.cl/cocina/files/2015/09/Dobladitas.jpg",
    ),
)


def build_text_with_buttons(recipient_id: str, text: str) -> OutboundMessage:
    """Text bubble with the page's three standard buttons."""
    return OutboundMessage(
        recipient_id=recipient_id,
        template=TextWithButtons(
            text=text,
            buttons=(
                WebUrlButton(url=PAGE_URL, title="Nuestra pagina Web"),
                PostbackButton(title="Tipos de Panes", payload=TIPOS_PANES),
                PhoneNumberButton(title="Llámanos", payload=PAGE_PHONE_NUMBER),
            ),
        ),
    )


def build_bread_carousel(recipient_id: str) -> OutboundMessage:
    """Generic template with one card per bread in the catalog."""
    elements = tuple(
        GenericElement(
            title=title,
            subtitle=subtitle,
            item_url=PRODUCT_URL,
            image_url=image_url,
            buttons=(
                WebUrlButton(url=PRODUCT_URL, title="Open Web URL"),
                PostbackButton(
                    title="Call Postback", payload="Payload for first bubble"
                ),
            ),
        )
        for title, subtitle, image_url in BREAD_CATALOG
    )
    return OutboundMessage(
        recipient_id=recipient_id,
        template=GenericTemplate(elements=elements),
    )


def reply_to_message(sender_id: str, message: InboundMessage) -> OutboundMessage | None:
    """
    Decide the reply to an inbound message.

    Rules, first match wins:
    1. echoes of the page's own messages get no reply
    2. quick reply taps get an acknowledgment
    3. text: the TIPOS_PANES keyword gets the carousel, anything else the greeting
    4. attachments without text get an acknowledgment
    """
    if message.is_echo:
        return None

    if message.quick_reply is not None:
        return build_text_with_buttons(sender_id, QUICK_REPLY_TEXT)

    if message.text:
        if message.text == TIPOS_PANES:
            return build_bread_carousel(sender_id)
        return build_text_with_buttons(sender_id, WELCOME_TEXT)

    if message.attachments:
        return build_text_with_buttons(sender_id, ATTACHMENT_RECEIVED_TEXT)

    return None


def reply_to_postback(sender_id: str, postback: Postback) -> OutboundMessage | None:
    """Only the TIPOS_PANES payload is answered; other payloads are silent."""
    if postback.payload == TIPOS_PANES:
        return build_bread_carousel(sender_id)
    return None
