"""Facebook webhook endpoints.

POST requests are handled in three steps:
1. Signature verification over the raw body (rejects before any dispatch)
2. Event dispatch, which decides the replies synchronously
3. Reply delivery, scheduled as background tasks so Messenger gets its 200
   without waiting on the Send API
"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from pancitos_bot.config import get_settings
from pancitos_bot.constants import SIGNATURE_HEADER
from pancitos_bot.logging_config import mask_pii
from pancitos_bot.models.outbound import OutboundMessage
from pancitos_bot.services.event_dispatcher import get_event_dispatcher
from pancitos_bot.services.messaging_protocol import (
    MessagingService,
    get_messaging_service,
)
from pancitos_bot.services.signature import verify_request_signature

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def verify_webhook(request: Request):
    """Facebook webhook verification endpoint."""
    settings = get_settings()

    mode = request.query_params.get("hub.mode")
    token = request.query_params.get("hub.verify_token")
    challenge = request.query_params.get("hub.challenge")

    if mode == "subscribe" and token == settings.messenger_validation_token:
        logger.info("Validating webhook")
        return PlainTextResponse(challenge or "")

    logger.error(
        "Failed validation. Make sure the validation tokens match (got mode=%s token=%s)",
        mode,
        mask_pii(token),
    )
    return Response(status_code=403)


@router.post("")
async def handle_webhook(request: Request, background_tasks: BackgroundTasks):
    """Handle incoming Facebook Messenger webhook events."""
    settings = get_settings()
    raw_body = await request.body()

    # Raises SignatureError, turned into a 403 by the app's exception handler
    verify_request_signature(
        raw_body,
        request.headers.get(SIGNATURE_HEADER),
        settings.messenger_app_secret,
        allow_unsigned=settings.allow_unsigned_webhooks,
    )

    try:
        payload = json.loads(raw_body)
    except ValueError:
        logger.warning("Webhook body is not valid JSON (%d bytes)", len(raw_body))
        return JSONResponse({"status": "invalid"}, status_code=400)

    if not isinstance(payload, dict):
        logger.warning("Webhook body is not a JSON object")
        return JSONResponse({"status": "invalid"}, status_code=400)

    result = get_event_dispatcher().dispatch(payload)
    if not result.processed:
        return {"status": "ignored"}

    if result.replies:
        messaging_service = get_messaging_service(settings)
        for reply in result.replies:
            background_tasks.add_task(deliver_reply, messaging_service, reply)

    logger.info(
        "Webhook batch processed: %d events, %d skipped, %d replies",
        result.events_seen,
        result.events_skipped,
        len(result.replies),
    )
    return {"status": "ok"}


async def deliver_reply(
    messaging_service: MessagingService,
    outbound: OutboundMessage,
) -> None:
    """Send one reply. Runs after the webhook response; never raises."""
    try:
        result = await messaging_service.send(outbound)
        if not result.success:
            logger.warning(
                "Reply to %s was not delivered: %s",
                outbound.recipient_id,
                result.error_detail,
            )
    except Exception as e:
        logger.error("Error delivering reply: %s", e, exc_info=True)
