"""Send messages to Facebook Graph API service."""

import time
from typing import Any

import httpx
import logfire

from pancitos_bot.constants import (
    FACEBOOK_API_TIMEOUT_SECONDS,
    FACEBOOK_GRAPH_API_BASE_URL,
    FACEBOOK_GRAPH_API_VERSION,
    MAX_LOGGED_RESPONSE_BODY_CHARS,
)
from pancitos_bot.models.outbound import OutboundMessage, SendResult


class GatewayError(Exception):
    """Raised when the Send API call fails (transport error or non-200)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        reason: str | None = None,
        error: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.error = error


def send_api_url(api_version: str = FACEBOOK_GRAPH_API_VERSION) -> str:
    return f"{FACEBOOK_GRAPH_API_BASE_URL}/{api_version}/me/messages"


def _response_json(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


async def _post_message(
    page_access_token: str,
    payload: dict[str, Any],
    api_version: str,
    timeout: float,
) -> dict[str, Any]:
    """POST to the Send API and return the decoded body of a 200 response.

    Raises:
        GatewayError: transport failure or any non-200 status.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                send_api_url(api_version),
                params={"access_token": page_access_token},
                json=payload,
            )
    except httpx.RequestError as e:
        raise GatewayError(f"{type(e).__name__}: {e}") from e

    body = _response_json(response)
    if response.status_code != 200:
        raise GatewayError(
            "Send API returned a non-200 status",
            status_code=response.status_code,
            reason=response.reason_phrase,
            error=body.get("error") or response.text[:MAX_LOGGED_RESPONSE_BODY_CHARS],
        )
    return body


async def send_message(
    page_access_token: str,
    outbound: OutboundMessage,
    *,
    api_version: str = FACEBOOK_GRAPH_API_VERSION,
    timeout: float = FACEBOOK_API_TIMEOUT_SECONDS,
) -> SendResult:
    """
    Send a reply via the Facebook Send API.

    Never raises: failures are logged and reported in the returned
    SendResult. There is no retry.

    Args:
        page_access_token: Facebook Page access token
        outbound: Reply to deliver
        api_version: Graph API version
        timeout: Request timeout in seconds

    Returns:
        SendResult describing the outcome
    """
    start_time = time.time()
    template_type = outbound.template.template_type

    logfire.info(
        "Sending Facebook message",
        recipient_id=outbound.recipient_id,
        template_type=template_type,
        api_version=api_version,
    )

    try:
        body = await _post_message(
            page_access_token, outbound.to_graph_payload(), api_version, timeout
        )
    except GatewayError as e:
        elapsed = time.time() - start_time
        logfire.error(
            "Failed calling Send API",
            recipient_id=outbound.recipient_id,
            status_code=e.status_code,
            status_text=e.reason,
            error=e.error if e.error is not None else str(e),
            response_time_ms=elapsed * 1000,
        )
        return SendResult(
            success=False,
            recipient_id=outbound.recipient_id,
            error_detail=str(e.error if e.error is not None else e),
            status_code=e.status_code,
        )

    elapsed = time.time() - start_time
    message_id = body.get("message_id")
    recipient_id = body.get("recipient_id") or outbound.recipient_id

    if message_id:
        logfire.info(
            "Successfully sent message",
            message_id=message_id,
            recipient_id=recipient_id,
            response_time_ms=elapsed * 1000,
        )
    else:
        logfire.warn(
            "Send API accepted the call without a message id",
            recipient_id=recipient_id,
            response_time_ms=elapsed * 1000,
        )

    return SendResult(
        success=True,
        message_id=message_id,
        recipient_id=recipient_id,
        status_code=200,
    )
