"""Messaging abstraction protocols for decoupling from the Send API.

The webhook only needs "deliver this reply"; keeping that behind a Protocol
lets tests swap in ``MockMessagingService`` instead of mocking httpx.
"""

from typing import Protocol

import logfire

from pancitos_bot.config import Settings
from pancitos_bot.constants import FACEBOOK_API_TIMEOUT_SECONDS, FACEBOOK_GRAPH_API_VERSION
from pancitos_bot.models.outbound import OutboundMessage, SendResult


class MessagingService(Protocol):
    """Protocol for delivering replies to users."""

    async def send(self, outbound: OutboundMessage) -> SendResult:
        """Deliver ``outbound``. Implementations must not raise on API failure."""
        ...


class FacebookMessagingService:
    """Facebook Messenger implementation of MessagingService.

    Example:
        >>> service = FacebookMessagingService(page_access_token="...")
        >>> result = await service.send(build_bread_carousel("user123"))
        >>> result.success
        True
    """

    def __init__(
        self,
        page_access_token: str,
        api_version: str = FACEBOOK_GRAPH_API_VERSION,
        timeout: float = FACEBOOK_API_TIMEOUT_SECONDS,
    ):
        if not page_access_token:
            raise ValueError("page_access_token is required")
        self._token = page_access_token
        self._api_version = api_version
        self._timeout = timeout

    async def send(self, outbound: OutboundMessage) -> SendResult:
        from pancitos_bot.services.facebook_service import send_message

        try:
            return await send_message(
                page_access_token=self._token,
                outbound=outbound,
                api_version=self._api_version,
                timeout=self._timeout,
            )
        except Exception as e:
            logfire.error(
                "FacebookMessagingService.send failed",
                recipient_id=outbound.recipient_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return SendResult(
                success=False,
                recipient_id=outbound.recipient_id,
                error_detail=str(e),
            )


class MockMessagingService:
    """Mock implementation for testing.

    Example:
        >>> service = MockMessagingService()
        >>> await service.send(build_text_with_buttons("user123", "Hola"))
        >>> service.sent_messages[0].recipient_id
        'user123'
    """

    def __init__(self, should_fail_send: bool = False):
        self._should_fail_send = should_fail_send
        self.sent_messages: list[OutboundMessage] = []

    async def send(self, outbound: OutboundMessage) -> SendResult:
        """Record the reply and return the configured result."""
        self.sent_messages.append(outbound)
        if self._should_fail_send:
            return SendResult(
                success=False,
                recipient_id=outbound.recipient_id,
                error_detail="mock failure",
                status_code=500,
            )
        return SendResult(
            success=True,
            message_id=f"mid.mock.{len(self.sent_messages)}",
            recipient_id=outbound.recipient_id,
            status_code=200,
        )


def get_messaging_service(settings: Settings) -> FacebookMessagingService:
    """Factory for the MessagingService used by the webhook.

    Args:
        settings: Application settings (token, API version, timeout)

    Returns:
        MessagingService implementation (currently Facebook)
    """
    return FacebookMessagingService(
        page_access_token=settings.messenger_page_access_token,
        api_version=settings.graph_api_version,
        timeout=settings.facebook_api_timeout_seconds,
    )
