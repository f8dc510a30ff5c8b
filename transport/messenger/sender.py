"""
Messenger Response Sender

Sends text back to a Messenger user through the Send API.
No formatting intelligence. No retries. No logic.
"""

import logging
from typing import Any

import httpx

from .schemas import SendResult

logger = logging.getLogger(__name__)

DEFAULT_SEND_API_URL = "https://graph.facebook.com/v2.6/me/messages"


class TransportError(Exception):
    """Failed to deliver a message to Messenger."""
    pass


class MessengerSender:
    """
    Outbound Send API client.

    Failures raise TransportError; callers decide whether they are fatal.
    """

    def __init__(
        self,
        page_token: str,
        api_url: str = DEFAULT_SEND_API_URL,
        timeout_s: float = 10.0,
    ):
        if not page_token:
            raise ValueError("page_token must not be empty")
        self._page_token = page_token
        self.api_url = api_url
        self.timeout_s = timeout_s

    async def send_text(self, recipient_id: str, text: str) -> SendResult:
        """
        Deliver a text message.

        Args:
            recipient_id: Page-scoped id of the user
            text: Message body

        Returns:
            SendResult from the Send API

        Raises:
            TransportError: Network failure, non-2xx status, unreadable body
                or an `error` object in the response
        """
        payload = {
            "recipient": {"id": recipient_id},
            "message": {"text": text},
        }
        headers = {
            "Authorization": f"Bearer {self._page_token}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers=headers,
                    timeout=self.timeout_s,
                )
        except httpx.TimeoutException as e:
            raise TransportError(f"Send API timed out: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"HTTP request failed: {e}") from e

        try:
            body: Any = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = body["error"].get("message") or "unknown error"
            logger.error(
                f"Send API error: {message}",
                extra={"recipient_id": recipient_id, "status_code": response.status_code},
            )
            raise TransportError(message)

        if response.status_code >= 300:
            logger.error(
                f"Send API returned {response.status_code}",
                extra={"recipient_id": recipient_id, "status_code": response.status_code},
            )
            raise TransportError(f"Send API returned {response.status_code}")

        if not isinstance(body, dict):
            raise TransportError("Send API returned an unreadable body")

        result = SendResult(**body)
        logger.info(
            f"Message sent to {recipient_id}",
            extra={"recipient_id": recipient_id, "message_id": result.message_id},
        )
        return result
