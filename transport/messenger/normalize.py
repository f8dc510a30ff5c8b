"""
Messenger Input Normalization

PURE CONVERSION - NO LOGIC, NO ENGINE CALLS

Flattens a (possibly batched) webhook delivery into InboundMessage objects.
- TEXT: Keep body as sent
- ATTACHMENTS: Preserve attachment objects, no download
- NON-MESSAGE EVENTS (delivery, read, postback): logged and dropped
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError

from .schemas import InboundMessage, MessagingEvent, MessengerWebhookPayload

logger = logging.getLogger(__name__)


class NormalizationError(Exception):
    """Input normalization failed."""
    pass


def parse_payload(payload: dict | MessengerWebhookPayload) -> MessengerWebhookPayload:
    """
    Validate the webhook envelope.

    Raises:
        NormalizationError: Payload does not match the envelope schema
    """
    if isinstance(payload, MessengerWebhookPayload):
        return payload
    if not isinstance(payload, dict):
        raise NormalizationError("Webhook payload must be a JSON object")
    try:
        return MessengerWebhookPayload.model_validate(payload)
    except ValidationError as e:
        raise NormalizationError(f"Invalid payload structure: {e.error_count()} error(s)") from e


def normalize_events(payload: dict | MessengerWebhookPayload) -> List[InboundMessage]:
    """
    Convert every message event of a delivery into InboundMessage.

    Args:
        payload: Raw Messenger webhook payload

    Returns:
        Messages in delivery order; events without `message` are skipped

    Raises:
        NormalizationError: Invalid payload structure
    """
    envelope = parse_payload(payload)

    messages: List[InboundMessage] = []
    for entry in envelope.entry:
        for event in entry.messaging:
            message = normalize_event(event)
            if message is None:
                logger.info(
                    "Received non-message event",
                    extra={
                        "sender_id": event.sender.id,
                        "event_keys": sorted((event.model_extra or {}).keys()),
                    },
                )
                continue
            messages.append(message)
    return messages


def normalize_event(event: MessagingEvent) -> Optional[InboundMessage]:
    """Normalize one messaging event, or None if it carries no message."""
    if event.message is None:
        return None

    msg = event.message
    timestamp = None
    if event.timestamp is not None:
        # Messenger timestamps are epoch milliseconds
        timestamp = datetime.fromtimestamp(event.timestamp / 1000, tz=timezone.utc)

    return InboundMessage(
        sender_id=event.sender.id,
        recipient_id=event.recipient.id if event.recipient else None,
        message_id=msg.mid,
        text=msg.text,
        attachments=list(msg.attachments or []),
        timestamp=timestamp,
        is_echo=msg.is_echo,
    )
