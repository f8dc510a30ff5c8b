"""Messenger Transport Layer - Module Exports"""

from .dedupe import MessageDeduplicator
from .normalize import NormalizationError, normalize_event, normalize_events, parse_payload
from .schemas import (
    Attachment,
    Entry,
    InboundMessage,
    MessagingEvent,
    MessengerMessage,
    MessengerUser,
    MessengerWebhookPayload,
    SendResult,
)
from .security import (
    SIGNATURE_HEADER,
    AuthenticationError,
    ChallengeVerificationError,
    compute_signature,
    parse_signature_header,
    verify_request_signature,
    verify_webhook_challenge,
)
from .sender import DEFAULT_SEND_API_URL, MessengerSender, TransportError
from .webhook import router

__all__ = [
    # Schemas
    "Attachment",
    "Entry",
    "InboundMessage",
    "MessagingEvent",
    "MessengerMessage",
    "MessengerUser",
    "MessengerWebhookPayload",
    "SendResult",
    # Normalization
    "normalize_events",
    "normalize_event",
    "parse_payload",
    "NormalizationError",
    # Idempotency
    "MessageDeduplicator",
    # Security
    "SIGNATURE_HEADER",
    "AuthenticationError",
    "ChallengeVerificationError",
    "compute_signature",
    "parse_signature_header",
    "verify_request_signature",
    "verify_webhook_challenge",
    # Sender
    "DEFAULT_SEND_API_URL",
    "MessengerSender",
    "TransportError",
    # Router
    "router",
]
