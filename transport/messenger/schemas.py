"""
Messenger Transport Layer - Pydantic Schemas

PURE DATA MODELS - NO LOGIC
Only defines the contract between Messenger and the normalized interface.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def _as_str(value: Any) -> Any:
    # Graph API ids are documented as strings but older payloads carry ints
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


# ============================================================================
# MESSENGER WEBHOOK PAYLOAD SCHEMAS (INPUT)
# ============================================================================

class MessengerUser(BaseModel):
    """Page-scoped user (or page) identity."""
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _as_str(value)


class Attachment(BaseModel):
    """Attachment on an inbound message (image, audio, location, ...)."""
    type: str
    payload: Optional[dict[str, Any]] = None

    class Config:
        extra = "allow"


class MessengerMessage(BaseModel):
    """The `message` object of a messaging event."""
    mid: Optional[str] = None
    text: Optional[str] = None
    attachments: Optional[list[Attachment]] = None
    is_echo: bool = False

    class Config:
        extra = "allow"  # quick_reply, reply_to, nlp, ...


class MessagingEvent(BaseModel):
    """
    A single messaging event.

    Only events carrying `message` are dispatched; delivery and read
    receipts, postbacks and the like arrive with other keys.
    """
    sender: MessengerUser
    recipient: Optional[MessengerUser] = None
    timestamp: Optional[int] = None
    message: Optional[MessengerMessage] = None

    class Config:
        extra = "allow"


class Entry(BaseModel):
    """One batched entry of a webhook delivery."""
    id: Optional[str] = None
    time: Optional[int] = None
    messaging: list[MessagingEvent] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _as_str(value)

    class Config:
        extra = "allow"


class MessengerWebhookPayload(BaseModel):
    """
    Full Messenger webhook payload.

    ref: https://developers.facebook.com/docs/messenger-platform/webhooks
    """

    object: str = Field(..., description="Always 'page' for Messenger")
    entry: list[Entry] = Field(default_factory=list, description="Webhook entries")

    class Config:
        extra = "allow"  # Messenger may add fields


# ============================================================================
# NORMALIZED MESSAGE (THE CONTRACT)
# ============================================================================

class InboundMessage(BaseModel):
    """
    Canonical inbound message that the orchestrator consumes.

    Exactly one of text / attachments is expected to be meaningful.
    """

    sender_id: str = Field(..., description="Page-scoped id of the human")
    recipient_id: Optional[str] = Field(None, description="Page id")
    message_id: Optional[str] = Field(None, description="Messenger mid")
    text: Optional[str] = None
    attachments: list[Attachment] = Field(default_factory=list)
    timestamp: Optional[datetime] = None
    is_echo: bool = False

    class Config:
        frozen = True

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())

    @property
    def has_attachments(self) -> bool:
        return bool(self.attachments)


# ============================================================================
# SEND API RESPONSE (OUTPUT)
# ============================================================================

class SendResult(BaseModel):
    """Response from the Send API when delivering a message."""

    recipient_id: Optional[str] = None
    message_id: Optional[str] = None

    class Config:
        extra = "allow"
