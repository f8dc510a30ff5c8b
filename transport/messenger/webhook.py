"""
Messenger Webhook Receiver

FastAPI router for the Messenger webhook: subscription handshake and event
delivery. Events are handed to the orchestrator found on app.state and the
request is acknowledged without waiting for dispatch to finish.
No agent imports. Pure transport.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse, Response

from .normalize import NormalizationError, normalize_events
from .security import (
    SIGNATURE_HEADER,
    AuthenticationError,
    ChallengeVerificationError,
    verify_request_signature,
    verify_webhook_challenge,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["Messenger Transport"])


def _bootstrap(request: Request):
    bootstrap = getattr(request.app.state, "bootstrap", None)
    if bootstrap is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not ready",
        )
    return bootstrap


# ============================================================================
# WEBHOOK CHALLENGE (Setup only)
# ============================================================================

@router.get("")
async def messenger_webhook_challenge(
    request: Request,
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
) -> Response:
    """
    Verify webhook subscription challenge from Meta.

    Returns:
        200 with the challenge as plain text, or 400 with an empty body
    """
    bootstrap = _bootstrap(request)
    try:
        challenge = verify_webhook_challenge(
            hub_mode,
            hub_verify_token,
            hub_challenge,
            expected_token=bootstrap.config.fb_verify_token,
        )
    except ChallengeVerificationError as e:
        logger.warning(f"Webhook challenge rejected: {e}")
        return Response(status_code=status.HTTP_400_BAD_REQUEST)

    logger.info("Webhook subscription verified")
    return PlainTextResponse(challenge)


# ============================================================================
# WEBHOOK RECEIVER (Event delivery)
# ============================================================================

@router.post("")
async def messenger_webhook_receiver(request: Request) -> dict[str, str]:
    """
    Receive Messenger events via webhook.

    Flow:
    1. Read raw body
    2. Verify signature (403 if invalid)
    3. Parse and normalize envelope (400 if malformed)
    4. Drop redelivered messages
    5. Submit messages to the orchestrator (background tasks)

    Returns:
        {"status": "ok"} once accepted, regardless of dispatch outcome
    """
    bootstrap = _bootstrap(request)
    config = bootstrap.config

    # Step 1: Raw body, exactly as signed
    body = await request.body()

    # Step 2: Security boundary, before anything touches a session
    try:
        verify_request_signature(
            body,
            request.headers.get(SIGNATURE_HEADER),
            config.fb_app_secret,
            require=config.require_signature,
        )
    except AuthenticationError as e:
        logger.warning(f"Signature verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Signature verification failed",
        )

    # Step 3: Structural parse
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON payload",
        )

    if not isinstance(payload, dict) or payload.get("object") != "page":
        logger.info("Ignoring webhook delivery for non-page object")
        return {"status": "ok"}

    try:
        messages = normalize_events(payload)
    except NormalizationError as e:
        logger.error(f"Normalization failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload structure",
        )

    # Step 4: Idempotency
    fresh = []
    for message in messages:
        if bootstrap.deduplicator.seen(message.message_id):
            logger.info(
                f"Dropping redelivered message {message.message_id}",
                extra={"sender_id": message.sender_id},
            )
            continue
        fresh.append(message)

    # Step 5: Fire and forget
    if fresh:
        bootstrap.orchestrator.submit(fresh)

    # Always return 200 to acknowledge the delivery
    # (Messenger retries and eventually disables webhooks otherwise)
    return {"status": "ok"}
