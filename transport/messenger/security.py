"""
Messenger Signature Verification

SECURITY BOUNDARY - Verify Meta HMAC signature over the raw request body.
No session access. No retries. No logic.
"""

import hashlib
import hmac
import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature"

_ALGORITHMS = {
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
}


class AuthenticationError(Exception):
    """Signature missing (when required), malformed or not matching."""
    pass


class ChallengeVerificationError(Exception):
    """Subscription handshake rejected."""
    pass


def parse_signature_header(header: str) -> Tuple[str, str]:
    """
    Split "<algorithm>=<hex-digest>" into its parts.

    Raises:
        AuthenticationError: Malformed header or unsupported algorithm
    """
    algorithm, sep, digest = header.partition("=")
    if not sep or not digest:
        raise AuthenticationError("Malformed signature header")
    if algorithm not in _ALGORITHMS:
        raise AuthenticationError(f"Unsupported signature algorithm: {algorithm}")
    return algorithm, digest


def compute_signature(body: bytes, app_secret: str, algorithm: str = "sha1") -> str:
    """Return the header value Meta would send for this body."""
    digest = hmac.new(
        key=app_secret.encode("utf-8"),
        msg=body,
        digestmod=_ALGORITHMS[algorithm],
    ).hexdigest()
    return f"{algorithm}={digest}"


def verify_request_signature(
    body: bytes,
    signature: Optional[str],
    app_secret: str,
    require: bool = False,
) -> bool:
    """
    Verify the x-hub-signature header against the raw body.

    A missing header is logged as a security anomaly and accepted unless
    `require` is set.

    Args:
        body: Raw request body bytes, exactly as received
        signature: Header value, or None when absent
        app_secret: Messenger app secret
        require: Reject requests without a signature header

    Returns:
        True if the signature was checked, False if it was absent and tolerated

    Raises:
        AuthenticationError: Missing (when required), malformed or invalid
    """
    if not signature:
        if require:
            raise AuthenticationError("Missing signature header")
        logger.warning(
            "Webhook request without signature header accepted",
            extra={"anomaly": "missing_signature"},
        )
        return False

    algorithm, received = parse_signature_header(signature)
    expected = compute_signature(body, app_secret, algorithm).split("=", 1)[1]

    # Constant-time comparison
    if not hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8")):
        raise AuthenticationError("Invalid request signature")
    return True


def verify_webhook_challenge(
    hub_mode: Optional[str],
    hub_verify_token: Optional[str],
    hub_challenge: Optional[str],
    expected_token: str,
) -> str:
    """
    Verify webhook subscription challenge from Messenger.

    Messenger calls GET /webhook with:
    - hub.mode=subscribe
    - hub.challenge=random_string
    - hub.verify_token=configured_token

    Returns:
        The challenge string to echo back

    Raises:
        ChallengeVerificationError: Wrong mode, wrong token or no challenge
    """
    if hub_mode != "subscribe":
        raise ChallengeVerificationError(f"Invalid hub.mode: {hub_mode!r}")

    if not hub_verify_token or not hmac.compare_digest(
        hub_verify_token.encode("utf-8"), expected_token.encode("utf-8")
    ):
        raise ChallengeVerificationError("Invalid hub.verify_token")

    if hub_challenge is None:
        raise ChallengeVerificationError("Missing hub.challenge")

    return hub_challenge
