"""HMAC signature verification for provider callbacks.

Two schemes are in play:
- webhooks: HMAC-SHA256 of the raw request body, keyed with the webhook secret
- checkout: HMAC-SHA256 of "{payment_id}|{subscription_id}", keyed with the API key secret

Both verifiers return False instead of raising, so callers can only reject.
"""

import hashlib
import hmac
from typing import Optional

from subscription_backend.logging_config import get_logger

logger = get_logger(__name__)


class InvalidSignatureError(Exception):
    """Raised when a callback signature does not verify."""

    pass


def compute_signature(message: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of ``message`` keyed with ``secret``."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _matches(message: bytes, provided_signature: Optional[str], secret: Optional[str]) -> bool:
    if not secret or not provided_signature or not isinstance(provided_signature, str):
        return False
    expected = compute_signature(message, secret)
    try:
        return hmac.compare_digest(expected, provided_signature.strip())
    except TypeError:
        # compare_digest rejects non-ASCII str input
        return False


def verify_webhook_signature(
    raw_body: bytes, provided_signature: Optional[str], secret: Optional[str]
) -> bool:
    """Verify a webhook signature over the untouched request body.

    Args:
        raw_body: Exact bytes received; never a re-serialized payload
        provided_signature: Hex digest from the X-Razorpay-Signature header
        secret: Webhook shared secret

    Returns:
        True only if the digest matches
    """
    if not isinstance(raw_body, (bytes, bytearray)):
        logger.warning("webhook_signature_body_not_bytes", body_type=type(raw_body).__name__)
        return False
    return _matches(bytes(raw_body), provided_signature, secret)


def verify_payment_signature(
    payment_id: Optional[str],
    subscription_id: Optional[str],
    provided_signature: Optional[str],
    key_secret: Optional[str],
) -> bool:
    """Verify the signature returned by subscription checkout.

    Returns:
        True only if the digest of "payment_id|subscription_id" matches
    """
    if not payment_id or not subscription_id:
        return False
    message = f"{payment_id}|{subscription_id}".encode("utf-8")
    return _matches(message, provided_signature, key_secret)
