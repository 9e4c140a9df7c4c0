"""Webhook payload normalization.

Turns the provider's JSON body into a WebhookEvent. Every nested lookup is
guarded: a missing or oddly-typed field becomes None rather than an error, so
only bodies that are not JSON objects at all are rejected.
"""

import json
from typing import Any, Optional

from subscription_backend.logging_config import get_logger
from subscription_backend.models.events import EventKind, WebhookEvent

logger = get_logger(__name__)


class EventParseError(Exception):
    """Raised when a webhook body is not a JSON object."""

    pass


def _dig(data: Any, *path: str) -> Any:
    """Follow ``path`` through nested dicts, returning None on any gap."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def normalize_event(raw_body: bytes, event_id: Optional[str] = None) -> WebhookEvent:
    """Parse a webhook body into a WebhookEvent.

    Args:
        raw_body: Raw request body (already signature-verified)
        event_id: Provider event id from the request headers, if any

    Returns:
        Normalized event; unrecognized event names map to EventKind.UNKNOWN

    Raises:
        EventParseError: If the body is not a UTF-8 JSON object
    """
    try:
        payload = json.loads(raw_body)
    except (UnicodeDecodeError, ValueError) as e:
        raise EventParseError(f"Webhook body is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise EventParseError("Webhook body must be a JSON object")

    raw_kind = _as_str(payload.get("event"))
    kind = EventKind.from_raw(raw_kind)

    created_at = payload.get("created_at")
    if not isinstance(created_at, int) or isinstance(created_at, bool):
        created_at = None

    event = WebhookEvent(
        kind=kind,
        raw_kind=raw_kind,
        subscription_id=_as_str(_dig(payload, "payload", "subscription", "entity", "id")),
        payment_error_description=_as_str(
            _dig(payload, "payload", "payment", "entity", "error_description")
        ),
        event_id=event_id,
        created_at=created_at,
    )

    if kind == EventKind.UNKNOWN:
        logger.info("webhook_event_unknown", raw_kind=raw_kind, subscription_id=event.subscription_id)
    else:
        logger.debug(
            "webhook_event_normalized",
            kind=kind.value,
            subscription_id=event.subscription_id,
        )
    return event
