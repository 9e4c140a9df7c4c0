"""Webhook event models.

Canonical form of the provider's subscription notifications.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    """Subscription event kinds acted upon by the transition engine."""

    CHARGED = "subscription.charged"  # Successful (renewal) charge
    HALTED = "subscription.halted"  # Charges failed, provider halted the subscription
    CANCELLED = "subscription.cancelled"  # Subscription cancelled
    UNKNOWN = "unknown"  # Anything else the provider sends

    @classmethod
    def from_raw(cls, raw_kind: Optional[str]) -> "EventKind":
        """Map a provider event name to a kind, defaulting to UNKNOWN."""
        for kind in (cls.CHARGED, cls.HALTED, cls.CANCELLED):
            if raw_kind == kind.value:
                return kind
        return cls.UNKNOWN


class WebhookEvent(BaseModel):
    """Normalized webhook event."""

    kind: EventKind = Field(..., description="Canonical event kind")
    raw_kind: Optional[str] = Field(None, description="Event name exactly as sent by the provider")
    subscription_id: Optional[str] = Field(None, description="payload.subscription.entity.id")
    payment_error_description: Optional[str] = Field(
        None, description="payload.payment.entity.error_description"
    )
    event_id: Optional[str] = Field(None, description="Provider event id, when present")
    created_at: Optional[int] = Field(None, description="Provider event time (Unix seconds)")

    class Config:
        json_schema_extra = {
            "example": {
                "kind": EventKind.HALTED,
                "raw_kind": "subscription.halted",
                "subscription_id": "sub_00000000000001",
                "payment_error_description": "Payment failed due to insufficient funds",
                "event_id": None,
                "created_at": 1767225600,
            }
        }
