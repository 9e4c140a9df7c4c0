"""Subscription record and status models.

Field aliases match the document layout in the store (camelCase keys on the
owner's document).
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class SubscriptionStatus(str, Enum):
    """Account status of an owner's subscription."""

    NONE = "none"  # No paid subscription yet
    ACTIVE = "active"  # Paid and current
    PAYMENT_FAILED = "payment_failed"  # Provider halted after failed charges
    CANCELLED = "cancelled"  # Cancelled, terminal until re-verified


class SubscriptionRecord(BaseModel):
    """An owner's subscription state."""

    owner_id: str = Field(..., alias="ownerId", description="Authenticated account identifier")
    subscription_id: Optional[str] = Field(
        None, alias="subscriptionId", description="Provider-issued subscription id"
    )
    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.NONE, alias="subscriptionStatus", description="Current status"
    )
    email: Optional[str] = Field(None, alias="email", description="Owner email at activation time")

    # Paid period and payments
    subscription_start: Optional[datetime] = Field(None, alias="subscriptionStart")
    subscription_end: Optional[datetime] = Field(None, alias="subscriptionEnd")
    last_payment_at: Optional[datetime] = Field(None, alias="lastPayment")

    # Failure and cancellation
    failure_reason: Optional[str] = Field(None, alias="failureReason")
    cancelled_at: Optional[datetime] = Field(None, alias="cancelledAt")

    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    @model_validator(mode="after")
    def _period_is_ordered(self) -> "SubscriptionRecord":
        if (
            self.subscription_start is not None
            and self.subscription_end is not None
            and self.subscription_end < self.subscription_start
        ):
            raise ValueError("subscription_end must not precede subscription_start")
        return self

    def merged(self, fields: dict) -> "SubscriptionRecord":
        """Return a validated copy with ``fields`` merged in.

        Keys are attribute names; a ``None`` value clears the field.
        """
        data = self.model_dump()
        data.update(fields)
        data["owner_id"] = self.owner_id
        return SubscriptionRecord.model_validate(data)

    def to_document(self) -> dict:
        """Serialize to the stored document layout (owner id excluded)."""
        document = self.model_dump(by_alias=True, exclude={"owner_id"}, exclude_none=True)
        document["subscriptionStatus"] = self.status.value
        return document

    @classmethod
    def from_document(cls, owner_id: str, document: dict) -> "SubscriptionRecord":
        """Build a record from a stored document, ignoring unknown keys."""
        known = {field.alias or name for name, field in cls.model_fields.items()}
        data = {key: value for key, value in document.items() if key in known}
        data["ownerId"] = owner_id
        return cls.model_validate(data)

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "ownerId": "u1",
                "subscriptionId": "sub_1",
                "subscriptionStatus": "active",
                "email": "owner@example.com",
                "subscriptionStart": "2026-01-01T00:00:00Z",
                "subscriptionEnd": "2027-01-01T00:00:00Z",
                "lastPayment": "2026-01-01T00:00:00Z",
            }
        }
