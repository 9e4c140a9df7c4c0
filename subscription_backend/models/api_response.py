"""API response models.

Keys are camelCase to match what the client application reads.
"""

from typing import Optional

from pydantic import BaseModel, Field


class CreateSubscriptionResponse(BaseModel):
    """Response for POST /create-subscription."""

    subscriptionId: str = Field(..., description="Provider subscription id to open checkout with")
    plan: str = Field(..., description="Plan name")
    amount: int = Field(..., description="Plan amount in the currency's smallest unit")

    class Config:
        json_schema_extra = {
            "example": {"subscriptionId": "sub_00000000000001", "plan": "pro", "amount": 40000}
        }


class VerifyPaymentResponse(BaseModel):
    """Response for POST /verify-payment."""

    success: bool = Field(default=True)
    message: str = Field(default="Subscription activated!")


class CheckSubscriptionResponse(BaseModel):
    """Response for GET /check-subscription."""

    isActive: bool = Field(..., description="Active status with a paid period ending in the future")


class WebhookResponse(BaseModel):
    """Response for POST /webhook."""

    success: bool = Field(default=True)


class ErrorResponse(BaseModel):
    """Error body returned by every endpoint."""

    error: str = Field(..., description="Human-readable error message")
    detail: Optional[str] = Field(None, description="Optional extra context")
