"""Plan and service settings models.

Plan definitions come from plan.yaml; credentials and runtime settings
come from the environment.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from subscription_backend.utils.billing_period import validate_billing_period


class PlanDefinition(BaseModel):
    """Subscription plan offered to owners."""

    name: str = Field(default="pro", description="Plan name returned to the client")
    amount: int = Field(default=40000, description="Price in the currency's smallest unit (paise)")
    currency: str = Field(default="INR", description="ISO 4217 currency code")
    total_count: int = Field(default=12, description="Number of billing cycles the provider charges")
    customer_notify: bool = Field(default=True, description="Let the provider notify the customer")
    billing_period: str = Field(default="P1Y", description="ISO 8601 duration of the paid period")

    @field_validator("amount", "total_count")
    @classmethod
    def _must_be_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("billing_period")
    @classmethod
    def _valid_period(cls, value: str) -> str:
        if not validate_billing_period(value):
            raise ValueError(f"invalid billing period: {value!r}")
        return value.strip().upper()

    class Config:
        json_schema_extra = {
            "example": {
                "name": "pro",
                "amount": 40000,
                "currency": "INR",
                "total_count": 12,
                "customer_notify": True,
                "billing_period": "P1Y",
            }
        }


class BillingSettings(BaseModel):
    """Environment-supplied settings, validated at startup."""

    razorpay_key_id: str = Field(..., min_length=1, description="Razorpay API key id")
    razorpay_key_secret: str = Field(..., min_length=1, description="Razorpay API key secret")
    razorpay_webhook_secret: str = Field(..., min_length=1, description="Webhook shared secret")
    razorpay_plan_id: str = Field(..., min_length=1, description="Provider plan identifier")

    firebase_project_id: Optional[str] = Field(None, description="Firebase project id")
    firebase_credentials_path: Optional[str] = Field(None, description="Service account JSON path")

    store_backend: str = Field(default="firestore", description="'firestore' or 'memory'")
    firestore_collection: str = Field(default="users", description="Collection holding owner records")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    plan: PlanDefinition = Field(default_factory=PlanDefinition)

    @field_validator(
        "razorpay_key_id", "razorpay_key_secret", "razorpay_webhook_secret", "razorpay_plan_id"
    )
    @classmethod
    def _strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("store_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("firestore", "memory"):
            raise ValueError(f"unsupported store backend: {value!r}")
        return value
