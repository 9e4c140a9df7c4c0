"""Pydantic models for API requests, responses, and domain objects."""

# Plan and settings models
from .plan import (
    BillingSettings,
    PlanDefinition,
)

# Subscription models
from .subscription import (
    SubscriptionRecord,
    SubscriptionStatus,
)

# Webhook event models
from .events import (
    EventKind,
    WebhookEvent,
)

# API request/response models
from .api_request import VerifyPaymentRequest
from .api_response import (
    CheckSubscriptionResponse,
    CreateSubscriptionResponse,
    ErrorResponse,
    VerifyPaymentResponse,
    WebhookResponse,
)

__all__ = [
    # Plan and settings
    "BillingSettings",
    "PlanDefinition",
    # Subscription
    "SubscriptionRecord",
    "SubscriptionStatus",
    # Events
    "EventKind",
    "WebhookEvent",
    # API
    "VerifyPaymentRequest",
    "CheckSubscriptionResponse",
    "CreateSubscriptionResponse",
    "ErrorResponse",
    "VerifyPaymentResponse",
    "WebhookResponse",
]
