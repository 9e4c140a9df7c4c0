"""Razorpay subscription client."""

from typing import Optional

import razorpay

from subscription_backend.logging_config import get_logger
from subscription_backend.models import BillingSettings, PlanDefinition

logger = get_logger(__name__)


class PaymentProviderError(Exception):
    """Raised when the payment provider call fails."""

    pass


class RazorpayProvider:
    """Creates provider subscriptions for the configured plan.

    Args:
        settings: Validated settings holding credentials and plan id
        client: Pre-built razorpay.Client (built from settings when omitted)
    """

    def __init__(self, settings: BillingSettings, client: Optional[razorpay.Client] = None):
        self._plan_id = settings.razorpay_plan_id
        self._plan: PlanDefinition = settings.plan
        self._client = client or razorpay.Client(
            auth=(settings.razorpay_key_id, settings.razorpay_key_secret)
        )

    @property
    def plan(self) -> PlanDefinition:
        return self._plan

    def create_subscription(self, owner_id: str) -> dict:
        """Create a provider subscription tagged with the owner id.

        Returns:
            Provider subscription entity (contains at least "id")

        Raises:
            PaymentProviderError: If the provider call fails or returns no id
        """
        data = {
            "plan_id": self._plan_id,
            "customer_notify": 1 if self._plan.customer_notify else 0,
            "total_count": self._plan.total_count,
            "notes": {"userId": owner_id},
        }
        try:
            subscription = self._client.subscription.create(data=data)
        except Exception as e:
            logger.error(
                "provider_subscription_create_failed",
                owner_id=owner_id,
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise PaymentProviderError("Failed to create subscription with payment provider") from e

        if not isinstance(subscription, dict) or not subscription.get("id"):
            logger.error("provider_subscription_missing_id", owner_id=owner_id)
            raise PaymentProviderError("Payment provider returned no subscription id")

        logger.info(
            "provider_subscription_created",
            owner_id=owner_id,
            subscription_id=subscription["id"],
            plan_id=self._plan_id,
        )
        return subscription
