"""Owner-facing subscription operations: create, verify payment, check status."""

from typing import Optional

from pydantic import BaseModel, Field

from subscription_backend.logging_config import get_logger
from subscription_backend.models.subscription import SubscriptionRecord, SubscriptionStatus
from subscription_backend.repositories.subscription_store import SubscriptionStore
from subscription_backend.services.payment_provider import RazorpayProvider
from subscription_backend.services.signature import InvalidSignatureError, verify_payment_signature
from subscription_backend.services.subscription_engine import (
    SubscriptionAlreadyActiveError,
    SubscriptionEngine,
)
from subscription_backend.utils.clock import Clock, as_utc

logger = get_logger(__name__)


class CreatedSubscription(BaseModel):
    """Provider subscription handed to the client for checkout."""

    subscription_id: str
    plan: str
    amount: int


class SubscriptionStatusView(BaseModel):
    """Derived status returned to the client."""

    is_active: bool = Field(..., description="Active with a paid period ending in the future")


class SubscriptionLifecycle:
    """Create, verify and query an owner's subscription.

    Args:
        store: Subscription storage
        engine: Transition engine used for activation
        provider: Payment provider client
        key_secret: API key secret that signs checkout results
        clock: Time source (defaults to the engine's clock)
    """

    def __init__(
        self,
        store: SubscriptionStore,
        engine: SubscriptionEngine,
        provider: RazorpayProvider,
        key_secret: str,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.engine = engine
        self.provider = provider
        self._key_secret = key_secret
        self.clock = clock or engine.clock

    def create_subscription(self, owner_id: str) -> CreatedSubscription:
        """Create a provider subscription for the owner.

        Nothing is written to the store; the record is created once the
        payment is verified.

        Raises:
            SubscriptionAlreadyActiveError: If the owner's record is active
            PaymentProviderError: If the provider call fails
        """
        record = self.store.get_by_owner(owner_id)
        if record is not None and record.status == SubscriptionStatus.ACTIVE:
            logger.info("create_subscription_rejected_active", owner_id=owner_id)
            raise SubscriptionAlreadyActiveError("Active subscription exists")

        subscription = self.provider.create_subscription(owner_id)
        plan = self.provider.plan
        return CreatedSubscription(
            subscription_id=subscription["id"],
            plan=plan.name,
            amount=plan.amount,
        )

    def verify_payment(
        self,
        owner_id: str,
        payment_id: str,
        subscription_id: str,
        signature: str,
        email: Optional[str] = None,
    ) -> SubscriptionRecord:
        """Verify the checkout signature and activate the owner's subscription.

        Raises:
            InvalidSignatureError: If the signature does not match
            SubscriptionAlreadyActiveError: If the owner is active under another subscription
            DuplicateSubscriptionError: If the subscription belongs to another owner
        """
        if not verify_payment_signature(payment_id, subscription_id, signature, self._key_secret):
            logger.warning(
                "payment_signature_invalid",
                owner_id=owner_id,
                payment_id=payment_id,
                subscription_id=subscription_id,
            )
            raise InvalidSignatureError("Invalid signature")

        record = self.engine.activate(owner_id, subscription_id, email=email)
        logger.info(
            "payment_verified",
            owner_id=owner_id,
            payment_id=payment_id,
            subscription_id=subscription_id,
        )
        return record

    def check_status(self, owner_id: str) -> SubscriptionStatusView:
        """Report whether the owner currently has a usable subscription."""
        record = self.store.get_by_owner(owner_id)
        return SubscriptionStatusView(is_active=self.is_active(record))

    def is_active(self, record: Optional[SubscriptionRecord]) -> bool:
        """Active status and a paid period ending strictly after now."""
        if record is None or record.status != SubscriptionStatus.ACTIVE:
            return False
        end = as_utc(record.subscription_end)
        return end is not None and end > self.clock.now()
