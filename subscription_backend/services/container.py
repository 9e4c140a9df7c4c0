"""Wiring of the store, engine, lifecycle service and authenticator.

One BillingServices bundle is built per application and handed to request
handlers through FastAPI dependencies.
"""

from typing import Optional

from subscription_backend.config import Config
from subscription_backend.logging_config import get_logger
from subscription_backend.models import BillingSettings
from subscription_backend.repositories.subscription_store import (
    InMemorySubscriptionStore,
    SubscriptionStore,
)
from subscription_backend.services.auth import FirebaseAuthenticator
from subscription_backend.services.lifecycle import SubscriptionLifecycle
from subscription_backend.services.payment_provider import RazorpayProvider
from subscription_backend.services.subscription_engine import SubscriptionEngine
from subscription_backend.utils.billing_period import parse_billing_period
from subscription_backend.utils.clock import Clock

logger = get_logger(__name__)


class BillingServices:
    """Everything a request handler needs, built once per app."""

    def __init__(
        self,
        settings: BillingSettings,
        store: SubscriptionStore,
        engine: SubscriptionEngine,
        lifecycle: SubscriptionLifecycle,
        authenticator,
        clock: Clock,
    ):
        self.settings = settings
        self.store = store
        self.engine = engine
        self.lifecycle = lifecycle
        self.authenticator = authenticator
        self.clock = clock

    @property
    def webhook_secret(self) -> str:
        return self.settings.razorpay_webhook_secret


def _build_store(settings: BillingSettings) -> SubscriptionStore:
    if settings.store_backend == "memory":
        logger.warning("memory_store_selected", message="Records are lost on restart")
        return InMemorySubscriptionStore()

    from subscription_backend.repositories.firestore_store import FirestoreSubscriptionStore
    from subscription_backend.services.firebase import get_firestore_client

    return FirestoreSubscriptionStore(
        get_firestore_client(settings), collection=settings.firestore_collection
    )


def build_services(
    config: Config,
    store: Optional[SubscriptionStore] = None,
    provider: Optional[RazorpayProvider] = None,
    authenticator=None,
    clock: Optional[Clock] = None,
) -> BillingServices:
    """Build the service bundle from configuration.

    Any collaborator passed in is used as-is instead of the configured one.
    """
    settings = config.settings
    if clock is None:
        clock = Clock()
    if store is None:
        store = _build_store(settings)
    if provider is None:
        provider = RazorpayProvider(settings)

    if authenticator is None:
        from subscription_backend.services.firebase import get_firebase_app

        authenticator = FirebaseAuthenticator(app=get_firebase_app(settings))

    engine = SubscriptionEngine(
        store,
        clock=clock,
        paid_period=parse_billing_period(settings.plan.billing_period),
    )
    lifecycle = SubscriptionLifecycle(
        store,
        engine,
        provider,
        key_secret=settings.razorpay_key_secret,
        clock=clock,
    )

    logger.info(
        "billing_services_built",
        store=type(store).__name__,
        plan=settings.plan.name,
    )
    return BillingServices(
        settings=settings,
        store=store,
        engine=engine,
        lifecycle=lifecycle,
        authenticator=authenticator,
        clock=clock,
    )
