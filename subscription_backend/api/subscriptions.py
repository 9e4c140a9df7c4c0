"""Owner-facing subscription endpoints.

Implements:
- POST /create-subscription
- POST /verify-payment
- GET /check-subscription

All require a Firebase ID token in ``Authorization: Bearer <token>``.
"""

from fastapi import APIRouter, Depends

from subscription_backend.api.dependencies import error_response, get_services, require_identity
from subscription_backend.logging_config import get_logger
from subscription_backend.models import (
    CheckSubscriptionResponse,
    CreateSubscriptionResponse,
    ErrorResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from subscription_backend.repositories.subscription_store import (
    DuplicateSubscriptionError,
    StoreError,
)
from subscription_backend.services.auth import Identity
from subscription_backend.services.container import BillingServices
from subscription_backend.services.payment_provider import PaymentProviderError
from subscription_backend.services.signature import InvalidSignatureError
from subscription_backend.services.subscription_engine import SubscriptionAlreadyActiveError

logger = get_logger(__name__)
router = APIRouter(tags=["Subscriptions"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/create-subscription",
    response_model=CreateSubscriptionResponse,
    responses=_ERROR_RESPONSES,
)
def create_subscription(
    identity: Identity = Depends(require_identity),
    services: BillingServices = Depends(get_services),
):
    """Create a provider subscription the client can open checkout with."""
    logger.info("create_subscription_request", owner_id=identity.owner_id)
    try:
        created = services.lifecycle.create_subscription(identity.owner_id)
    except SubscriptionAlreadyActiveError:
        return error_response(400, "Active subscription exists")
    except PaymentProviderError as e:
        return error_response(500, str(e))
    except StoreError:
        logger.error("create_subscription_store_failed", owner_id=identity.owner_id, exc_info=True)
        return error_response(500, "Failed to read subscription status")

    return CreateSubscriptionResponse(
        subscriptionId=created.subscription_id,
        plan=created.plan,
        amount=created.amount,
    )


@router.post(
    "/verify-payment",
    response_model=VerifyPaymentResponse,
    responses=_ERROR_RESPONSES,
)
def verify_payment(
    request: VerifyPaymentRequest,
    identity: Identity = Depends(require_identity),
    services: BillingServices = Depends(get_services),
):
    """Verify the checkout signature and activate the subscription."""
    logger.info(
        "verify_payment_request",
        owner_id=identity.owner_id,
        payment_id=request.payment_id,
        subscription_id=request.subscription_id,
    )
    try:
        services.lifecycle.verify_payment(
            owner_id=identity.owner_id,
            payment_id=request.payment_id,
            subscription_id=request.subscription_id,
            signature=request.signature,
            email=identity.email,
        )
    except InvalidSignatureError:
        return error_response(400, "Invalid signature")
    except SubscriptionAlreadyActiveError:
        return error_response(400, "Active subscription exists")
    except DuplicateSubscriptionError:
        logger.warning(
            "verify_payment_subscription_owned_elsewhere",
            owner_id=identity.owner_id,
            subscription_id=request.subscription_id,
        )
        return error_response(400, "Subscription belongs to another account")
    except StoreError:
        logger.error("verify_payment_store_failed", owner_id=identity.owner_id, exc_info=True)
        return error_response(500, "Failed to activate subscription")

    return VerifyPaymentResponse()


@router.get(
    "/check-subscription",
    response_model=CheckSubscriptionResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def check_subscription(
    identity: Identity = Depends(require_identity),
    services: BillingServices = Depends(get_services),
):
    """Report whether the caller's subscription is currently active."""
    try:
        status = services.lifecycle.check_status(identity.owner_id)
    except StoreError:
        logger.error("check_subscription_store_failed", owner_id=identity.owner_id, exc_info=True)
        return error_response(500, "Failed to read subscription status")

    logger.debug("check_subscription_result", owner_id=identity.owner_id, is_active=status.is_active)
    return CheckSubscriptionResponse(isActive=status.is_active)
