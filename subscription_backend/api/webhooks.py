"""Payment provider webhook endpoint.

POST /webhook receives Razorpay subscription events. The signature is checked
against the raw body before anything is parsed.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from subscription_backend.api.dependencies import error_response, get_services
from subscription_backend.logging_config import get_logger
from subscription_backend.models import ErrorResponse, WebhookResponse
from subscription_backend.repositories.subscription_store import StoreError
from subscription_backend.services.container import BillingServices
from subscription_backend.services.event_normalizer import EventParseError, normalize_event
from subscription_backend.services.signature import verify_webhook_signature
from subscription_backend.services.subscription_engine import TransitionOutcome

logger = get_logger(__name__)
router = APIRouter(tags=["Webhooks"])


@router.post(
    "/webhook",
    response_model=WebhookResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def receive_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None),
    x_razorpay_event_id: Optional[str] = Header(None),
    services: BillingServices = Depends(get_services),
):
    """Verify, normalize and apply a provider event."""
    raw_body = await request.body()

    if not verify_webhook_signature(raw_body, x_razorpay_signature, services.webhook_secret):
        logger.warning(
            "webhook_signature_invalid",
            signature_present=bool(x_razorpay_signature),
            body_bytes=len(raw_body),
        )
        return error_response(400, "Invalid signature")

    try:
        event = normalize_event(raw_body, event_id=x_razorpay_event_id)
    except EventParseError as e:
        logger.warning("webhook_payload_invalid", error=str(e))
        return error_response(400, "Invalid payload")

    try:
        result = await run_in_threadpool(services.engine.apply_event, event)
    except StoreError:
        logger.error(
            "webhook_processing_failed",
            event_name=event.raw_kind,
            subscription_id=event.subscription_id,
            exc_info=True,
        )
        return error_response(500, "Webhook processing failed")

    if result.outcome == TransitionOutcome.NOT_FOUND:
        return error_response(404, "not found")

    logger.info(
        "webhook_processed",
        event_name=event.raw_kind,
        subscription_id=event.subscription_id,
        outcome=result.outcome.value,
        new_status=result.new_status.value if result.new_status else None,
    )
    return WebhookResponse()
