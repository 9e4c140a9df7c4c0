"""State change logging for subscription records.

Tracks status transitions and payment bookkeeping with before/after values
for debugging and auditing.
"""

from datetime import datetime
from typing import Any, Optional

from subscription_backend.logging_config import get_logger

logger = get_logger(__name__)


def log_subscription_state_change(
    owner_id: str,
    subscription_id: Optional[str],
    old_status: Any,
    new_status: Any,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log subscription status change.

    Args:
        owner_id: Owner of the record
        subscription_id: Provider subscription id
        old_status: Previous status value
        new_status: New status value
        reason: What caused the change (event name, payment verification)
        **extra_context: Additional context (failure reason, event id, etc.)
    """
    logger.info(
        "subscription_state_changed",
        owner_id=owner_id,
        subscription_id=subscription_id,
        old_status=str(getattr(old_status, "value", old_status)),
        new_status=str(getattr(new_status, "value", new_status)),
        reason=reason,
        **extra_context,
    )


def log_payment_recorded(
    owner_id: str,
    subscription_id: Optional[str],
    paid_at: datetime,
    reason: str,
    **extra_context: Any,
) -> None:
    """Log a successful payment being recorded on a record."""
    logger.info(
        "subscription_payment_recorded",
        owner_id=owner_id,
        subscription_id=subscription_id,
        paid_at=paid_at.isoformat(),
        reason=reason,
        **extra_context,
    )


def log_period_change(
    owner_id: str,
    subscription_id: Optional[str],
    old_end: Optional[datetime],
    new_end: datetime,
    reason: str,
    **extra_context: Any,
) -> None:
    """Log a change of the paid period's end."""
    logger.info(
        "subscription_period_changed",
        owner_id=owner_id,
        subscription_id=subscription_id,
        old_end=old_end.isoformat() if old_end else None,
        new_end=new_end.isoformat(),
        reason=reason,
        **extra_context,
    )


def log_transition_ignored(
    subscription_id: Optional[str],
    status: Any,
    event_name: str,
    reason: str,
    **extra_context: Any,
) -> None:
    """Log an event that left the record unchanged."""
    logger.info(
        "subscription_transition_ignored",
        subscription_id=subscription_id,
        status=str(getattr(status, "value", status)),
        event_name=event_name,
        reason=reason,
        **extra_context,
    )
