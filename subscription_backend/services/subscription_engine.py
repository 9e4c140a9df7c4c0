"""Subscription status state machine.

Responsibilities:
- Activate an owner's record after a verified payment
- Apply provider webhook events (charged, halted, cancelled)
- Keep transitions idempotent under replayed deliveries
- Log every status change

Transitions:
    none/any        --activate-->  active
    active          --charged-->   active          (payment time refreshed)
    payment_failed  --charged-->   active          (failure reason cleared)
    active          --halted-->    payment_failed  (failure reason recorded)
    active/failed   --cancelled--> cancelled       (terminal for events)
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from subscription_backend.logging_config import get_logger
from subscription_backend.models.events import EventKind, WebhookEvent
from subscription_backend.models.subscription import SubscriptionRecord, SubscriptionStatus
from subscription_backend.repositories.subscription_store import (
    SubscriptionNotFoundError,
    SubscriptionStore,
)
from subscription_backend.state_logger import (
    log_payment_recorded,
    log_period_change,
    log_subscription_state_change,
    log_transition_ignored,
)
from subscription_backend.utils.clock import Clock

logger = get_logger(__name__)

DEFAULT_PAID_PERIOD = timedelta(days=365)
UNKNOWN_FAILURE_REASON = "Unknown"


class SubscriptionError(Exception):
    """Base exception for subscription errors."""

    pass


class SubscriptionAlreadyActiveError(SubscriptionError):
    """Raised when an owner already holds an active subscription."""

    pass


class TransitionOutcome(str, Enum):
    """Result of applying a webhook event."""

    APPLIED = "applied"  # Record written
    IGNORED = "ignored"  # Record left unchanged (replay, terminal state, unknown kind)
    NOT_FOUND = "not_found"  # No record holds the event's subscription id


class TransitionResult(BaseModel):
    """Outcome of SubscriptionEngine.apply_event."""

    outcome: TransitionOutcome
    event_kind: EventKind
    subscription_id: Optional[str] = None
    old_status: Optional[SubscriptionStatus] = None
    new_status: Optional[SubscriptionStatus] = None
    record: Optional[SubscriptionRecord] = None
    reason: Optional[str] = Field(None, description="Why the event was ignored")


class SubscriptionEngine:
    """Applies activations and provider events to subscription records.

    Every change is a single atomic read-modify-write on the store, so the
    decision is always taken against the record's latest state.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        clock: Optional[Clock] = None,
        paid_period: timedelta = DEFAULT_PAID_PERIOD,
    ):
        """Initialize subscription engine.

        Args:
            store: Subscription storage
            clock: Time source (defaults to the system clock)
            paid_period: Length of the period granted by a verified payment
        """
        self.store = store
        self.clock = clock or Clock()
        self.paid_period = paid_period

        logger.info("subscription_engine_initialized", paid_period_days=paid_period.days)

    def activate(
        self,
        owner_id: str,
        subscription_id: str,
        email: Optional[str] = None,
        period: Optional[timedelta] = None,
    ) -> SubscriptionRecord:
        """Mark the owner's subscription active after a verified payment.

        Creates the record when absent. A cancelled or failed record starts a
        fresh paid period; an active record under the same subscription id is
        refreshed.

        Args:
            owner_id: Authenticated owner
            subscription_id: Provider subscription id from checkout
            email: Owner email, stored when provided
            period: Paid period to grant (defaults to the engine's paid_period)

        Returns:
            The active record

        Raises:
            SubscriptionAlreadyActiveError: If the owner is active under another subscription id
            DuplicateSubscriptionError: If the subscription id belongs to another owner
        """
        now = self.clock.now()
        if period is None:
            period = self.paid_period
        previous: dict = {}

        def activation(current: Optional[SubscriptionRecord]) -> dict:
            previous["record"] = current
            if (
                current is not None
                and current.status == SubscriptionStatus.ACTIVE
                and current.subscription_id not in (None, subscription_id)
            ):
                raise SubscriptionAlreadyActiveError(
                    f"Owner {owner_id} already has an active subscription"
                )

            fields = {
                "subscription_id": subscription_id,
                "status": SubscriptionStatus.ACTIVE,
                "subscription_start": now,
                "subscription_end": now + period,
                "last_payment_at": now,
                "failure_reason": None,
                "cancelled_at": None,
                "updated_at": now,
            }
            if email:
                fields["email"] = email
            if current is None or current.created_at is None:
                fields["created_at"] = now
            return fields

        record = self.store.apply_by_owner(owner_id, activation)

        old_record: Optional[SubscriptionRecord] = previous.get("record")
        old_status = old_record.status if old_record else SubscriptionStatus.NONE
        log_subscription_state_change(
            owner_id=owner_id,
            subscription_id=subscription_id,
            old_status=old_status,
            new_status=record.status,
            reason="payment_verified",
        )
        log_period_change(
            owner_id=owner_id,
            subscription_id=subscription_id,
            old_end=old_record.subscription_end if old_record else None,
            new_end=record.subscription_end,
            reason="payment_verified",
        )
        return record

    def _event_changes(
        self, record: SubscriptionRecord, event: WebhookEvent, now: datetime
    ) -> tuple[Optional[dict], Optional[str]]:
        """Decide the fields an event changes on ``record``.

        Returns:
            (fields, None) to apply, or (None, reason) to ignore
        """
        status = record.status

        if status == SubscriptionStatus.CANCELLED:
            return None, "subscription_cancelled"
        if status == SubscriptionStatus.NONE:
            return None, "subscription_not_activated"

        if event.kind == EventKind.CHARGED:
            fields = {
                "status": SubscriptionStatus.ACTIVE,
                "last_payment_at": now,
                "updated_at": now,
            }
            if status == SubscriptionStatus.PAYMENT_FAILED:
                fields["failure_reason"] = None
            return fields, None

        if event.kind == EventKind.HALTED:
            if status != SubscriptionStatus.ACTIVE:
                return None, "already_payment_failed"
            return {
                "status": SubscriptionStatus.PAYMENT_FAILED,
                "failure_reason": event.payment_error_description or UNKNOWN_FAILURE_REASON,
                "updated_at": now,
            }, None

        if event.kind == EventKind.CANCELLED:
            return {
                "status": SubscriptionStatus.CANCELLED,
                "cancelled_at": now,
                "updated_at": now,
            }, None

        return None, "unknown_event_kind"

    def apply_event(self, event: WebhookEvent) -> TransitionResult:
        """Apply a normalized webhook event to the matching record.

        Unknown kinds and events without a subscription id never touch the
        store. A subscription id no record holds yields NOT_FOUND; records are
        never created here.

        Args:
            event: Normalized, signature-verified event

        Returns:
            TransitionResult describing what happened
        """
        event_name = event.raw_kind or event.kind.value

        if event.kind == EventKind.UNKNOWN:
            log_transition_ignored(
                subscription_id=event.subscription_id,
                status=None,
                event_name=event_name,
                reason="unknown_event_kind",
                event_id=event.event_id,
            )
            return TransitionResult(
                outcome=TransitionOutcome.IGNORED,
                event_kind=event.kind,
                subscription_id=event.subscription_id,
                reason="unknown_event_kind",
            )

        if not event.subscription_id:
            logger.warning("webhook_event_missing_subscription_id", event_name=event_name)
            return TransitionResult(
                outcome=TransitionOutcome.NOT_FOUND,
                event_kind=event.kind,
                reason="missing_subscription_id",
            )

        now = self.clock.now()
        decision: dict = {}

        def transition(current: SubscriptionRecord) -> Optional[dict]:
            fields, reason = self._event_changes(current, event, now)
            decision["old"] = current
            decision["reason"] = reason
            return fields

        try:
            record = self.store.apply_by_subscription_id(event.subscription_id, transition)
        except SubscriptionNotFoundError:
            logger.warning(
                "webhook_subscription_not_found",
                subscription_id=event.subscription_id,
                event_name=event_name,
            )
            return TransitionResult(
                outcome=TransitionOutcome.NOT_FOUND,
                event_kind=event.kind,
                subscription_id=event.subscription_id,
                reason="subscription_not_found",
            )

        old_record: SubscriptionRecord = decision["old"]
        reason = decision["reason"]

        if reason is not None:
            log_transition_ignored(
                subscription_id=event.subscription_id,
                status=old_record.status,
                event_name=event_name,
                reason=reason,
                event_id=event.event_id,
            )
            return TransitionResult(
                outcome=TransitionOutcome.IGNORED,
                event_kind=event.kind,
                subscription_id=event.subscription_id,
                old_status=old_record.status,
                new_status=record.status,
                record=record,
                reason=reason,
            )

        if old_record.status != record.status:
            log_subscription_state_change(
                owner_id=record.owner_id,
                subscription_id=record.subscription_id,
                old_status=old_record.status,
                new_status=record.status,
                reason=event_name,
                failure_reason=record.failure_reason,
                event_id=event.event_id,
            )
        if event.kind == EventKind.CHARGED:
            log_payment_recorded(
                owner_id=record.owner_id,
                subscription_id=record.subscription_id,
                paid_at=now,
                reason=event_name,
            )

        return TransitionResult(
            outcome=TransitionOutcome.APPLIED,
            event_kind=event.kind,
            subscription_id=event.subscription_id,
            old_status=old_record.status,
            new_status=record.status,
            record=record,
        )
