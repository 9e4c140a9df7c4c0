"""Tests for state change logging.

Checks that the transition engine reports every status change, payment and
ignored event through the state logger.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
import structlog
import structlog.testing

from subscription_backend import state_logger
from subscription_backend.models.events import EventKind, WebhookEvent
from subscription_backend.models.subscription import SubscriptionStatus
from subscription_backend.repositories.subscription_store import InMemorySubscriptionStore
from subscription_backend.services import subscription_engine
from subscription_backend.services.event_normalizer import normalize_event
from subscription_backend.services.subscription_engine import SubscriptionEngine, TransitionOutcome
from subscription_backend.utils.clock import Clock

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def log():
    """Capture calls on the state logger's structlog logger."""
    with patch.object(state_logger, "logger") as logger:
        yield logger


@pytest.fixture
def engine():
    return SubscriptionEngine(InMemorySubscriptionStore(), clock=Clock(fixed_now=NOW))


def _events(log, name):
    return [c for c in log.info.call_args_list if c.args and c.args[0] == name]


class TestStateLoggerFunctions:
    """Test the logging helpers directly."""

    def test_state_change_uses_enum_values(self, log):
        state_logger.log_subscription_state_change(
            owner_id="u1",
            subscription_id="sub_1",
            old_status=SubscriptionStatus.ACTIVE,
            new_status=SubscriptionStatus.PAYMENT_FAILED,
            reason="subscription.halted",
            failure_reason="Card declined",
        )
        kwargs = log.info.call_args.kwargs
        assert log.info.call_args.args == ("subscription_state_changed",)
        assert kwargs["old_status"] == "active"
        assert kwargs["new_status"] == "payment_failed"
        assert kwargs["failure_reason"] == "Card declined"

    def test_period_change_isoformat(self, log):
        state_logger.log_period_change(
            owner_id="u1", subscription_id="sub_1", old_end=None, new_end=NOW, reason="payment_verified"
        )
        kwargs = log.info.call_args.kwargs
        assert kwargs["old_end"] is None
        assert kwargs["new_end"] == NOW.isoformat()

    def test_transition_ignored(self, log):
        state_logger.log_transition_ignored(
            subscription_id="sub_1", status=None, event_name="payment.captured", reason="unknown_event_kind"
        )
        assert log.info.call_args.kwargs["status"] == "None"


class TestEngineLogging:
    """Test logging emitted by the transition engine."""

    def test_activation_logged(self, engine, log):
        engine.activate("u1", "sub_1")
        changes = _events(log, "subscription_state_changed")
        assert len(changes) == 1
        assert changes[0].kwargs["old_status"] == "none"
        assert changes[0].kwargs["new_status"] == "active"
        assert len(_events(log, "subscription_period_changed")) == 1

    def test_halted_logged(self, engine, log):
        engine.activate("u1", "sub_1")
        log.reset_mock()
        engine.apply_event(
            WebhookEvent(kind=EventKind.HALTED, raw_kind="subscription.halted", subscription_id="sub_1")
        )
        changes = _events(log, "subscription_state_changed")
        assert len(changes) == 1
        assert changes[0].kwargs["new_status"] == "payment_failed"
        assert changes[0].kwargs["reason"] == "subscription.halted"

    def test_charged_on_active_logs_payment_only(self, engine, log):
        engine.activate("u1", "sub_1")
        log.reset_mock()
        engine.apply_event(
            WebhookEvent(kind=EventKind.CHARGED, raw_kind="subscription.charged", subscription_id="sub_1")
        )
        assert _events(log, "subscription_state_changed") == []
        assert len(_events(log, "subscription_payment_recorded")) == 1

    def test_replay_logged_as_ignored(self, engine, log):
        engine.activate("u1", "sub_1")
        event = WebhookEvent(
            kind=EventKind.CANCELLED, raw_kind="subscription.cancelled", subscription_id="sub_1"
        )
        engine.apply_event(event)
        log.reset_mock()
        engine.apply_event(event)
        ignored = _events(log, "subscription_transition_ignored")
        assert len(ignored) == 1
        assert ignored[0].kwargs["reason"] == "subscription_cancelled"


@pytest.fixture
def captured():
    """Run the state and engine loggers through real structlog and capture the events."""
    with structlog.testing.capture_logs() as logs:
        with patch.object(
            state_logger, "logger", structlog.get_logger("subscription_backend.state_logger")
        ), patch.object(
            subscription_engine, "logger", structlog.get_logger("subscription_backend.engine")
        ):
            yield logs


def _captured(logs, name):
    return [entry for entry in logs if entry["event"] == name]


class TestRealLogger:
    """Test logging calls against structlog itself rather than a mock."""

    def test_transition_ignored(self, captured):
        state_logger.log_transition_ignored(
            subscription_id="sub_1",
            status=SubscriptionStatus.CANCELLED,
            event_name="subscription.charged",
            reason="subscription_cancelled",
        )
        entries = _captured(captured, "subscription_transition_ignored")
        assert len(entries) == 1
        assert entries[0]["event_name"] == "subscription.charged"
        assert entries[0]["status"] == "cancelled"

    def test_unknown_event_kind(self, engine, captured):
        result = engine.apply_event(normalize_event(b'{"event":"payment.captured"}'))
        assert result.outcome == TransitionOutcome.IGNORED
        entries = _captured(captured, "subscription_transition_ignored")
        assert entries[0]["event_name"] == "payment.captured"

    def test_unknown_subscription(self, engine, captured):
        result = engine.apply_event(
            WebhookEvent(kind=EventKind.CHARGED, raw_kind="subscription.charged", subscription_id="sub_x")
        )
        assert result.outcome == TransitionOutcome.NOT_FOUND
        assert len(_captured(captured, "webhook_subscription_not_found")) == 1

    def test_missing_subscription_id(self, engine, captured):
        result = engine.apply_event(
            WebhookEvent(kind=EventKind.HALTED, raw_kind="subscription.halted")
        )
        assert result.outcome == TransitionOutcome.NOT_FOUND
        assert len(_captured(captured, "webhook_event_missing_subscription_id")) == 1

    def test_full_event_sequence(self, engine, captured):
        engine.activate("u1", "sub_1")
        for name in ("subscription.halted", "subscription.charged", "subscription.cancelled"):
            result = engine.apply_event(
                WebhookEvent(kind=EventKind(name), raw_kind=name, subscription_id="sub_1")
            )
            assert result.outcome == TransitionOutcome.APPLIED

        replay = engine.apply_event(
            WebhookEvent(kind=EventKind.CHARGED, raw_kind="subscription.charged", subscription_id="sub_1")
        )
        assert replay.outcome == TransitionOutcome.IGNORED

        statuses = [e["new_status"] for e in _captured(captured, "subscription_state_changed")]
        assert statuses == ["active", "payment_failed", "active", "cancelled"]
        assert len(_captured(captured, "subscription_payment_recorded")) == 1
