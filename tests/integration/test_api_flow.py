"""End-to-end tests of the HTTP API.

The app runs with the in-memory store, a stubbed payment provider and a
token verifier that accepts "token-<uid>" bearer tokens.
"""

import hashlib
import hmac
import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from subscription_backend.config import Config
from subscription_backend.main import create_app
from subscription_backend.models import PlanDefinition
from subscription_backend.repositories.subscription_store import InMemorySubscriptionStore
from subscription_backend.services.auth import FirebaseAuthenticator
from subscription_backend.services.container import build_services
from subscription_backend.utils.clock import Clock

KEY_SECRET = "key_secret_test"
WEBHOOK_SECRET = "whsec_test"
NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)

ENV = {
    "RAZORPAY_KEY_ID": "rzp_test_key",
    "RAZORPAY_KEY_SECRET": KEY_SECRET,
    "RAZORPAY_WEBHOOK_SECRET": WEBHOOK_SECRET,
    "RAZORPAY_PLAN_ID": "plan_test",
    "STORE_BACKEND": "memory",
}


def _sign(message: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _verify_id_token(token, app=None):
    if not token.startswith("token-"):
        raise ValueError("Invalid token")
    uid = token[len("token-"):]
    return {"uid": uid, "email": f"{uid}@example.com"}


def _auth(uid="u1"):
    return {"Authorization": f"Bearer token-{uid}"}


@pytest.fixture
def store():
    return InMemorySubscriptionStore()


@pytest.fixture
def clock():
    return Clock(fixed_now=NOW)


@pytest.fixture
def provider():
    provider = MagicMock()
    provider.plan = PlanDefinition()
    provider.create_subscription.return_value = {"id": "sub_1", "status": "created"}
    return provider


@pytest.fixture
def client(tmp_path, store, clock, provider):
    """Create test client."""
    plan_path = tmp_path / "plan.yaml"
    plan_path.write_text("plan:\n  name: pro\n  amount: 40000\n", encoding="utf-8")
    config = Config(environ=dict(ENV), plan_path=str(plan_path))
    services = build_services(
        config,
        store=store,
        provider=provider,
        authenticator=FirebaseAuthenticator(verify_id_token=_verify_id_token),
        clock=clock,
    )
    with TestClient(create_app(config=config, services=services)) as client:
        yield client


def _post_webhook(client, event, subscription_id="sub_1", error_description=None, secret=WEBHOOK_SECRET):
    payload = {
        "entity": "event",
        "event": event,
        "payload": {"subscription": {"entity": {"id": subscription_id}}},
    }
    if error_description:
        payload["payload"]["payment"] = {"entity": {"error_description": error_description}}
    body = json.dumps(payload).encode("utf-8")
    return client.post(
        "/webhook",
        content=body,
        headers={"Content-Type": "application/json", "X-Razorpay-Signature": _sign(body, secret)},
    )


def _verify(client, payment_id="pay_1", subscription_id="sub_1", uid="u1"):
    signature = _sign(f"{payment_id}|{subscription_id}".encode("utf-8"), KEY_SECRET)
    return client.post(
        "/verify-payment",
        json={"paymentId": payment_id, "subscriptionId": subscription_id, "signature": signature},
        headers=_auth(uid),
    )


def _is_active(client, uid="u1"):
    response = client.get("/check-subscription", headers=_auth(uid))
    assert response.status_code == 200
    return response.json()["isActive"]


class TestServiceEndpoints:
    """Test root and health endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["store"] == "InMemorySubscriptionStore"

    def test_request_id_header(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestAuthentication:
    """Test bearer token handling."""

    def test_missing_token(self, client):
        response = client.get("/check-subscription")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_invalid_token(self, client):
        response = client.post("/create-subscription", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}


class TestSubscriptionLifecycle:
    """Test the full create, verify, webhook flow."""

    def test_full_lifecycle(self, client, store, clock):
        response = client.post("/create-subscription", headers=_auth())
        assert response.status_code == 200
        assert response.json() == {"subscriptionId": "sub_1", "plan": "pro", "amount": 40000}
        assert store.get_by_owner("u1") is None

        response = _verify(client)
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Subscription activated!"}
        assert _is_active(client) is True
        assert store.get_by_owner("u1").email == "u1@example.com"

        response = _post_webhook(client, "subscription.halted", error_description="Card declined")
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert _is_active(client) is False
        assert store.get_by_owner("u1").failure_reason == "Card declined"

        assert _post_webhook(client, "subscription.charged").status_code == 200
        assert _is_active(client) is True
        assert store.get_by_owner("u1").failure_reason is None

        assert _post_webhook(client, "subscription.cancelled").status_code == 200
        assert _is_active(client) is False

        # Replays after cancellation are acknowledged but change nothing
        assert _post_webhook(client, "subscription.charged").status_code == 200
        assert store.get_by_owner("u1").status.value == "cancelled"

    def test_create_rejected_when_active(self, client, provider):
        _verify(client)
        response = client.post("/create-subscription", headers=_auth())
        assert response.status_code == 400
        assert response.json() == {"error": "Active subscription exists"}

    def test_expired_period_inactive(self, client, clock):
        _verify(client)
        clock.advance(days=366)
        assert _is_active(client) is False

    def test_provider_failure(self, client, provider):
        from subscription_backend.services.payment_provider import PaymentProviderError

        provider.create_subscription.side_effect = PaymentProviderError("Failed to create subscription")
        response = client.post("/create-subscription", headers=_auth())
        assert response.status_code == 500
        assert "error" in response.json()


class TestVerifyPayment:
    """Test checkout verification errors."""

    def test_invalid_signature(self, client, store):
        response = client.post(
            "/verify-payment",
            json={"paymentId": "pay_1", "subscriptionId": "sub_1", "signature": "0" * 64},
            headers=_auth(),
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid signature"}
        assert store.get_by_owner("u1") is None

    def test_razorpay_field_names(self, client):
        signature = _sign(b"pay_1|sub_1", KEY_SECRET)
        response = client.post(
            "/verify-payment",
            json={
                "razorpay_payment_id": "pay_1",
                "razorpay_subscription_id": "sub_1",
                "razorpay_signature": signature,
            },
            headers=_auth(),
        )
        assert response.status_code == 200

    def test_missing_fields(self, client):
        response = client.post("/verify-payment", json={"paymentId": "pay_1"}, headers=_auth())
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request"}

    def test_subscription_of_another_owner(self, client):
        _verify(client, uid="u1")
        response = _verify(client, payment_id="pay_2", uid="u2")
        assert response.status_code == 400
        assert _is_active(client, uid="u2") is False


class TestWebhook:
    """Test webhook verification and routing."""

    def test_invalid_signature(self, client, store):
        _verify(client)
        response = _post_webhook(client, "subscription.cancelled", secret="wrong")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid signature"}
        assert store.get_by_owner("u1").status.value == "active"

    def test_missing_signature(self, client):
        response = client.post("/webhook", content=b'{"event":"subscription.charged"}')
        assert response.status_code == 400

    def test_unknown_subscription(self, client, store):
        response = _post_webhook(client, "subscription.charged", subscription_id="sub_missing")
        assert response.status_code == 404
        assert response.json() == {"error": "not found"}
        assert store.count() == 0

    def test_unknown_event_acknowledged(self, client, store):
        _verify(client)
        response = _post_webhook(client, "payment.captured")
        assert response.status_code == 200
        assert store.get_by_owner("u1").status.value == "active"

    def test_signed_garbage_rejected(self, client):
        body = b"not json"
        response = client.post(
            "/webhook", content=body, headers={"X-Razorpay-Signature": _sign(body, WEBHOOK_SECRET)}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid payload"}

    def test_missing_subscription_entity(self, client, store):
        response = _post_webhook(client, "subscription.halted", subscription_id=None)
        assert response.status_code == 404
        assert response.json() == {"error": "not found"}
        assert store.count() == 0

    @pytest.mark.parametrize(
        "event,status",
        [
            ("subscription.charged", "active"),
            ("subscription.halted", "payment_failed"),
            ("subscription.cancelled", "cancelled"),
        ],
    )
    def test_applied_events_acknowledged(self, client, store, event, status):
        _verify(client)
        response = _post_webhook(client, event, error_description="Card declined")
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert store.get_by_owner("u1").status.value == status

    def test_replays_acknowledged(self, client, store):
        _verify(client)
        for _ in range(2):
            response = _post_webhook(client, "subscription.halted", error_description="Card declined")
            assert response.status_code == 200
        for _ in range(2):
            response = _post_webhook(client, "subscription.cancelled")
            assert response.status_code == 200
        response = _post_webhook(client, "subscription.charged")
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert store.get_by_owner("u1").status.value == "cancelled"

    def test_event_id_header_accepted(self, client):
        _verify(client)
        payload = {
            "event": "subscription.charged",
            "payload": {"subscription": {"entity": {"id": "sub_1"}}},
        }
        body = json.dumps(payload).encode("utf-8")
        response = client.post(
            "/webhook",
            content=body,
            headers={
                "X-Razorpay-Signature": _sign(body, WEBHOOK_SECRET),
                "X-Razorpay-Event-Id": "evt_1",
            },
        )
        assert response.status_code == 200
