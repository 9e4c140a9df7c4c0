"""Tests for webhook and checkout signature verification."""

import hashlib
import hmac

import pytest

from subscription_backend.services.signature import (
    compute_signature,
    verify_payment_signature,
    verify_webhook_signature,
)

WEBHOOK_SECRET = "whsec_test"
KEY_SECRET = "key_secret_test"


def _sign(message: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


@pytest.fixture
def body():
    return b'{"event":"subscription.charged","payload":{"subscription":{"entity":{"id":"sub_1"}}}}'


class TestComputeSignature:
    """Test the HMAC digest itself."""

    def test_matches_hmac_sha256_hex(self, body):
        assert compute_signature(body, WEBHOOK_SECRET) == _sign(body, WEBHOOK_SECRET)

    def test_digest_is_lowercase_hex(self, body):
        digest = compute_signature(body, WEBHOOK_SECRET)
        assert len(digest) == 64
        assert digest == digest.lower()


class TestVerifyWebhookSignature:
    """Test verification over the raw webhook body."""

    def test_valid_signature(self, body):
        assert verify_webhook_signature(body, _sign(body, WEBHOOK_SECRET), WEBHOOK_SECRET) is True

    def test_single_byte_change_fails(self, body):
        signature = _sign(body, WEBHOOK_SECRET)
        tampered = body.replace(b"sub_1", b"sub_2")
        assert verify_webhook_signature(tampered, signature, WEBHOOK_SECRET) is False

    def test_reserialized_body_fails(self):
        """Whitespace differences change the digest."""
        original = b'{"event": "subscription.charged"}'
        compact = b'{"event":"subscription.charged"}'
        signature = _sign(original, WEBHOOK_SECRET)
        assert verify_webhook_signature(compact, signature, WEBHOOK_SECRET) is False

    def test_wrong_secret_fails(self, body):
        signature = _sign(body, "other_secret")
        assert verify_webhook_signature(body, signature, WEBHOOK_SECRET) is False

    @pytest.mark.parametrize("signature", [None, "", "not-hex", "0" * 64])
    def test_missing_or_bogus_signature_fails(self, body, signature):
        assert verify_webhook_signature(body, signature, WEBHOOK_SECRET) is False

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_secret_fails(self, body, secret):
        assert verify_webhook_signature(body, _sign(body, WEBHOOK_SECRET), secret) is False

    def test_non_ascii_signature_fails(self, body):
        assert verify_webhook_signature(body, "é" * 64, WEBHOOK_SECRET) is False

    def test_str_body_rejected(self, body):
        signature = _sign(body, WEBHOOK_SECRET)
        assert verify_webhook_signature(body.decode("utf-8"), signature, WEBHOOK_SECRET) is False

    def test_empty_body_with_matching_signature(self):
        assert verify_webhook_signature(b"", _sign(b"", WEBHOOK_SECRET), WEBHOOK_SECRET) is True


class TestVerifyPaymentSignature:
    """Test the checkout signature over "payment_id|subscription_id"."""

    def test_valid_signature(self):
        signature = _sign(b"pay_1|sub_1", KEY_SECRET)
        assert verify_payment_signature("pay_1", "sub_1", signature, KEY_SECRET) is True

    def test_swapped_ids_fail(self):
        signature = _sign(b"pay_1|sub_1", KEY_SECRET)
        assert verify_payment_signature("sub_1", "pay_1", signature, KEY_SECRET) is False

    def test_other_subscription_fails(self):
        signature = _sign(b"pay_1|sub_1", KEY_SECRET)
        assert verify_payment_signature("pay_1", "sub_2", signature, KEY_SECRET) is False

    def test_webhook_secret_does_not_verify_checkout(self):
        signature = _sign(b"pay_1|sub_1", WEBHOOK_SECRET)
        assert verify_payment_signature("pay_1", "sub_1", signature, KEY_SECRET) is False

    @pytest.mark.parametrize(
        "payment_id,subscription_id",
        [(None, "sub_1"), ("pay_1", None), ("", "sub_1"), ("pay_1", "")],
    )
    def test_missing_ids_fail(self, payment_id, subscription_id):
        signature = _sign(b"pay_1|sub_1", KEY_SECRET)
        assert (
            verify_payment_signature(payment_id, subscription_id, signature, KEY_SECRET) is False
        )
