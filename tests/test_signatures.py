"""
Unit tests for webhook signature verification.
"""
import pytest

from payment_aggregator.core.signatures import (
    SignatureScheme,
    compute_hmac_sha256,
    verify_hmac_sha256,
    verify_signature,
    verify_stripe_signature,
)

from tests.conftest import STRIPE_SECRET, sign_hmac, sign_stripe

BODY = b'{"transactionId":"bf_1","amount":10}'


class TestHmacSignature:
    """Test hex HMAC-SHA256 verification."""

    @pytest.mark.unit
    def test_valid_signature(self) -> None:
        signature = sign_hmac(BODY, "secret")
        assert compute_hmac_sha256(BODY, "secret") == signature
        assert verify_hmac_sha256(BODY, signature, "secret")

    @pytest.mark.unit
    def test_uppercase_hex_accepted(self) -> None:
        assert verify_hmac_sha256(BODY, sign_hmac(BODY, "secret").upper(), "secret")

    @pytest.mark.unit
    def test_wrong_secret_rejected(self) -> None:
        assert not verify_hmac_sha256(BODY, sign_hmac(BODY, "other"), "secret")

    @pytest.mark.unit
    def test_tampered_body_rejected(self) -> None:
        signature = sign_hmac(BODY, "secret")
        assert not verify_hmac_sha256(BODY + b" ", signature, "secret")

    @pytest.mark.unit
    @pytest.mark.parametrize("signature", ["not-hex", "abc", "zz" * 32])
    def test_malformed_signature_rejected(self, signature: str) -> None:
        assert not verify_hmac_sha256(BODY, signature, "secret")


class TestStripeSignature:
    """Test Stripe timestamped signature verification."""

    @pytest.mark.unit
    def test_valid_signature(self) -> None:
        assert verify_stripe_signature(BODY, sign_stripe(BODY), STRIPE_SECRET)

    @pytest.mark.unit
    def test_old_timestamp_still_accepted(self) -> None:
        """No replay window is enforced."""
        header = sign_stripe(BODY, timestamp=1_000_000)
        assert verify_stripe_signature(BODY, header, STRIPE_SECRET)

    @pytest.mark.unit
    def test_wrong_secret_rejected(self) -> None:
        assert not verify_stripe_signature(BODY, sign_stripe(BODY, "whsec_other"), STRIPE_SECRET)

    @pytest.mark.unit
    def test_garbage_header_rejected(self) -> None:
        assert not verify_stripe_signature(BODY, "garbage", STRIPE_SECRET)

    @pytest.mark.unit
    def test_non_utf8_body_rejected(self) -> None:
        assert not verify_stripe_signature(b"\xff\xfe", "t=1,v1=00", STRIPE_SECRET)


class TestVerifySignature:
    """Test scheme dispatch and the bypass rule."""

    @pytest.mark.unit
    @pytest.mark.parametrize("scheme", list(SignatureScheme))
    def test_empty_secret_bypasses(self, scheme: SignatureScheme) -> None:
        assert verify_signature(scheme, BODY, None, "")
        assert verify_signature(scheme, BODY, "anything", "")

    @pytest.mark.unit
    @pytest.mark.parametrize("scheme", list(SignatureScheme))
    @pytest.mark.parametrize("signature", [None, ""])
    def test_missing_signature_rejected(self, scheme: SignatureScheme, signature) -> None:
        assert not verify_signature(scheme, BODY, signature, "secret")

    @pytest.mark.unit
    def test_dispatches_by_scheme(self) -> None:
        hmac_signature = sign_hmac(BODY, STRIPE_SECRET)
        assert verify_signature(
            SignatureScheme.HMAC_SHA256_HEX, BODY, hmac_signature, STRIPE_SECRET
        )
        assert not verify_signature(
            SignatureScheme.STRIPE_TIMESTAMPED, BODY, hmac_signature, STRIPE_SECRET
        )
        assert verify_signature(
            SignatureScheme.STRIPE_TIMESTAMPED, BODY, sign_stripe(BODY), STRIPE_SECRET
        )
