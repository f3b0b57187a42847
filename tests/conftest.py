"""
Pytest configuration and fixtures.
"""
import hashlib
import hmac
import json
import random
import time
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from payment_aggregator.api.main import create_app
from payment_aggregator.config import Settings
from payment_aggregator.context import AggregatorContext, build_context

STRIPE_SECRET = "whsec_test_fake_secret"
BLUEFIN_SECRET = "bluefin_test_secret"
WORLDPAY_SECRET = "worldpay_test_secret"
GRAVITY_SECRET = "gravity_test_secret"
COVETRUS_SECRET = "covetrus_test_secret"

RECEIVED_AT = datetime(2025, 1, 6, 15, 30, tzinfo=timezone.utc)


def sign_hmac(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 signature as sent by the HMAC processors."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def sign_stripe(body: bytes, secret: str = STRIPE_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header value for a body."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + body
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def encode(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload).encode("utf-8")


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with every webhook secret configured."""
    return Settings(
        _env_file=None,
        stripe_webhook_secret=STRIPE_SECRET,
        bluefin_webhook_secret=BLUEFIN_SECRET,
        worldpay_webhook_secret=WORLDPAY_SECRET,
        gravity_webhook_secret=GRAVITY_SECRET,
        covetrus_webhook_secret=COVETRUS_SECRET,
        stripe_secret_key="",
        app_name="payment-aggregator-test",
        app_env="test",
        log_level="DEBUG",
    )


@pytest.fixture
def unsigned_settings() -> Settings:
    """Settings with no webhook secrets (signature verification bypassed)."""
    return Settings(
        _env_file=None,
        stripe_webhook_secret="",
        bluefin_webhook_secret="",
        worldpay_webhook_secret="",
        gravity_webhook_secret="",
        covetrus_webhook_secret="",
        stripe_secret_key="",
        app_env="test",
    )


@pytest.fixture
def context(test_settings: Settings) -> AggregatorContext:
    """Fully wired aggregator context with a seeded random source."""
    return build_context(test_settings, rng=random.Random(42))


@pytest.fixture
def app(context: AggregatorContext) -> Any:
    return create_app(context=context)


@pytest_asyncio.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, Any]:
    """Create test HTTP client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def stripe_charge_event() -> Dict[str, Any]:
    """Sample Stripe charge.succeeded webhook event."""
    return {
        "id": "evt_test_123",
        "type": "charge.succeeded",
        "data": {
            "object": {
                "id": "ch_test_123",
                "object": "charge",
                "amount": 2500,
                "currency": "usd",
                "status": "succeeded",
                "paid": True,
                "created": 1736170200,
                "customer": "cus_test_123",
            }
        },
    }


@pytest.fixture
def bluefin_payload() -> Dict[str, Any]:
    return {
        "transactionId": "bf_1001",
        "amount": 42.5,
        "currency": "usd",
        "status": "APPROVED",
        "timestamp": "2025-01-06T14:00:00Z",
        "merchantId": "M-100",
    }


@pytest.fixture
def worldpay_payload() -> Dict[str, Any]:
    return {
        "orderCode": "wp_2001",
        "amount": 1999,
        "currencyCode": "GBP",
        "paymentStatus": "AUTHORISED",
        "orderDate": "2025-01-06T13:00:00+00:00",
        "merchantCode": "WP-MERCHANT",
    }


@pytest.fixture
def gravity_payload() -> Dict[str, Any]:
    return {
        "transaction_id": "gr_3001",
        "total": "15.00",
        "currency": "USD",
        "payment_status": "DECLINED",
        "created_at": 1736172000,
        "customer_id": "cust-9",
    }


@pytest.fixture
def covetrus_payload() -> Dict[str, Any]:
    return {
        "paymentId": "cv_4001",
        "paymentAmount": 120,
        "paymentStatus": "completed",
        "paymentDate": "2025-01-06T09:15:00Z",
        "clinicId": "clinic-7",
    }
