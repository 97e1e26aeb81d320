"""
Pytest fixtures for provider adapter tests.

This module provides fixtures for testing the Stripe and Paystack
adapters, including mock Stripe API objects, a mocked requests session
for Paystack, and signed webhook payload builders.

Sections:
    - Mock Stripe Client Fixtures
    - Test Data Fixtures
    - Paystack Fixtures
"""

import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests

from payments.adapters import PaystackAdapter, StripeAdapter
from payments.adapters.base import CheckoutRequest, SettlementMetadata
from payments.ledger import Money
from payments.state_machines import TransactionKind

STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
PAYSTACK_SECRET_KEY = "sk_test_paystack"


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with to_dict support."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@pytest.fixture(autouse=True)
def mock_requests_client():
    """Keep the Stripe SDK from building a real HTTP client."""
    with patch("stripe.RequestsClient") as client:
        yield client


@pytest.fixture
def stripe_adapter():
    return StripeAdapter(
        secret_key="sk_test_123",
        webhook_secret=STRIPE_WEBHOOK_SECRET,
        timeout=5,
    )


@pytest.fixture
def mock_checkout_session():
    """Create a mock Checkout Session response."""

    def _create(
        id: str = "cs_test_123",
        payment_status: str = "unpaid",
        status: str = "open",
        amount_total: int = 15000,
        currency: str = "usd",
        payment_intent: str | None = None,
        subscription: str | None = None,
        customer: str | None = None,
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "checkout.session",
                "url": f"https://checkout.stripe.com/c/pay/{id}",
                "payment_status": payment_status,
                "status": status,
                "amount_total": amount_total,
                "currency": currency,
                "payment_intent": payment_intent,
                "subscription": subscription,
                "customer": customer,
                "metadata": metadata or {},
            }
        )

    return _create


@pytest.fixture
def stripe_signature():
    """Build a Stripe-Signature header for a payload."""

    def _sign(payload: bytes, secret: str = STRIPE_WEBHOOK_SECRET, timestamp: int | None = None) -> str:
        timestamp = timestamp or int(time.time())
        signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
        digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return _sign


# =============================================================================
# Test Data Fixtures
# =============================================================================


@pytest.fixture
def checkout_request():
    """Build a CheckoutRequest for a 150.00 item purchase."""

    def _create(
        kind: str = TransactionKind.ITEM,
        minor: int = 15000,
        currency: str = "USD",
        customer_id: str | None = None,
        description: str = "",
        **metadata,
    ) -> CheckoutRequest:
        metadata.setdefault("user_id", 7)
        metadata.setdefault("kind", kind)
        return CheckoutRequest(
            user_id=metadata["user_id"],
            email="ada@example.com",
            amount=Money(minor, currency),
            kind=kind,
            success_url="https://shop.example/payment/success",
            cancel_url="https://shop.example/payment/cancel",
            metadata=SettlementMetadata(**metadata),
            description=description,
            customer_id=customer_id,
        )

    return _create


# =============================================================================
# Paystack Fixtures
# =============================================================================


@pytest.fixture
def paystack_session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def paystack_adapter(paystack_session):
    return PaystackAdapter(secret_key=PAYSTACK_SECRET_KEY, timeout=5, session=paystack_session)


@pytest.fixture
def paystack_response():
    """Build a mocked requests.Response."""

    def _create(data: Any = None, status_code: int = 200, status: bool = True, message: str = "OK"):
        response = MagicMock(spec=requests.Response)
        response.status_code = status_code
        response.ok = status_code < 400
        response.json.return_value = {"status": status, "message": message, "data": data or {}}
        return response

    return _create


@pytest.fixture
def paystack_signature():
    def _sign(payload: bytes, secret: str = PAYSTACK_SECRET_KEY) -> str:
        return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()

    return _sign
