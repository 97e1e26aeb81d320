"""
Tests for Stripe adapter.

Tests cover:
- Checkout Session parameters for each purchase kind
- Error translation for each exception type
- Webhook signature verification and event normalization
- Pull verification by session and PaymentIntent id
- Subscription cancellation
"""

import json
import time
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
import stripe

from payments.adapters.base import NotSettled, SettlementEvent, SubscriptionEvent
from payments.exceptions import (
    InvalidSignatureError,
    PaymentValidationError,
    ProviderRequestError,
)
from payments.ledger import Money
from payments.state_machines import (
    SettlementOutcome,
    SubscriptionStatus,
    TransactionKind,
)

from .conftest import MockStripeObject


def _encode(event: dict) -> bytes:
    return json.dumps(event).encode("utf-8")


# =============================================================================
# Checkout Session Tests
# =============================================================================


class TestCreateCheckoutSession:
    """Tests for StripeAdapter.create_checkout_session."""

    def test_item_purchase_uses_payment_mode(self, stripe_adapter, checkout_request, mock_checkout_session):
        request = checkout_request(item_id=42, quantity=2)

        with patch("stripe.checkout.Session") as mock_session:
            mock_session.create.return_value = mock_checkout_session(id="cs_test_abc")
            session = stripe_adapter.create_checkout_session(request)

        params = mock_session.create.call_args.kwargs
        assert params["mode"] == "payment"
        assert params["line_items"] == [
            {
                "price_data": {
                    "currency": "usd",
                    "product_data": {"name": "Fashion Item Order: #42"},
                    "unit_amount": 15000,
                },
                "quantity": 1,
            }
        ]
        assert params["metadata"]["item_id"] == "42"
        assert params["metadata"]["quantity"] == "2"
        assert params["payment_intent_data"] == {"metadata": params["metadata"]}
        assert params["customer_email"] == "ada@example.com"
        assert params["client_reference_id"] == "7"
        assert session.session_id == "cs_test_abc"
        assert session.redirect_url == "https://checkout.stripe.com/c/pay/cs_test_abc"

    def test_subscription_uses_recurring_price(self, stripe_adapter, checkout_request, mock_checkout_session):
        request = checkout_request(kind=TransactionKind.SUBSCRIPTION, minor=2500, plan_id="style")

        with patch("stripe.checkout.Session") as mock_session:
            mock_session.create.return_value = mock_checkout_session()
            stripe_adapter.create_checkout_session(request)

        params = mock_session.create.call_args.kwargs
        assert params["mode"] == "subscription"
        assert params["line_items"][0]["price_data"]["recurring"] == {"interval": "month"}
        assert params["line_items"][0]["price_data"]["product_data"]["name"] == (
            "Style Connoisseur Subscription"
        )
        assert params["subscription_data"]["metadata"]["plan_id"] == "style"
        assert "payment_intent_data" not in params

    def test_attaches_existing_customer(self, stripe_adapter, checkout_request, mock_checkout_session):
        request = checkout_request(customer_id="cus_123", description="Installment 1 of 3: Wool Suit")

        with patch("stripe.checkout.Session") as mock_session:
            mock_session.create.return_value = mock_checkout_session()
            stripe_adapter.create_checkout_session(request)

        params = mock_session.create.call_args.kwargs
        assert params["customer"] == "cus_123"
        assert "customer_email" not in params
        assert params["line_items"][0]["price_data"]["product_data"]["name"] == (
            "Installment 1 of 3: Wool Suit"
        )

    def test_calls_are_single_attempt(self, stripe_adapter, checkout_request, mock_checkout_session, mock_requests_client):
        with patch("stripe.checkout.Session") as mock_session:
            mock_session.create.return_value = mock_checkout_session()
            stripe_adapter.create_checkout_session(checkout_request())

        assert stripe.max_network_retries == 0
        assert stripe.api_key == "sk_test_123"
        mock_requests_client.assert_called_with(timeout=5)


# =============================================================================
# Error Translation Tests
# =============================================================================


class TestErrorTranslation:
    """Every Stripe failure surfaces as ProviderRequestError."""

    @pytest.mark.parametrize(
        "error,expected_code",
        [
            (
                stripe.CardError("Your card was declined.", None, "card_declined", http_status=402),
                "card_declined",
            ),
            (stripe.InvalidRequestError("No such price", "price", code="resource_missing"), "resource_missing"),
            (stripe.RateLimitError("Too many requests"), "rate_limit"),
            (stripe.APIConnectionError("Network down"), "api_connection_error"),
            (stripe.AuthenticationError("Invalid API Key"), "authentication_error"),
            (stripe.APIError("Server error"), "api_error"),
            (RuntimeError("boom"), "unknown_error"),
        ],
    )
    def test_translates_error(self, stripe_adapter, checkout_request, error, expected_code):
        with patch("stripe.checkout.Session") as mock_session:
            mock_session.create.side_effect = error

            with pytest.raises(ProviderRequestError) as exc_info:
                stripe_adapter.create_checkout_session(checkout_request())

        assert exc_info.value.provider == "stripe"
        assert exc_info.value.provider_code == expected_code
        assert exc_info.value.__cause__ is error

    def test_card_error_keeps_http_status(self, stripe_adapter, checkout_request):
        error = stripe.CardError("Your card was declined.", None, "card_declined", http_status=402)

        with patch("stripe.checkout.Session") as mock_session:
            mock_session.create.side_effect = error
            with pytest.raises(ProviderRequestError) as exc_info:
                stripe_adapter.create_checkout_session(checkout_request())

        assert exc_info.value.status_code == 402


# =============================================================================
# Webhook Verification Tests
# =============================================================================


class TestParseAndVerifyCallback:
    """Signature checks happen before anything else."""

    def test_missing_signature(self, stripe_adapter):
        with pytest.raises(InvalidSignatureError):
            stripe_adapter.parse_and_verify_callback(b"{}", None)

    def test_wrong_secret(self, stripe_adapter, stripe_signature):
        payload = _encode({"id": "evt_1", "type": "checkout.session.completed"})

        with pytest.raises(InvalidSignatureError):
            stripe_adapter.parse_and_verify_callback(payload, stripe_signature(payload, secret="whsec_other"))

    def test_stale_timestamp(self, stripe_adapter, stripe_signature):
        payload = _encode({"id": "evt_1", "type": "checkout.session.completed"})
        header = stripe_signature(payload, timestamp=int(time.time()) - 3600)

        with pytest.raises(InvalidSignatureError):
            stripe_adapter.parse_and_verify_callback(payload, header)

    def test_tampered_body(self, stripe_adapter, stripe_signature):
        payload = _encode({"id": "evt_1", "type": "checkout.session.completed"})
        header = stripe_signature(payload)

        with pytest.raises(InvalidSignatureError):
            stripe_adapter.parse_and_verify_callback(payload.replace(b"evt_1", b"evt_2"), header)

    def test_secret_not_configured(self, stripe_signature):
        from payments.adapters import StripeAdapter

        adapter = StripeAdapter(secret_key="sk_test_123", webhook_secret="")
        payload = b"{}"

        with pytest.raises(InvalidSignatureError):
            adapter.parse_and_verify_callback(payload, stripe_signature(payload))

    def test_authentic_non_json_payload(self, stripe_adapter, stripe_signature):
        payload = b"not json"

        with pytest.raises(PaymentValidationError):
            stripe_adapter.parse_and_verify_callback(payload, stripe_signature(payload))

    def test_valid_completed_session(self, stripe_adapter, stripe_signature):
        payload = _encode(
            {
                "id": "evt_1",
                "type": "checkout.session.completed",
                "data": {
                    "object": {
                        "id": "cs_test_1",
                        "payment_status": "paid",
                        "amount_total": 15000,
                        "currency": "usd",
                        "payment_intent": "pi_1",
                        "customer": "cus_1",
                        "metadata": {"user_id": "7", "kind": "item", "item_id": "42"},
                    }
                },
            }
        )

        event = stripe_adapter.parse_and_verify_callback(payload, stripe_signature(payload))

        assert isinstance(event, SettlementEvent)
        assert event.reference == "pi_1"
        assert event.checkout_id == "cs_test_1"
        assert event.amount == Money(15000, "USD")
        assert event.succeeded
        assert event.metadata.user_id == 7
        assert event.metadata.item_id == 42
        assert event.customer_id == "cus_1"
        assert event.event_id == "evt_1"


# =============================================================================
# Event Normalization Tests
# =============================================================================


class TestNormalizeEvent:
    def _event(self, event_type, obj, event_id="evt_1"):
        return {"id": event_id, "type": event_type, "data": {"object": obj}}

    def test_unpaid_completed_session_is_ignored(self, stripe_adapter):
        event = self._event("checkout.session.completed", {"id": "cs_1", "payment_status": "unpaid"})

        assert stripe_adapter.normalize_event(event) is None

    def test_async_payment_failed(self, stripe_adapter):
        event = self._event(
            "checkout.session.async_payment_failed",
            {"id": "cs_1", "payment_intent": "pi_1", "amount_total": 500, "currency": "usd"},
        )

        result = stripe_adapter.normalize_event(event)

        assert result.outcome == SettlementOutcome.FAILED
        assert result.failure_reason == "Asynchronous payment failed"

    def test_expired_session_is_canceled_by_session_id(self, stripe_adapter):
        event = self._event("checkout.session.expired", {"id": "cs_1", "amount_total": 500})

        result = stripe_adapter.normalize_event(event)

        assert result.outcome == SettlementOutcome.CANCELED
        assert result.reference == "cs_1"
        assert result.checkout_id == "cs_1"

    def test_subscription_session_reference(self, stripe_adapter):
        event = self._event(
            "checkout.session.completed",
            {"id": "cs_1", "payment_status": "paid", "subscription": "sub_1", "amount_total": 2500},
        )

        result = stripe_adapter.normalize_event(event)

        assert result.reference == "sub_1"
        assert result.subscription_id == "sub_1"

    def test_invoice_payment_failed_marks_past_due(self, stripe_adapter):
        event = self._event(
            "invoice.payment_failed",
            {
                "id": "in_1",
                "subscription": "sub_1",
                "lines": {"data": [{"period": {"end": 1735689600}}]},
            },
        )

        result = stripe_adapter.normalize_event(event)

        assert isinstance(result, SubscriptionEvent)
        assert result.status == SubscriptionStatus.PAST_DUE
        assert result.current_period_end == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_invoice_subscription_under_parent(self, stripe_adapter):
        event = self._event(
            "invoice.payment_succeeded",
            {"id": "in_1", "parent": {"subscription_details": {"subscription": "sub_9"}}},
        )

        result = stripe_adapter.normalize_event(event)

        assert result.subscription_id == "sub_9"
        assert result.status == SubscriptionStatus.ACTIVE

    def test_subscription_deleted(self, stripe_adapter):
        event = self._event(
            "customer.subscription.deleted",
            {"id": "sub_1", "status": "active", "customer": "cus_1", "metadata": {"user_id": "7"}},
        )

        result = stripe_adapter.normalize_event(event)

        assert result.status == SubscriptionStatus.CANCELED
        assert result.customer_id == "cus_1"
        assert result.metadata.user_id == 7

    def test_unhandled_type(self, stripe_adapter):
        assert stripe_adapter.normalize_event(self._event("charge.refunded", {})) is None


# =============================================================================
# Verification Tests
# =============================================================================


class TestVerifyByReference:
    def test_paid_session(self, stripe_adapter, mock_checkout_session):
        with patch("stripe.checkout.Session") as mock_session:
            mock_session.retrieve.return_value = mock_checkout_session(
                id="cs_1", payment_status="paid", status="complete", payment_intent="pi_1"
            )
            result = stripe_adapter.verify_by_reference("cs_1")

        mock_session.retrieve.assert_called_once_with("cs_1")
        assert isinstance(result, SettlementEvent)
        assert result.reference == "pi_1"
        assert result.succeeded

    def test_open_session_is_not_settled(self, stripe_adapter, mock_checkout_session):
        with patch("stripe.checkout.Session") as mock_session:
            mock_session.retrieve.return_value = mock_checkout_session(id="cs_1")
            result = stripe_adapter.verify_by_reference("cs_1")

        assert isinstance(result, NotSettled)
        assert result.remote_status == "unpaid"

    def test_expired_session_is_canceled(self, stripe_adapter, mock_checkout_session):
        with patch("stripe.checkout.Session") as mock_session:
            mock_session.retrieve.return_value = mock_checkout_session(id="cs_1", status="expired")
            result = stripe_adapter.verify_by_reference("cs_1")

        assert result.outcome == SettlementOutcome.CANCELED

    def test_payment_intent_reference(self, stripe_adapter):
        intent = MockStripeObject(
            {
                "id": "pi_1",
                "status": "succeeded",
                "amount": 15000,
                "amount_received": 15000,
                "currency": "usd",
                "metadata": {"user_id": "7"},
            }
        )
        with patch("stripe.PaymentIntent") as mock_intent:
            mock_intent.retrieve.return_value = intent
            result = stripe_adapter.verify_by_reference("pi_1")

        assert result.reference == "pi_1"
        assert result.amount == Money(15000, "USD")
        assert result.succeeded

    def test_processing_payment_intent(self, stripe_adapter):
        with patch("stripe.PaymentIntent") as mock_intent:
            mock_intent.retrieve.return_value = MockStripeObject({"id": "pi_1", "status": "processing"})
            result = stripe_adapter.verify_by_reference("pi_1")

        assert isinstance(result, NotSettled)


# =============================================================================
# Subscription Tests
# =============================================================================


class TestSubscriptions:
    def test_cancel_at_period_end(self, stripe_adapter):
        with patch("stripe.Subscription") as mock_subscription:
            mock_subscription.modify.return_value = MockStripeObject(
                {
                    "id": "sub_1",
                    "status": "active",
                    "cancel_at_period_end": True,
                    "items": {"data": [{"current_period_end": 1735689600}]},
                }
            )
            result = stripe_adapter.cancel_subscription("sub_1")

        mock_subscription.modify.assert_called_once_with("sub_1", cancel_at_period_end=True)
        assert result.cancel_at_period_end is True
        assert result.status == SubscriptionStatus.ACTIVE
        assert result.current_period_end == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_create_customer(self, stripe_adapter):
        with patch("stripe.Customer") as mock_customer:
            mock_customer.create.return_value = MockStripeObject({"id": "cus_1"})
            customer_id = stripe_adapter.create_customer("ada@example.com", "Ada Okafor")

        assert customer_id == "cus_1"
        assert mock_customer.create.call_args.kwargs["email"] == "ada@example.com"
