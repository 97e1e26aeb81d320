"""
Stripe API adapter for checkout and settlement operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls go through this adapter to
ensure consistent error handling, timeouts, and observability.

Features:
- Hosted Checkout Sessions for one-shot, item, installment and subscription purchases
- Webhook signature verification (Stripe-Signature, HMAC-SHA256)
- Pull verification by checkout session or PaymentIntent id
- Automatic error translation to ProviderRequestError
- Structured logging with timing metrics

Configuration (via settings, passed in by the registry):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)

Usage:
    adapter = StripeAdapter(secret_key="sk_test_...", webhook_secret="whsec_...")
    session = adapter.create_checkout_session(request)
    event = adapter.parse_and_verify_callback(request.body, request.headers["Stripe-Signature"])
"""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import stripe

from payments.adapters.base import (
    CheckoutRequest,
    CheckoutSession,
    NotSettled,
    ProviderAdapter,
    SettlementEvent,
    SettlementMetadata,
    SubscriptionEvent,
)
from payments.exceptions import (
    InvalidSignatureError,
    PaymentValidationError,
    ProviderRequestError,
)
from payments.ledger.types import Money
from payments.state_machines import (
    ProviderName,
    SettlementOutcome,
    SubscriptionStatus,
    TransactionKind,
)

if TYPE_CHECKING:
    from payments.adapters.base import CallbackEvent


# Product names shown on the hosted checkout page
SUBSCRIPTION_PRODUCT_NAME = "Style Connoisseur Subscription"
ONE_TIME_PRODUCT_NAME = "One-time Purchase"

# Stripe subscription statuses mapped onto the recorded lifecycle
SUBSCRIPTION_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "incomplete": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete_expired": SubscriptionStatus.CANCELED,
}


def _as_dict(obj: Any) -> dict[str, Any]:
    """Plain dict view of a Stripe object (or an already-decoded payload)."""
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def _object_id(value: Any) -> str | None:
    """Stripe fields hold either an id string or an expanded object."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return _as_dict(value).get("id")


def _from_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class StripeAdapter(ProviderAdapter):
    """
    Adapter for Stripe Checkout.

    One instance per process, built by the provider registry. Calls are
    single-attempt: the SDK's network retries are disabled so a failure
    surfaces to the caller immediately.
    """

    name = ProviderName.STRIPE
    signature_header = "Stripe-Signature"
    reuses_customers = True

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        timeout: int = 10,
        tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self.tolerance = tolerance

    # =========================================================================
    # Configuration
    # =========================================================================

    def _configure_stripe(self) -> None:
        """Configure Stripe client with API key, timeout and no retries."""
        stripe.api_key = self.secret_key
        stripe.max_network_retries = 0
        stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)

    def _call(self, operation: str, log_context: dict[str, Any], func, *args, **kwargs):
        """Run one Stripe SDK call with timing logs and error translation."""
        self._configure_stripe()
        logger = self.get_logger()
        log_context = {"operation": operation, **log_context}

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )
        return result

    # =========================================================================
    # Checkout
    # =========================================================================

    def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        """
        Create a hosted Checkout Session.

        Subscriptions use mode="subscription" with a monthly recurring price;
        everything else is a single line item in mode="payment". The metadata
        bag is attached to the session and copied onto the PaymentIntent or
        Subscription so later events carry it too.

        Raises:
            ProviderRequestError: Stripe rejected the request or was unreachable
        """
        bag = request.metadata.to_bag()
        is_subscription = request.kind == TransactionKind.SUBSCRIPTION

        price_data: dict[str, Any] = {
            "currency": request.amount.currency.lower(),
            "product_data": {"name": self._product_name(request)},
            "unit_amount": request.amount.minor,
        }
        params: dict[str, Any] = {
            "line_items": [{"price_data": price_data, "quantity": 1}],
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
            "client_reference_id": str(request.user_id),
            "metadata": bag,
        }

        if is_subscription:
            price_data["recurring"] = {"interval": "month"}
            params["mode"] = "subscription"
            params["subscription_data"] = {"metadata": bag}
        else:
            params["mode"] = "payment"
            params["payment_intent_data"] = {"metadata": bag}

        if request.customer_id:
            params["customer"] = request.customer_id
        else:
            params["customer_email"] = request.email

        session = self._call(
            "create_checkout_session",
            {
                "user_id": request.user_id,
                "kind": request.kind,
                "amount_minor": request.amount.minor,
                "currency": request.amount.currency,
            },
            stripe.checkout.Session.create,
            **params,
        )

        return CheckoutSession(
            session_id=session.id,
            redirect_url=session.url,
            raw_response=_as_dict(session),
        )

    @staticmethod
    def _product_name(request: CheckoutRequest) -> str:
        if request.description:
            return request.description
        if request.kind == TransactionKind.SUBSCRIPTION:
            return SUBSCRIPTION_PRODUCT_NAME
        if request.metadata.item_id:
            return f"Fashion Item Order: #{request.metadata.item_id}"
        return ONE_TIME_PRODUCT_NAME

    def create_customer(self, email: str, name: str = "", metadata: dict[str, str] | None = None) -> str:
        customer = self._call(
            "create_customer",
            {"email": email},
            stripe.Customer.create,
            email=email,
            name=name or None,
            metadata=metadata or {},
        )
        return customer.id

    # =========================================================================
    # Callbacks
    # =========================================================================

    def parse_and_verify_callback(
        self, raw_payload: bytes, signature: str | None
    ) -> CallbackEvent | None:
        """
        Verify a Stripe webhook and normalize it.

        Raises:
            InvalidSignatureError: Missing, stale or mismatched signature
            PaymentValidationError: Authentic payload that is not valid JSON
        """
        if not signature:
            raise InvalidSignatureError("Missing Stripe-Signature header")
        if not self.webhook_secret:
            raise InvalidSignatureError(
                "Stripe webhook secret is not configured",
                error_code="WEBHOOK_SECRET_MISSING",
            )

        try:
            stripe.WebhookSignature.verify_header(
                raw_payload.decode("utf-8"),
                signature,
                self.webhook_secret,
                self.tolerance,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            raise InvalidSignatureError(
                "Invalid Stripe webhook signature",
                details={"error": str(e)},
            )

        try:
            event = json.loads(raw_payload)
        except ValueError as e:
            raise PaymentValidationError(
                "Stripe webhook payload is not valid JSON",
                details={"error": str(e)},
            )

        return self.normalize_event(event)

    def normalize_event(self, event: dict[str, Any]) -> CallbackEvent | None:
        """Map a decoded Stripe event onto a settlement or subscription event."""
        event_type = event.get("type", "")
        event_id = event.get("id")
        obj = (event.get("data") or {}).get("object") or {}

        if event_type == "checkout.session.completed":
            # Delayed payment methods complete with payment_status "unpaid"
            # and settle later via async_payment_succeeded
            if obj.get("payment_status") not in ("paid", "no_payment_required"):
                return None
            return self._session_settlement(obj, SettlementOutcome.SUCCEEDED, event_id, event_type)

        if event_type == "checkout.session.async_payment_succeeded":
            return self._session_settlement(obj, SettlementOutcome.SUCCEEDED, event_id, event_type)

        if event_type == "checkout.session.async_payment_failed":
            return self._session_settlement(
                obj, SettlementOutcome.FAILED, event_id, event_type, "Asynchronous payment failed"
            )

        if event_type == "checkout.session.expired":
            return self._session_settlement(
                obj, SettlementOutcome.CANCELED, event_id, event_type, "Checkout session expired"
            )

        if event_type in ("invoice.payment_succeeded", "invoice.payment_failed"):
            subscription_id = self._invoice_subscription_id(obj)
            if not subscription_id:
                return None
            period_end = None
            lines = (obj.get("lines") or {}).get("data") or []
            if lines:
                period_end = _from_timestamp((lines[0].get("period") or {}).get("end"))
            return SubscriptionEvent(
                provider=self.name,
                subscription_id=subscription_id,
                status=(
                    SubscriptionStatus.ACTIVE
                    if event_type == "invoice.payment_succeeded"
                    else SubscriptionStatus.PAST_DUE
                ),
                current_period_end=period_end,
                event_id=event_id,
                event_type=event_type,
            )

        if event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
            subscription = self._subscription_event(obj)
            subscription.event_id = event_id
            subscription.event_type = event_type
            if event_type == "customer.subscription.deleted":
                subscription.status = SubscriptionStatus.CANCELED
            return subscription

        self.get_logger().debug(
            "Ignoring Stripe event type",
            extra={"event_type": event_type, "event_id": event_id},
        )
        return None

    @staticmethod
    def _invoice_subscription_id(invoice: dict[str, Any]) -> str | None:
        subscription_id = _object_id(invoice.get("subscription"))
        if subscription_id:
            return subscription_id
        # Newer API versions nest it under parent.subscription_details
        details = (invoice.get("parent") or {}).get("subscription_details") or {}
        return _object_id(details.get("subscription"))

    def _session_settlement(
        self,
        session: dict[str, Any],
        outcome: str,
        event_id: str | None = None,
        event_type: str = "",
        failure_reason: str = "",
    ) -> SettlementEvent:
        session_id = session.get("id")
        reference = (
            _object_id(session.get("payment_intent"))
            or _object_id(session.get("subscription"))
            or session_id
        )
        return SettlementEvent(
            provider=self.name,
            reference=reference,
            checkout_id=session_id,
            amount=Money(int(session.get("amount_total") or 0), session.get("currency") or "usd"),
            outcome=outcome,
            metadata=SettlementMetadata.from_bag(session.get("metadata")),
            event_id=event_id,
            event_type=event_type,
            subscription_id=_object_id(session.get("subscription")),
            customer_id=_object_id(session.get("customer")),
            failure_reason=failure_reason,
        )

    def _subscription_event(self, subscription: dict[str, Any]) -> SubscriptionEvent:
        period_end = subscription.get("current_period_end")
        if period_end is None:
            # Newer API versions report the period on each subscription item
            items = (subscription.get("items") or {}).get("data") or []
            if items:
                period_end = items[0].get("current_period_end")
        return SubscriptionEvent(
            provider=self.name,
            subscription_id=subscription.get("id"),
            status=SUBSCRIPTION_STATUS_MAP.get(subscription.get("status"), SubscriptionStatus.ACTIVE),
            current_period_end=_from_timestamp(period_end),
            cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
            metadata=SettlementMetadata.from_bag(subscription.get("metadata")),
            customer_id=_object_id(subscription.get("customer")),
        )

    # =========================================================================
    # Verification
    # =========================================================================

    def verify_by_reference(self, reference: str) -> SettlementEvent | NotSettled:
        """
        Pull the current state of a checkout session or PaymentIntent.

        The storefront passes back the session id from the success URL;
        PaymentIntent ids are accepted for staff lookups.
        """
        if reference.startswith("pi_"):
            return self._verify_payment_intent(reference)

        session = _as_dict(
            self._call(
                "retrieve_checkout_session",
                {"session_id": reference},
                stripe.checkout.Session.retrieve,
                reference,
            )
        )
        if session.get("payment_status") in ("paid", "no_payment_required"):
            return self._session_settlement(session, SettlementOutcome.SUCCEEDED)
        if session.get("status") == "expired":
            return self._session_settlement(
                session, SettlementOutcome.CANCELED, failure_reason="Checkout session expired"
            )
        return NotSettled(
            provider=self.name,
            reference=reference,
            remote_status=session.get("payment_status") or session.get("status") or "",
        )

    def _verify_payment_intent(self, reference: str) -> SettlementEvent | NotSettled:
        intent = _as_dict(
            self._call(
                "retrieve_payment_intent",
                {"payment_intent_id": reference},
                stripe.PaymentIntent.retrieve,
                reference,
            )
        )
        status = intent.get("status") or ""
        if status not in ("succeeded", "canceled"):
            return NotSettled(provider=self.name, reference=reference, remote_status=status)

        succeeded = status == "succeeded"
        return SettlementEvent(
            provider=self.name,
            reference=intent.get("id") or reference,
            amount=Money(
                int(intent.get("amount_received") or intent.get("amount") or 0),
                intent.get("currency") or "usd",
            ),
            outcome=SettlementOutcome.SUCCEEDED if succeeded else SettlementOutcome.CANCELED,
            metadata=SettlementMetadata.from_bag(intent.get("metadata")),
            customer_id=_object_id(intent.get("customer")),
            failure_reason="" if succeeded else (intent.get("cancellation_reason") or "canceled"),
        )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def cancel_subscription(self, subscription_id: str) -> SubscriptionEvent:
        """Schedule cancellation at the end of the current period."""
        subscription = self._call(
            "cancel_subscription",
            {"subscription_id": subscription_id},
            stripe.Subscription.modify,
            subscription_id,
            cancel_at_period_end=True,
        )
        return self._subscription_event(_as_dict(subscription))

    def get_subscription(self, subscription_id: str) -> SubscriptionEvent:
        subscription = self._call(
            "retrieve_subscription",
            {"subscription_id": subscription_id},
            stripe.Subscription.retrieve,
            subscription_id,
        )
        return self._subscription_event(_as_dict(subscription))

    # =========================================================================
    # Error Handling
    # =========================================================================

    def _handle_stripe_error(
        self,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to ProviderRequestError.

        Raises:
            ProviderRequestError: Always
        """
        logger = self.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}
        status_code = getattr(error, "http_status", None)
        code = getattr(error, "code", None)

        if isinstance(error, stripe.CardError):
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": getattr(error, "decline_code", None)},
            )
            message = str(getattr(error, "user_message", None) or error)

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": code},
            )
            message = str(error)

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            message = "Stripe rate limit exceeded"
            code = code or "rate_limit"

        elif isinstance(error, stripe.APIConnectionError):
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            message = "Could not connect to Stripe"
            code = code or "api_connection_error"

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            message = "Stripe authentication failed"
            code = code or "authentication_error"

        elif isinstance(error, stripe.StripeError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            message = "Stripe service error"
            code = code or "api_error"

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            message = f"Unexpected Stripe error: {error}"
            code = "unknown_error"

        raise ProviderRequestError(
            message,
            provider=self.name,
            status_code=status_code,
            provider_code=code,
        ) from error
