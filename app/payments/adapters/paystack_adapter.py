"""
Paystack API adapter.

Paystack has no official Python SDK, so this adapter talks to the REST
API with requests. Every call is single-attempt with a bounded timeout
and goes through _request() for consistent logging and error mapping.

Endpoints used:
- POST /transaction/initialize   hosted checkout
- GET  /transaction/verify/:ref  pull verification
- POST /customer                 customer records
- GET  /subscription/:code       subscription lookup
- POST /subscription/disable     subscription cancellation

Webhooks are authenticated with X-Paystack-Signature, the hex
HMAC-SHA512 of the raw request body keyed by the secret key.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from typing import TYPE_CHECKING, Any

import requests
from django.utils.dateparse import parse_datetime

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
    from datetime import datetime

    from payments.adapters.base import CallbackEvent


DEFAULT_BASE_URL = "https://api.paystack.co"

SUBSCRIPTION_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "non-renewing": SubscriptionStatus.ACTIVE,
    "attention": SubscriptionStatus.PAST_DUE,
    "completed": SubscriptionStatus.CANCELED,
    "cancelled": SubscriptionStatus.CANCELED,
    "complete": SubscriptionStatus.CANCELED,
}

# Verification statuses that end a Paystack transaction without payment
FAILED_STATUSES = frozenset(["failed", "reversed"])


def _parse_date(value: Any) -> datetime | None:
    if not value:
        return None
    return parse_datetime(str(value))


class PaystackAdapter(ProviderAdapter):
    """Adapter for Paystack's hosted checkout."""

    name = ProviderName.PAYSTACK
    signature_header = "X-Paystack-Signature"

    def __init__(
        self,
        secret_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 10,
        session: requests.Session | None = None,
    ):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    # =========================================================================
    # HTTP
    # =========================================================================

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        payload: dict[str, Any] | None = None,
        log_context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Perform one Paystack API call and return the response's data field.

        Raises:
            ProviderRequestError: Transport failure, timeout, non-2xx status,
                or a body with status=false
        """
        logger = self.get_logger()
        log_context = {"operation": operation, **(log_context or {})}

        start_time = time.time()
        logger.info("Starting Paystack operation", extra=log_context)

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.secret_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Paystack request timed out",
                extra={**log_context, "duration_ms": duration_ms},
            )
            raise ProviderRequestError(
                "Paystack request timed out",
                provider=self.name,
                provider_code="timeout",
            ) from e
        except requests.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Connection error to Paystack",
                extra={**log_context, "duration_ms": duration_ms},
                exc_info=True,
            )
            raise ProviderRequestError(
                "Could not connect to Paystack",
                provider=self.name,
                provider_code="connection_error",
            ) from e

        duration_ms = (time.time() - start_time) * 1000

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok or not body.get("status"):
            logger.error(
                "Paystack API error",
                extra={
                    **log_context,
                    "duration_ms": duration_ms,
                    "status_code": response.status_code,
                    "response_message": body.get("message"),
                },
            )
            raise ProviderRequestError(
                body.get("message") or f"Paystack returned HTTP {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
                provider_code=body.get("code"),
            )

        logger.info(
            "Paystack operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )
        return body.get("data") or {}

    # =========================================================================
    # Checkout
    # =========================================================================

    def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        """
        Initialize a Paystack transaction.

        The returned reference doubles as the checkout id and the payment
        reference, since Paystack uses one identifier for both.
        """
        payload: dict[str, Any] = {
            "email": request.email,
            "amount": request.amount.minor,
            "currency": request.amount.currency,
            "callback_url": request.success_url,
            "metadata": {
                **request.metadata.to_bag(),
                "cancel_action": request.cancel_url,
            },
        }
        if request.metadata.plan_id and request.kind == TransactionKind.SUBSCRIPTION:
            payload["plan"] = request.metadata.plan_id

        data = self._request(
            "POST",
            "/transaction/initialize",
            "initialize_transaction",
            payload,
            {
                "user_id": request.user_id,
                "kind": request.kind,
                "amount_minor": request.amount.minor,
                "currency": request.amount.currency,
            },
        )
        return CheckoutSession(
            session_id=data.get("reference"),
            redirect_url=data.get("authorization_url"),
            raw_response=data,
        )

    def create_customer(self, email: str, name: str = "", metadata: dict[str, str] | None = None) -> str:
        first_name, _, last_name = name.partition(" ")
        data = self._request(
            "POST",
            "/customer",
            "create_customer",
            {
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
                "metadata": metadata or {},
            },
            {"email": email},
        )
        return data.get("customer_code")

    # =========================================================================
    # Callbacks
    # =========================================================================

    def compute_signature(self, raw_payload: bytes) -> str:
        return hmac.new(
            self.secret_key.encode("utf-8"), raw_payload, hashlib.sha512
        ).hexdigest()

    def parse_and_verify_callback(
        self, raw_payload: bytes, signature: str | None
    ) -> CallbackEvent | None:
        """
        Verify X-Paystack-Signature and normalize the event.

        The HMAC is computed over the raw body exactly as received;
        re-serializing the JSON would change the bytes.

        Raises:
            InvalidSignatureError: Missing or mismatched signature
            PaymentValidationError: Authentic payload that is not valid JSON
        """
        if not signature:
            raise InvalidSignatureError("Missing X-Paystack-Signature header")

        expected = self.compute_signature(raw_payload)
        if not hmac.compare_digest(expected, signature.strip().lower()):
            raise InvalidSignatureError("Invalid Paystack webhook signature")

        try:
            event = json.loads(raw_payload)
        except ValueError as e:
            raise PaymentValidationError(
                "Paystack webhook payload is not valid JSON",
                details={"error": str(e)},
            )

        return self.normalize_event(event)

    def normalize_event(self, event: dict[str, Any]) -> CallbackEvent | None:
        event_type = event.get("event", "")
        data = event.get("data") or {}

        if event_type == "charge.success":
            settlement = self._transaction_settlement(data, SettlementOutcome.SUCCEEDED)
            settlement.event_type = event_type
            # Paystack events carry no id of their own; the transaction id is stable
            settlement.event_id = f"{event_type}:{data.get('id') or data.get('reference')}"
            return settlement

        if event_type in (
            "subscription.create",
            "subscription.disable",
            "subscription.not_renew",
            "invoice.payment_failed",
        ):
            subscription = self._subscription_event(data)
            subscription.event_type = event_type
            subscription.event_id = f"{event_type}:{subscription.subscription_id}"
            if event_type == "subscription.create":
                subscription.status = SubscriptionStatus.ACTIVE
            elif event_type == "subscription.disable":
                subscription.status = SubscriptionStatus.CANCELED
            elif event_type == "subscription.not_renew":
                subscription.status = SubscriptionStatus.CANCELED
                subscription.cancel_at_period_end = True
            else:
                subscription.status = SubscriptionStatus.PAST_DUE
            return subscription

        self.get_logger().debug(
            "Ignoring Paystack event type",
            extra={"event_type": event_type},
        )
        return None

    def _transaction_settlement(self, data: dict[str, Any], outcome: str) -> SettlementEvent:
        reference = data.get("reference")
        customer = data.get("customer")
        return SettlementEvent(
            provider=self.name,
            reference=reference,
            checkout_id=reference,
            amount=Money(int(data.get("amount") or 0), data.get("currency") or "NGN"),
            outcome=outcome,
            metadata=SettlementMetadata.from_bag(data.get("metadata")),
            customer_id=customer.get("customer_code") if isinstance(customer, dict) else None,
            failure_reason=(
                "" if outcome == SettlementOutcome.SUCCEEDED else (data.get("gateway_response") or "")
            ),
        )

    def _subscription_event(self, data: dict[str, Any]) -> SubscriptionEvent:
        customer = data.get("customer")
        # Invoice events nest the subscription object
        nested = data.get("subscription")
        if isinstance(nested, dict) and not data.get("subscription_code"):
            data = {**data, **nested}
        return SubscriptionEvent(
            provider=self.name,
            subscription_id=data.get("subscription_code"),
            status=SUBSCRIPTION_STATUS_MAP.get(data.get("status"), SubscriptionStatus.ACTIVE),
            current_period_end=_parse_date(data.get("next_payment_date")),
            cancel_at_period_end=data.get("status") == "non-renewing",
            customer_id=customer.get("customer_code") if isinstance(customer, dict) else None,
        )

    # =========================================================================
    # Verification
    # =========================================================================

    def verify_by_reference(self, reference: str) -> SettlementEvent | NotSettled:
        data = self._request(
            "GET",
            f"/transaction/verify/{reference}",
            "verify_transaction",
            log_context={"reference": reference},
        )
        status = data.get("status") or ""

        if status == "success":
            return self._transaction_settlement(data, SettlementOutcome.SUCCEEDED)
        if status in FAILED_STATUSES:
            return self._transaction_settlement(data, SettlementOutcome.FAILED)

        # "abandoned" only means the customer left the page; the same
        # reference can still be paid later
        return NotSettled(provider=self.name, reference=reference, remote_status=status)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def get_subscription(self, subscription_id: str) -> SubscriptionEvent:
        data = self._request(
            "GET",
            f"/subscription/{subscription_id}",
            "retrieve_subscription",
            log_context={"subscription_id": subscription_id},
        )
        return self._subscription_event(data)

    def cancel_subscription(self, subscription_id: str) -> SubscriptionEvent:
        """
        Disable a Paystack subscription.

        Paystack requires the subscription's email token alongside the
        code, so the subscription is fetched first.
        """
        data = self._request(
            "GET",
            f"/subscription/{subscription_id}",
            "retrieve_subscription",
            log_context={"subscription_id": subscription_id},
        )
        self._request(
            "POST",
            "/subscription/disable",
            "disable_subscription",
            {"code": subscription_id, "token": data.get("email_token")},
            {"subscription_id": subscription_id},
        )
        event = self._subscription_event(data)
        event.status = SubscriptionStatus.CANCELED
        return event
