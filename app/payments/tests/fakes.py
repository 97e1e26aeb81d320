"""
In-memory provider adapter for service and view tests.

Registered under the Paystack name so ledger rows carry a real provider
value. Records every checkout request it receives.

Usage:
    adapter = FakeProviderAdapter()
    adapter.fail_with = ProviderRequestError("boom", provider="paystack")
    adapter.verify_results["T1"] = settlement(...)
"""

from __future__ import annotations

from payments.adapters.base import (
    CheckoutSession,
    NotSettled,
    ProviderAdapter,
    SettlementEvent,
    SettlementMetadata,
    SubscriptionEvent,
)
from payments.exceptions import InvalidSignatureError
from payments.ledger import Money
from payments.state_machines import ProviderName, SettlementOutcome, SubscriptionStatus

VALID_SIGNATURE = "valid-signature"


class FakeProviderAdapter(ProviderAdapter):
    name = ProviderName.PAYSTACK
    signature_header = "X-Fake-Signature"

    def __init__(self, name: str | None = None, reuses_customers: bool = False):
        if name:
            self.name = name
        self.reuses_customers = reuses_customers
        self.requests = []
        self.customers = []
        self.canceled = []
        self.fail_with: Exception | None = None
        self.verify_results: dict[str, SettlementEvent | NotSettled] = {}
        self.next_event = None

    def create_checkout_session(self, request):
        if self.fail_with is not None:
            raise self.fail_with
        self.requests.append(request)
        session_id = f"{self.name}_session_{len(self.requests)}"
        return CheckoutSession(
            session_id=session_id,
            redirect_url=f"https://pay.example/{session_id}",
        )

    def create_customer(self, email, name="", metadata=None):
        self.customers.append(email)
        return f"cus_{len(self.customers)}"

    def parse_and_verify_callback(self, raw_payload, signature):
        if signature != VALID_SIGNATURE:
            raise InvalidSignatureError("Invalid fake signature")
        return self.next_event

    def verify_by_reference(self, reference):
        return self.verify_results.get(
            reference,
            NotSettled(provider=self.name, reference=reference, remote_status="pending"),
        )

    def cancel_subscription(self, subscription_id):
        self.canceled.append(subscription_id)
        return SubscriptionEvent(
            provider=self.name,
            subscription_id=subscription_id,
            status=SubscriptionStatus.ACTIVE,
            cancel_at_period_end=True,
        )

    def get_subscription(self, subscription_id):
        return SubscriptionEvent(
            provider=self.name,
            subscription_id=subscription_id,
            status=SubscriptionStatus.ACTIVE,
        )


def settlement(
    reference: str,
    minor: int,
    checkout_id: str | None = None,
    outcome: str = SettlementOutcome.SUCCEEDED,
    provider: str = ProviderName.PAYSTACK,
    currency: str = "USD",
    customer_id: str | None = None,
    subscription_id: str | None = None,
    **metadata,
) -> SettlementEvent:
    """Build a SettlementEvent; keyword arguments become the metadata bag."""
    return SettlementEvent(
        provider=provider,
        reference=reference,
        amount=Money(minor, currency),
        outcome=outcome,
        checkout_id=checkout_id,
        metadata=SettlementMetadata(**metadata),
        customer_id=customer_id,
        subscription_id=subscription_id,
    )
