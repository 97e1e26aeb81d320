"""
Provider-neutral adapter contract and data types.

Every payment provider is wrapped in a ProviderAdapter that translates:
- a CheckoutRequest into a provider checkout session, and
- a provider callback or verification lookup into a SettlementEvent.

The metadata bag attached to a checkout must survive the round trip
through the provider; it is how the payer, purchase kind and installment
linkage reach the reconciler.

Usage:
    from payments.adapters.base import CheckoutRequest, SettlementMetadata

    request = CheckoutRequest(
        user_id=user.pk,
        email=user.email,
        amount=Money.from_decimal(Decimal("150.00"), "USD"),
        kind=TransactionKind.ITEM,
        success_url="https://shop.example/payment/success",
        cancel_url="https://shop.example/payment/cancel",
        metadata=SettlementMetadata(user_id=user.pk, kind="item", item_id=42),
    )
    session = adapter.create_checkout_session(request)
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from payments.state_machines import SettlementOutcome

if TYPE_CHECKING:
    from datetime import datetime

    from payments.ledger.types import Money


# =============================================================================
# Metadata Bag
# =============================================================================


def _int_or_none(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class SettlementMetadata:
    """
    Structured view of the metadata that round-trips through a provider.

    Providers only carry flat string maps (Stripe) or arbitrary JSON that
    may arrive re-encoded as a string (Paystack), so to_bag() flattens to
    strings and from_bag() accepts either form.

    Attributes:
        user_id: Owning user
        kind: Purchase kind (TransactionKind value)
        item_id: Catalog item, for item purchases and item-backed plans
        plan_id: Subscription plan identifier
        transaction_id: Parent installment Transaction
        installment_number: Installment period being paid
        quantity: Units ordered
        delivery_address: Where the finished piece ships
        production_notes: Free-text notes for the workshop
    """

    user_id: int | None = None
    kind: str | None = None
    item_id: int | None = None
    plan_id: str | None = None
    transaction_id: int | None = None
    installment_number: int | None = None
    quantity: int = 1
    delivery_address: str = ""
    production_notes: str = ""

    @property
    def is_installment(self) -> bool:
        return self.transaction_id is not None and self.installment_number is not None

    @property
    def is_first_installment(self) -> bool:
        return self.is_installment and self.installment_number == 1

    def to_bag(self) -> dict[str, str]:
        """Flatten to a string map, omitting empty values."""
        bag = {
            "user_id": self.user_id,
            "kind": self.kind,
            "item_id": self.item_id,
            "plan_id": self.plan_id,
            "transaction_id": self.transaction_id,
            "installment_number": self.installment_number,
            "quantity": self.quantity,
            "delivery_address": self.delivery_address,
            "production_notes": self.production_notes,
        }
        return {key: str(value) for key, value in bag.items() if value not in (None, "")}

    @classmethod
    def from_bag(cls, bag: dict[str, Any] | str | None) -> SettlementMetadata:
        """Parse a provider metadata bag. Unknown keys are ignored."""
        if isinstance(bag, str):
            try:
                bag = json.loads(bag) if bag.strip() else {}
            except ValueError:
                bag = {}
        if not isinstance(bag, dict):
            bag = {}

        quantity = _int_or_none(bag.get("quantity"))
        return cls(
            user_id=_int_or_none(bag.get("user_id")),
            kind=bag.get("kind") or None,
            item_id=_int_or_none(bag.get("item_id")),
            plan_id=bag.get("plan_id") or None,
            transaction_id=_int_or_none(bag.get("transaction_id")),
            installment_number=_int_or_none(bag.get("installment_number")),
            quantity=quantity if quantity and quantity > 0 else 1,
            delivery_address=str(bag.get("delivery_address") or ""),
            production_notes=str(bag.get("production_notes") or ""),
        )


# =============================================================================
# Checkout Types
# =============================================================================


@dataclass
class CheckoutRequest:
    """
    Provider-neutral checkout request.

    Attributes:
        user_id: Owning user
        email: Payer email (Paystack requires it, Stripe prefills it)
        amount: Amount to charge
        kind: Purchase kind (TransactionKind value)
        success_url / cancel_url: Redirect targets after checkout
        metadata: Bag that must come back on the settlement callback
        description: Line-item label shown by the provider
        customer_id: Provider customer to attach the session to
    """

    user_id: int
    email: str
    amount: Money
    kind: str
    success_url: str
    cancel_url: str
    metadata: SettlementMetadata = field(default_factory=SettlementMetadata)
    description: str = ""
    customer_id: str | None = None

    def __post_init__(self) -> None:
        if self.amount.minor <= 0:
            raise ValueError("amount must be positive")
        if not self.email:
            raise ValueError("email is required")
        if not self.success_url:
            raise ValueError("success_url is required")


@dataclass
class CheckoutSession:
    """
    Result of creating a provider checkout.

    Attributes:
        session_id: Provider checkout id (Stripe session id, Paystack reference)
        redirect_url: Hosted checkout page, if the provider has one
        raw_response: Provider response for debugging
    """

    session_id: str
    redirect_url: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Callback Types
# =============================================================================


@dataclass
class SettlementEvent:
    """
    Provider-neutral settlement derived from a callback or verification.

    Transient: it drives the reconciler and is never persisted as-is.

    Attributes:
        provider: Provider name
        reference: External payment reference (idempotency key)
        amount: Amount the provider reports as charged
        outcome: SettlementOutcome value
        checkout_id: Checkout/session id the payment belongs to
        metadata: Parsed metadata bag
        event_id / event_type: Provider event identity, when pushed
        subscription_id / customer_id: Provider objects created by the checkout
        failure_reason: Provider explanation for failed/canceled outcomes
    """

    provider: str
    reference: str
    amount: Money
    outcome: str = SettlementOutcome.SUCCEEDED
    checkout_id: str | None = None
    metadata: SettlementMetadata = field(default_factory=SettlementMetadata)
    event_id: str | None = None
    event_type: str = ""
    subscription_id: str | None = None
    customer_id: str | None = None
    failure_reason: str = ""

    @property
    def succeeded(self) -> bool:
        return self.outcome == SettlementOutcome.SUCCEEDED


@dataclass
class SubscriptionEvent:
    """Provider-reported change to a subscription's state."""

    provider: str
    subscription_id: str
    status: str
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    metadata: SettlementMetadata = field(default_factory=SettlementMetadata)
    customer_id: str | None = None
    event_id: str | None = None
    event_type: str = ""


@dataclass
class NotSettled:
    """Verification found the payment has not (yet) settled."""

    provider: str
    reference: str
    remote_status: str = ""


CallbackEvent = Union[SettlementEvent, SubscriptionEvent]


# =============================================================================
# Adapter Contract
# =============================================================================


class ProviderAdapter(ABC):
    """
    Contract implemented once per payment provider.

    All remote calls are single-attempt with a bounded timeout. Any remote
    failure surfaces as ProviderRequestError; callers do not retry.
    """

    #: Registry key and Transaction.provider value
    name: str = ""

    #: HTTP header carrying the callback authenticity proof
    signature_header: str = ""

    #: Whether checkouts should be attached to a stored provider customer
    reuses_customers: bool = False

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @abstractmethod
    def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        """Create a hosted checkout for the request."""

    @abstractmethod
    def parse_and_verify_callback(
        self, raw_payload: bytes, signature: str | None
    ) -> CallbackEvent | None:
        """
        Verify the callback's authenticity and normalize it.

        Must raise InvalidSignatureError before anything else happens when
        the proof does not match. Returns None for verified event types the
        platform does not act on.
        """

    @abstractmethod
    def verify_by_reference(self, reference: str) -> SettlementEvent | NotSettled:
        """Look up the current remote state of a payment. Side-effect free."""

    def create_customer(self, email: str, name: str = "", metadata: dict[str, str] | None = None) -> str | None:
        """Create a provider customer; providers without customer objects return None."""
        return None

    @abstractmethod
    def cancel_subscription(self, subscription_id: str) -> SubscriptionEvent:
        """Cancel a provider subscription."""

    @abstractmethod
    def get_subscription(self, subscription_id: str) -> SubscriptionEvent:
        """Fetch the provider's view of a subscription."""
