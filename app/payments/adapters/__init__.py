"""
Payment provider adapters.

All external payment API calls go through these adapters to ensure
consistent error handling, timeouts, and observability. Each adapter
translates between the provider's wire format and the provider-neutral
types in payments.adapters.base.

Usage:
    from payments.adapters import get_registry, CheckoutRequest

    adapter = get_registry().get("stripe")
    session = adapter.create_checkout_session(request)
"""

from payments.adapters.base import (
    CallbackEvent,
    CheckoutRequest,
    CheckoutSession,
    NotSettled,
    ProviderAdapter,
    SettlementEvent,
    SettlementMetadata,
    SubscriptionEvent,
)
from payments.adapters.paystack_adapter import PaystackAdapter
from payments.adapters.registry import (
    ProviderRegistry,
    build_from_settings,
    get_registry,
    set_registry,
)
from payments.adapters.stripe_adapter import StripeAdapter

__all__ = [
    "CallbackEvent",
    "CheckoutRequest",
    "CheckoutSession",
    "NotSettled",
    "PaystackAdapter",
    "ProviderAdapter",
    "ProviderRegistry",
    "SettlementEvent",
    "SettlementMetadata",
    "StripeAdapter",
    "SubscriptionEvent",
    "build_from_settings",
    "get_registry",
    "set_registry",
]
