"""
State machine enums for payment models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    InstallmentStatus,
    ProviderName,
    SettlementOutcome,
    SubscriptionStatus,
    TransactionKind,
    TransactionStatus,
    WebhookEventStatus,
)

__all__ = [
    "InstallmentStatus",
    "ProviderName",
    "SettlementOutcome",
    "SubscriptionStatus",
    "TransactionKind",
    "TransactionStatus",
    "WebhookEventStatus",
]
