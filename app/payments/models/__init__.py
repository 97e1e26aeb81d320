"""
Payment domain models.

This module contains all payment-related models:
- Transaction: Ledger row for one payment attempt and its outcome
- InstallmentSchedule: One period of an installment plan
- Subscription: Provider-reported subscription state
- PaymentProfile: Provider customer id per user
- WebhookEvent: Verified provider callbacks for audit and redelivery short-circuit
"""

from payments.models.installment import InstallmentSchedule
from payments.models.payment_profile import PaymentProfile
from payments.models.subscription import Subscription
from payments.models.transaction import Transaction
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "InstallmentSchedule",
    "PaymentProfile",
    "Subscription",
    "Transaction",
    "WebhookEvent",
]
