"""
State enums for payment models.

This module defines all state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Transaction States:
    pending → succeeded
    pending → failed
    pending → canceled

InstallmentSchedule States:
    pending → paid

Subscription States:
    active → past_due → active
    active/past_due → canceled

WebhookEvent States:
    pending → processing → processed
    pending → processing → failed → processing (provider redelivery)
"""

from django.db import models


class TransactionStatus(models.TextChoices):
    """
    States for a ledger Transaction.

    Terminal states: SUCCEEDED, FAILED, CANCELED. Only the settlement
    reconciler moves a transaction out of PENDING.
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    CANCELED = "canceled", "Canceled"


class TransactionKind(models.TextChoices):
    """What the purchaser is paying for."""

    ONE_TIME = "one-time", "One-time Purchase"
    SUBSCRIPTION = "subscription", "Subscription"
    INSTALLMENT = "installment", "Installment Plan"
    ITEM = "item", "Item Purchase"


class InstallmentStatus(models.TextChoices):
    """States for one period of an installment schedule (PAID is terminal)."""

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"


class SubscriptionStatus(models.TextChoices):
    """
    Provider-reported subscription states.

    The platform records these; billing itself stays with the provider.
    """

    ACTIVE = "active", "Active"
    PAST_DUE = "past_due", "Past Due"
    CANCELED = "canceled", "Canceled"


class WebhookEventStatus(models.TextChoices):
    """
    Processing states for inbound provider callbacks.

    PROCESSED events are acknowledged without reprocessing when the
    provider redelivers them.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class ProviderName(models.TextChoices):
    """Payment providers the platform can route checkouts to."""

    STRIPE = "stripe", "Stripe"
    PAYSTACK = "paystack", "Paystack"


class SettlementOutcome(models.TextChoices):
    """Provider-neutral result carried by a settlement event."""

    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    CANCELED = "canceled", "Canceled"


__all__ = [
    "InstallmentStatus",
    "ProviderName",
    "SettlementOutcome",
    "SubscriptionStatus",
    "TransactionKind",
    "TransactionStatus",
    "WebhookEventStatus",
]
