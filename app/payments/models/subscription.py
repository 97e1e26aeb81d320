"""
Subscription model for provider-managed recurring billing.

Billing runs entirely on the provider side. This table only records the
state transitions the provider reports (activation, renewals, cancellation)
so staff can see who is subscribed without calling the provider.

Usage:
    from payments.models import Subscription

    sub = Subscription.objects.get(
        provider="stripe", provider_subscription_id="sub_123",
    )
    sub.cancel()
    sub.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel

from payments.state_machines import ProviderName, SubscriptionStatus


class Subscription(BaseModel):
    """
    Recorded state of a provider subscription.

    State Flow:
        ACTIVE -> PAST_DUE (renewal failed)
        PAST_DUE -> ACTIVE (renewal recovered)
        ACTIVE/PAST_DUE -> CANCELED
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payment_subscriptions",
        help_text="Subscriber",
    )

    transaction = models.ForeignKey(
        "payments.Transaction",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="subscriptions",
        help_text="Checkout transaction that started the subscription",
    )

    provider = models.CharField(
        max_length=20,
        choices=ProviderName.choices,
        help_text="Provider that bills this subscription",
    )

    provider_subscription_id = models.CharField(
        max_length=255,
        help_text="Provider subscription id (sub_xxx, SUB_xxx)",
    )

    plan_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Platform plan identifier",
    )

    status = FSMField(
        default=SubscriptionStatus.ACTIVE,
        choices=SubscriptionStatus.choices,
        db_index=True,
        help_text="Provider-reported status (managed by FSM)",
    )

    current_period_end = models.DateTimeField(
        null=True,
        blank=True,
        help_text="End of the current paid period",
    )

    cancel_at_period_end = models.BooleanField(
        default=False,
        help_text="Whether cancellation takes effect at period end",
    )

    canceled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the provider reported cancellation",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Subscription"
        verbose_name_plural = "Subscriptions"
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "provider_subscription_id"],
                name="subscription_unique_provider_id",
            ),
        ]

    def __str__(self) -> str:
        return f"Subscription({self.provider}:{self.provider_subscription_id}, {self.status})"

    @transition(
        field=status,
        source=[SubscriptionStatus.ACTIVE, SubscriptionStatus.PAST_DUE],
        target=SubscriptionStatus.ACTIVE,
    )
    def renew(self, current_period_end=None):
        """Record a successful renewal payment."""
        if current_period_end is not None:
            self.current_period_end = current_period_end

    @transition(
        field=status,
        source=SubscriptionStatus.ACTIVE,
        target=SubscriptionStatus.PAST_DUE,
    )
    def mark_past_due(self):
        pass

    @transition(
        field=status,
        source=[SubscriptionStatus.ACTIVE, SubscriptionStatus.PAST_DUE],
        target=SubscriptionStatus.CANCELED,
    )
    def cancel(self):
        self.canceled_at = timezone.now()
