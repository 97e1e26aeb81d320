"""
PaymentProfile model: a user's customer record at a payment provider.

Stripe checkouts reuse the same customer object across purchases so
receipts and saved cards stay attached to one customer.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel

from payments.state_machines import ProviderName


class PaymentProfile(BaseModel):
    """Maps (user, provider) to the provider's customer id."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payment_profiles",
        help_text="Platform user",
    )

    provider = models.CharField(
        max_length=20,
        choices=ProviderName.choices,
        help_text="Provider holding the customer record",
    )

    customer_id = models.CharField(
        max_length=255,
        help_text="Provider customer id (cus_xxx)",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Profile"
        verbose_name_plural = "Payment Profiles"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "provider"],
                name="payment_profile_unique_user_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"PaymentProfile({self.user_id}, {self.provider}:{self.customer_id})"
