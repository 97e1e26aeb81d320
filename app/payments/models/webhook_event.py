"""
WebhookEvent model for provider callback tracking.

Stores every verified callback received from a payment provider for
audit and to short-circuit redeliveries of events that were already
processed. The key is the provider's event id when it sends one, or a
digest of the raw body when it does not (Paystack).

Usage:
    event, created = WebhookEvent.objects.get_or_create(
        provider="paystack",
        event_key=hash_string(raw_body),
        defaults={"event_type": "charge.success", "payload": payload},
    )
    if event.is_processed:
        return HttpResponse(status=200)
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel

from payments.state_machines import ProviderName, WebhookEventStatus


class WebhookEvent(BaseModel):
    """
    Tracks provider callbacks for idempotent processing.

    Processing Flow:
        1. Callback arrives, provider signature verified
        2. Insert/get WebhookEvent by (provider, event_key)
        3. If PROCESSED -> acknowledge (duplicate)
        4. Mark PROCESSING, dispatch to handler
        5. Mark PROCESSED or FAILED

    Note:
        Ledger idempotency does not depend on this table. It is enforced
        by the reconciler against Transaction rows; this table only saves
        work on exact redeliveries.
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    provider = models.CharField(
        max_length=20,
        choices=ProviderName.choices,
        help_text="Provider that sent the callback",
    )

    event_key = models.CharField(
        max_length=255,
        help_text="Provider event id, or sha256 of the raw body",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Provider event type (e.g. 'checkout.session.completed')",
    )

    payload = models.JSONField(
        help_text="Full callback payload (JSON)",
    )

    # ==========================================================================
    # Processing Status
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Current processing status",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message if processing failed",
    )

    attempt_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts (provider redeliveries)",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "event_key"],
                name="webhook_event_unique_key",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="payments_we_status_5e2a8c_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.provider}:{self.event_key}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    # Helpers below do not save; the caller saves.

    def mark_processing(self) -> None:
        self.status = WebhookEventStatus.PROCESSING
        self.attempt_count += 1

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message
