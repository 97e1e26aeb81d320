"""
Payment admin configuration.

Registers payment domain models with the Django admin. Ledger rows are
read-only here; state changes go through the reconciler.
"""

from django.contrib import admin

from payments.models import (
    InstallmentSchedule,
    PaymentProfile,
    Subscription,
    Transaction,
    WebhookEvent,
)

__all__ = [
    "InstallmentScheduleInline",
    "PaymentProfileAdmin",
    "SubscriptionAdmin",
    "TransactionAdmin",
    "WebhookEventAdmin",
]


class InstallmentScheduleInline(admin.TabularInline):
    model = InstallmentSchedule
    extra = 0
    can_delete = False
    fields = [
        "installment_number",
        "total_installments",
        "amount",
        "due_date",
        "status",
        "provider_payment_id",
        "paid_at",
    ]
    readonly_fields = fields
    ordering = ["installment_number"]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """
    Admin configuration for Transaction.

    Provides visibility into payment attempts, installment plans and
    their history rows. Transactions are never deleted.
    """

    list_display = [
        "id",
        "user",
        "kind",
        "amount",
        "currency",
        "status",
        "provider",
        "parent",
        "installment_number",
        "created_at",
    ]
    list_filter = ["status", "kind", "provider", "currency", "created_at"]
    search_fields = [
        "id",
        "provider_payment_id",
        "provider_checkout_id",
        "user__email",
        "description",
    ]
    readonly_fields = [
        "id",
        "user",
        "parent",
        "amount",
        "currency",
        "status",
        "kind",
        "provider",
        "provider_payment_id",
        "provider_checkout_id",
        "item_id",
        "installment_number",
        "metadata",
        "settled_at",
        "failure_reason",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [InstallmentScheduleInline]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "user", "kind", "status", "description"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount", "currency"),
            },
        ),
        (
            "Provider",
            {
                "fields": ("provider", "provider_payment_id", "provider_checkout_id"),
            },
        ),
        (
            "Installments",
            {
                "fields": ("parent", "installment_number", "item_id"),
            },
        ),
        (
            "Outcome",
            {
                "fields": ("settled_at", "failure_reason"),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("metadata",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "user",
        "provider",
        "provider_subscription_id",
        "plan_id",
        "status",
        "current_period_end",
        "cancel_at_period_end",
    ]
    list_filter = ["status", "provider", "cancel_at_period_end"]
    search_fields = ["provider_subscription_id", "user__email", "plan_id"]
    readonly_fields = ["created_at", "updated_at", "canceled_at"]
    ordering = ["-created_at"]


@admin.register(PaymentProfile)
class PaymentProfileAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "provider", "customer_id", "created_at"]
    list_filter = ["provider"]
    search_fields = ["customer_id", "user__email"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "provider",
        "event_key",
        "event_type",
        "status",
        "attempt_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["provider", "status", "event_type", "created_at"]
    search_fields = ["id", "event_key", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "provider",
        "event_key",
        "event_type",
        "payload",
        "processed_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "provider", "event_key", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "attempt_count"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )
