"""
Payments app configuration.

This app provides the payment orchestration and reconciliation engine:
- Provider adapters (Stripe, Paystack) behind one registry
- Transaction ledger and installment schedules
- Settlement reconciliation and production task fulfillment
- Webhook handling
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        # One adapter instance per provider for the life of the process
        from payments.adapters.registry import build_from_settings, set_registry

        set_registry(build_from_settings())
