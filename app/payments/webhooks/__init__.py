"""
Webhook handling for payment provider callbacks.

Callbacks are verified by the provider's adapter, stored idempotently as
WebhookEvent rows, and processed synchronously.

Usage:
    # In urls.py
    from payments.webhooks.views import provider_webhook

    urlpatterns = [
        path("webhooks/<str:provider>/", provider_webhook, name="provider_webhook"),
    ]
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler
from payments.webhooks.views import provider_webhook

__all__ = [
    "dispatch_webhook",
    "provider_webhook",
    "register_handler",
]
