"""
URL configuration for the payments app.

Routes:
    - POST /checkout/ - Create checkout session
    - POST /verify/ - Verify a payment by reference
    - GET /transactions/ - Caller's transaction history
    - POST /subscriptions/<provider>/<subscription_id>/cancel/ - Cancel subscription
    - POST /webhooks/<provider>/ - Provider webhook endpoint

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments.views import (
    CancelSubscriptionView,
    CheckoutView,
    TransactionListView,
    VerifyPaymentView,
)
from payments.webhooks.views import provider_webhook

app_name = "payments"

urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path("verify/", VerifyPaymentView.as_view(), name="verify"),
    path("transactions/", TransactionListView.as_view(), name="transactions"),
    path(
        "subscriptions/<str:provider>/<str:subscription_id>/cancel/",
        CancelSubscriptionView.as_view(),
        name="cancel_subscription",
    ),
    # Webhook endpoints
    path("webhooks/<str:provider>/", provider_webhook, name="provider_webhook"),
]
