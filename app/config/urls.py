"""
URL configuration for the atelier back-office.

URL Structure:
    /admin/                                    - Django admin interface
    /health/                                   - Health check endpoint
    /api/v1/auth/token/                        - Obtain JWT pair
    /api/v1/auth/token/refresh/                - Refresh JWT access token
    /api/v1/payments/                          - Payment endpoints
        checkout/                              - Start a checkout (POST)
        verify/                                - Confirm a settlement by reference (POST)
        transactions/                          - Caller's ledger history (GET)
        subscriptions/{provider}/{id}/cancel/  - Cancel a provider subscription (POST)
        webhooks/{provider}/                   - Provider webhook endpoint (POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    # Authentication (JWT pair issuance for the storefront)
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    # Payments
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Atelier Admin"
admin.site.site_title = "Atelier Admin Portal"
admin.site.index_title = "Back-office"
