"""
DRF views for payments app.

This module provides API views for:
- Checkout session creation
- Payment verification after the provider redirect
- Transaction history
- Subscription cancellation

Related files:
    - services/: CheckoutOrchestrator, SettlementReconciler
    - serializers.py: Request/response serializers
    - urls.py: URL routing
    - webhooks/views.py: Provider webhook endpoint

Endpoints:
    POST /api/v1/payments/checkout/ - Create checkout session
    POST /api/v1/payments/verify/ - Confirm a payment by reference
    GET /api/v1/payments/transactions/ - List transactions
    POST /api/v1/payments/subscriptions/<provider>/<id>/cancel/ - Cancel subscription

Security:
    - All endpoints require authentication (webhooks live in webhooks/)
"""

from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import ConflictError

from payments.exceptions import (
    PaymentError,
    PaymentNotFoundError,
    ProviderRequestError,
)
from payments.ledger import ledger
from payments.services import (
    PurchaseRequest,
    get_checkout_orchestrator,
    get_settlement_reconciler,
)

from .serializers import (
    CheckoutRequestSerializer,
    CheckoutResponseSerializer,
    SubscriptionSerializer,
    TransactionSerializer,
    VerifyRequestSerializer,
)

logger = logging.getLogger(__name__)


def error_response(exc: Exception) -> Response:
    """Map a domain exception to an HTTP response."""
    if isinstance(exc, ProviderRequestError):
        http_status = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, PaymentNotFoundError):
        http_status = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConflictError):
        http_status = status.HTTP_409_CONFLICT
    else:
        http_status = status.HTTP_400_BAD_REQUEST
    return Response(exc.to_dict(), status=http_status)


class CheckoutView(APIView):
    """
    Create a provider checkout session.

    POST /api/v1/payments/checkout/

    Request body:
        {"kind": "item", "item_id": 42, "provider": "stripe"}
        {"kind": "installment", "item_id": 42}
        {"kind": "installment", "transaction_id": 17, "installment_number": 2}

    Returns:
        {"session_id": "...", "url": "https://...", "transaction_id": 17,
         "installment_number": 1}
    """

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        purchase = PurchaseRequest(
            user_id=request.user.pk,
            kind=data["kind"],
            provider=data.get("provider"),
            amount=data.get("amount"),
            currency=data["currency"],
            item_id=data.get("item_id"),
            plan_id=data.get("plan_id"),
            transaction_id=data.get("transaction_id"),
            installment_number=data.get("installment_number"),
            quantity=data["quantity"],
            delivery_address=data["delivery_address"],
            production_notes=data["notes"],
            success_url=data.get("success_url"),
            cancel_url=data.get("cancel_url"),
        )

        try:
            result = get_checkout_orchestrator().start_checkout(purchase)
        except (PaymentError, ConflictError) as e:
            logger.warning(
                f"Checkout failed: {e.message}",
                extra={"user_id": request.user.pk, "error_code": e.error_code},
            )
            return error_response(e)

        return Response(CheckoutResponseSerializer(result).data, status=status.HTTP_201_CREATED)


class VerifyPaymentView(APIView):
    """
    Confirm a payment with the provider before showing a success page.

    POST /api/v1/payments/verify/

    Request body:
        {"provider": "paystack", "reference": "T123456"}

    Returns:
        {"success": true}
    """

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = VerifyRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        provider = serializer.validated_data.get("provider") or settings.DEFAULT_PAYMENT_PROVIDER
        reference = serializer.validated_data["reference"]

        try:
            success = get_settlement_reconciler().verify(provider, reference)
        except (PaymentError, ConflictError) as e:
            logger.error(
                f"Payment verification failed: {e.message}",
                extra={
                    "provider": provider,
                    "reference": reference,
                    "error_code": e.error_code,
                },
            )
            return error_response(e)

        return Response({"success": success})


class TransactionListView(APIView):
    """
    List the caller's transactions.

    GET /api/v1/payments/transactions/
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        transactions = ledger.history_for_user(request.user.pk)
        return Response(TransactionSerializer(transactions, many=True).data)


class CancelSubscriptionView(APIView):
    """
    Cancel one of the caller's subscriptions.

    POST /api/v1/payments/subscriptions/<provider>/<subscription_id>/cancel/
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, provider: str, subscription_id: str):
        try:
            subscription = get_checkout_orchestrator().cancel_subscription(
                user_id=request.user.pk,
                provider=provider,
                subscription_id=subscription_id,
            )
        except (PaymentError, ConflictError) as e:
            logger.warning(
                f"Subscription cancel failed: {e.message}",
                extra={"subscription_id": subscription_id, "error_code": e.error_code},
            )
            return error_response(e)

        return Response(SubscriptionSerializer(subscription).data)
