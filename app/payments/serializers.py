"""
DRF serializers for payments app.

This module provides serializers for:
- Checkout and verification requests
- Transaction history with installment schedules
- Subscription display

Related files:
    - models/: Transaction, InstallmentSchedule, Subscription
    - views.py: Payment API views

Usage:
    serializer = CheckoutRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import InstallmentSchedule, Subscription, Transaction
from payments.state_machines import ProviderName, TransactionKind


class CheckoutRequestSerializer(serializers.Serializer):
    """
    Serializer for checkout session creation.

    Fields:
        kind: Purchase kind (one-time, subscription, installment, item)
        provider: Payment provider (defaults to the configured provider)
        amount: Major-unit amount; optional when item_id is given
        currency: ISO 4217 code
        item_id: Catalog item being purchased
        plan_id: Subscription plan identifier
        transaction_id / installment_number: Pay a later period of a plan
        quantity, delivery_address, notes: Passed to the production task
        success_url / cancel_url: Override the default redirects
    """

    kind = serializers.ChoiceField(
        choices=TransactionKind.choices,
        default=TransactionKind.ONE_TIME,
    )
    provider = serializers.ChoiceField(
        choices=ProviderName.choices,
        required=False,
    )
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=0,
        required=False,
    )
    currency = serializers.CharField(max_length=3, default="USD")
    item_id = serializers.IntegerField(min_value=1, required=False)
    plan_id = serializers.CharField(max_length=255, required=False)
    transaction_id = serializers.IntegerField(min_value=1, required=False)
    installment_number = serializers.IntegerField(min_value=1, required=False)
    quantity = serializers.IntegerField(min_value=1, default=1)
    delivery_address = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    success_url = serializers.URLField(required=False)
    cancel_url = serializers.URLField(required=False)

    def validate_currency(self, value: str) -> str:
        return value.upper()

    def validate(self, attrs):
        if attrs.get("installment_number") and not attrs.get("transaction_id"):
            raise serializers.ValidationError(
                {"transaction_id": "Required when installment_number is given."}
            )
        if attrs.get("transaction_id") and not attrs.get("installment_number"):
            raise serializers.ValidationError(
                {"installment_number": "Required when transaction_id is given."}
            )
        if attrs.get("amount") is None and not attrs.get("item_id") and not attrs.get("transaction_id"):
            raise serializers.ValidationError({"amount": "Required when no item_id is given."})
        return attrs


class CheckoutResponseSerializer(serializers.Serializer):
    session_id = serializers.CharField()
    url = serializers.CharField(source="redirect_url", allow_null=True)
    transaction_id = serializers.IntegerField(allow_null=True)
    installment_number = serializers.IntegerField(allow_null=True)


class VerifyRequestSerializer(serializers.Serializer):
    """Reference returned to the storefront by the provider redirect."""

    provider = serializers.ChoiceField(choices=ProviderName.choices, required=False)
    reference = serializers.CharField(max_length=255)


class InstallmentScheduleSerializer(serializers.ModelSerializer):
    class Meta:
        model = InstallmentSchedule
        fields = [
            "installment_number",
            "total_installments",
            "amount",
            "due_date",
            "status",
            "paid_at",
        ]
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    """
    Transaction serializer for payment history.

    Plan parents include their schedule; history rows point at their parent.
    """

    installments = InstallmentScheduleSerializer(many=True, read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "parent",
            "amount",
            "currency",
            "status",
            "kind",
            "provider",
            "provider_payment_id",
            "item_id",
            "installment_number",
            "description",
            "created_at",
            "settled_at",
            "installments",
        ]
        read_only_fields = fields


class SubscriptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subscription
        fields = [
            "provider",
            "provider_subscription_id",
            "plan_id",
            "status",
            "current_period_end",
            "cancel_at_period_end",
            "canceled_at",
        ]
        read_only_fields = fields
