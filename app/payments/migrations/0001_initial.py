# Generated manually - Initial payment orchestration schema

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create the transaction ledger, installment schedule and provider tracking tables."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Transaction",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Payment amount in major currency units",
                        max_digits=12,
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="USD",
                        help_text="ISO 4217 currency code (upper case)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                            ("canceled", "Canceled"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current state of the transaction (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("one-time", "One-time Purchase"),
                            ("subscription", "Subscription"),
                            ("installment", "Installment Plan"),
                            ("item", "Item Purchase"),
                        ],
                        help_text="What the purchaser is paying for",
                        max_length=20,
                    ),
                ),
                (
                    "provider",
                    models.CharField(
                        choices=[("stripe", "Stripe"), ("paystack", "Paystack")],
                        help_text="Payment provider that processed the checkout",
                        max_length=20,
                    ),
                ),
                (
                    "provider_payment_id",
                    models.CharField(
                        blank=True,
                        help_text="Provider payment reference (pi_xxx, Paystack reference)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "provider_checkout_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Provider checkout session id (cs_xxx, Paystack reference)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "item_id",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Catalog item purchased, if any",
                        null=True,
                    ),
                ),
                (
                    "installment_number",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Installment period settled by this row",
                        null=True,
                    ),
                ),
                (
                    "description",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Human-readable description of the payment",
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Checkout metadata that round-trips through the provider",
                    ),
                ),
                (
                    "settled_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the provider confirmed the outcome",
                        null=True,
                    ),
                ),
                (
                    "failure_reason",
                    models.TextField(
                        blank=True,
                        help_text="Provider-reported reason for failure or cancellation",
                        null=True,
                    ),
                ),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        help_text="Installment plan this history row belongs to",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="installment_payments",
                        to="payments.transaction",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="User making the payment",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Transaction",
                "verbose_name_plural": "Transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["user", "created_at"],
                        name="payments_tr_user_id_7d1c2a_idx",
                    ),
                    models.Index(
                        fields=["provider", "provider_checkout_id"],
                        name="payments_tr_provide_3b9f4e_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("provider_payment_id__isnull", False)),
                        fields=("provider", "provider_payment_id"),
                        name="transaction_unique_provider_payment",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("amount__gte", 0)),
                        name="transaction_amount_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InstallmentSchedule",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "installment_number",
                    models.PositiveSmallIntegerField(help_text="1-based period number"),
                ),
                (
                    "total_installments",
                    models.PositiveSmallIntegerField(help_text="Number of periods in the plan"),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Amount due for this period",
                        max_digits=12,
                    ),
                ),
                ("due_date", models.DateTimeField(help_text="When this period is due")),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[("pending", "Pending"), ("paid", "Paid")],
                        db_index=True,
                        default="pending",
                        help_text="Payment state of this period (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "provider_payment_id",
                    models.CharField(
                        blank=True,
                        help_text="Provider payment reference that settled this period",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "paid_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When this period was paid",
                        null=True,
                    ),
                ),
                (
                    "transaction",
                    models.ForeignKey(
                        help_text="Parent installment plan transaction",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="installments",
                        to="payments.transaction",
                    ),
                ),
            ],
            options={
                "verbose_name": "Installment",
                "verbose_name_plural": "Installment Schedule",
                "ordering": ["transaction", "installment_number"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("transaction", "installment_number"),
                        name="installment_unique_period",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("installment_number__gte", 1),
                            ("installment_number__lte", models.F("total_installments")),
                        ),
                        name="installment_number_in_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentProfile",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "provider",
                    models.CharField(
                        choices=[("stripe", "Stripe"), ("paystack", "Paystack")],
                        help_text="Provider holding the customer record",
                        max_length=20,
                    ),
                ),
                (
                    "customer_id",
                    models.CharField(
                        help_text="Provider customer id (cus_xxx)",
                        max_length=255,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Platform user",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment_profiles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Profile",
                "verbose_name_plural": "Payment Profiles",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user", "provider"),
                        name="payment_profile_unique_user_provider",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Subscription",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "provider",
                    models.CharField(
                        choices=[("stripe", "Stripe"), ("paystack", "Paystack")],
                        help_text="Provider that bills this subscription",
                        max_length=20,
                    ),
                ),
                (
                    "provider_subscription_id",
                    models.CharField(
                        help_text="Provider subscription id (sub_xxx, SUB_xxx)",
                        max_length=255,
                    ),
                ),
                (
                    "plan_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Platform plan identifier",
                        max_length=255,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("active", "Active"),
                            ("past_due", "Past Due"),
                            ("canceled", "Canceled"),
                        ],
                        db_index=True,
                        default="active",
                        help_text="Provider-reported status (managed by FSM)",
                        max_length=50,
                    ),
                ),
                (
                    "current_period_end",
                    models.DateTimeField(
                        blank=True,
                        help_text="End of the current paid period",
                        null=True,
                    ),
                ),
                (
                    "cancel_at_period_end",
                    models.BooleanField(
                        default=False,
                        help_text="Whether cancellation takes effect at period end",
                    ),
                ),
                (
                    "canceled_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the provider reported cancellation",
                        null=True,
                    ),
                ),
                (
                    "transaction",
                    models.ForeignKey(
                        blank=True,
                        help_text="Checkout transaction that started the subscription",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="subscriptions",
                        to="payments.transaction",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Subscriber",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_subscriptions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Subscription",
                "verbose_name_plural": "Subscriptions",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("provider", "provider_subscription_id"),
                        name="subscription_unique_provider_id",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "provider",
                    models.CharField(
                        choices=[("stripe", "Stripe"), ("paystack", "Paystack")],
                        help_text="Provider that sent the callback",
                        max_length=20,
                    ),
                ),
                (
                    "event_key",
                    models.CharField(
                        help_text="Provider event id, or sha256 of the raw body",
                        max_length=255,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Provider event type (e.g. 'checkout.session.completed')",
                        max_length=100,
                    ),
                ),
                ("payload", models.JSONField(help_text="Full callback payload (JSON)")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current processing status",
                        max_length=20,
                    ),
                ),
                (
                    "processed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When event was successfully processed",
                        null=True,
                    ),
                ),
                (
                    "error_message",
                    models.TextField(
                        blank=True,
                        help_text="Error message if processing failed",
                        null=True,
                    ),
                ),
                (
                    "attempt_count",
                    models.PositiveSmallIntegerField(
                        default=0,
                        help_text="Number of processing attempts (provider redeliveries)",
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="payments_we_status_5e2a8c_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("provider", "event_key"),
                        name="webhook_event_unique_key",
                    ),
                ],
            },
        ),
    ]
