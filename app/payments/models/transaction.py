"""
Transaction model: the ledger row for one payment attempt.

A Transaction is created PENDING when a checkout starts (or lazily when a
settlement arrives with no prior row) and leaves PENDING only through the
settlement reconciler. Rows are never deleted.

Installment plans use one parent Transaction for the whole plan. The first
period's settlement updates the parent in place; every later period is
recorded as its own SUCCEEDED history row pointing at the parent.

Usage:
    from payments.models import Transaction
    from payments.state_machines import TransactionKind, ProviderName

    txn = Transaction.objects.create(
        user=user,
        amount=Decimal("150.00"),
        currency="USD",
        kind=TransactionKind.ITEM,
        provider=ProviderName.STRIPE,
        provider_checkout_id="cs_test_123",
    )

    # State transitions using django-fsm
    txn.succeed(provider_payment_id="pi_123")
    txn.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel

from payments.state_machines import ProviderName, TransactionKind, TransactionStatus


class Transaction(BaseModel):
    """
    Durable record of a payment attempt and its outcome.

    State Flow:
        PENDING -> SUCCEEDED
        PENDING -> FAILED
        PENDING -> CANCELED

    Fields:
        user: Owning user (payer)
        amount: Decimal amount in major units
        currency: ISO 4217 code (upper case)
        status: Current FSM state
        kind: What is being paid for (one-time, subscription, installment, item)
        provider: Payment provider that handled the checkout
        provider_payment_id: Provider's payment reference (idempotency key)
        provider_checkout_id: Provider's checkout/session id
        parent: Parent installment plan for installment history rows
        installment_number: Period this row settled (installment rows only)
        item_id: Catalog item being purchased, if any
        description: Human-readable summary for statements
        metadata: Round-tripped checkout metadata
        settled_at / failure_reason: Outcome details

    Note:
        (provider, provider_payment_id) is unique whenever the payment id is
        set. This is the boundary that absorbs webhook replays.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payment_transactions",
        help_text="User making the payment",
    )

    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="installment_payments",
        help_text="Installment plan this history row belongs to",
    )

    # ==========================================================================
    # Amount & Currency
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Payment amount in major currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code (upper case)",
    )

    # ==========================================================================
    # Classification & State
    # ==========================================================================

    status = FSMField(
        default=TransactionStatus.PENDING,
        choices=TransactionStatus.choices,
        db_index=True,
        help_text="Current state of the transaction (managed by FSM)",
    )

    kind = models.CharField(
        max_length=20,
        choices=TransactionKind.choices,
        help_text="What the purchaser is paying for",
    )

    provider = models.CharField(
        max_length=20,
        choices=ProviderName.choices,
        help_text="Payment provider that processed the checkout",
    )

    # ==========================================================================
    # Provider References
    # ==========================================================================

    provider_payment_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Provider payment reference (pi_xxx, Paystack reference)",
    )

    provider_checkout_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Provider checkout session id (cs_xxx, Paystack reference)",
    )

    # ==========================================================================
    # Purchase Details
    # ==========================================================================

    item_id = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Catalog item purchased, if any",
    )

    installment_number = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="Installment period settled by this row",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description of the payment",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Checkout metadata that round-trips through the provider",
    )

    # ==========================================================================
    # Outcome
    # ==========================================================================

    settled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the provider confirmed the outcome",
    )

    failure_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Provider-reported reason for failure or cancellation",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Transaction"
        verbose_name_plural = "Transactions"
        indexes = [
            models.Index(fields=["user", "created_at"], name="payments_tr_user_id_7d1c2a_idx"),
            models.Index(
                fields=["provider", "provider_checkout_id"],
                name="payments_tr_provide_3b9f4e_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "provider_payment_id"],
                condition=models.Q(provider_payment_id__isnull=False),
                name="transaction_unique_provider_payment",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="transaction_amount_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Transaction({self.pk}, {self.kind}, {self.status}, {self.amount} {self.currency})"

    @property
    def is_terminal(self) -> bool:
        return self.status != TransactionStatus.PENDING

    @property
    def is_installment_plan(self) -> bool:
        """True for the parent row of an installment plan."""
        return self.kind == TransactionKind.INSTALLMENT and self.parent_id is None

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[TransactionStatus.PENDING, TransactionStatus.FAILED, TransactionStatus.CANCELED],
        target=TransactionStatus.SUCCEEDED,
    )
    def succeed(self, provider_payment_id: str | None = None):
        """
        Record a confirmed payment.

        A provider confirmation outranks an earlier failure or cancel,
        so a row closed too early can still be settled.

        Transition: PENDING/FAILED/CANCELED -> SUCCEEDED
        """
        if provider_payment_id:
            self.provider_payment_id = provider_payment_id
        self.failure_reason = None
        self.settled_at = timezone.now()

    @transition(
        field=status,
        source=TransactionStatus.PENDING,
        target=TransactionStatus.FAILED,
    )
    def fail(self, reason: str = ""):
        """Transition: PENDING -> FAILED"""
        self.failure_reason = reason or None
        self.settled_at = timezone.now()

    @transition(
        field=status,
        source=TransactionStatus.PENDING,
        target=TransactionStatus.CANCELED,
    )
    def cancel(self, reason: str = ""):
        """Transition: PENDING -> CANCELED"""
        self.failure_reason = reason or None
        self.settled_at = timezone.now()
