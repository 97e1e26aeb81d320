"""
InstallmentSchedule model: one period of an installment plan.

The full schedule is written together with its parent Transaction in a
single database transaction and is never extended or shortened afterwards.
Only status, provider_payment_id and paid_at change, and only through the
settlement reconciler.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel

from payments.state_machines import InstallmentStatus


class InstallmentSchedule(BaseModel):
    """
    A single scheduled period of an installment plan.

    State Flow:
        PENDING -> PAID

    Fields:
        transaction: Parent installment Transaction
        installment_number: 1-based period number
        total_installments: Number of periods in the plan
        amount: Amount due for this period
        due_date: When the period is due (period 1 is due at plan creation)
        status: Current FSM state
        provider_payment_id: Provider reference once paid
        paid_at: When the settlement was applied
    """

    transaction = models.ForeignKey(
        "payments.Transaction",
        on_delete=models.PROTECT,
        related_name="installments",
        help_text="Parent installment plan transaction",
    )

    installment_number = models.PositiveSmallIntegerField(
        help_text="1-based period number",
    )

    total_installments = models.PositiveSmallIntegerField(
        help_text="Number of periods in the plan",
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount due for this period",
    )

    due_date = models.DateTimeField(
        help_text="When this period is due",
    )

    status = FSMField(
        default=InstallmentStatus.PENDING,
        choices=InstallmentStatus.choices,
        db_index=True,
        help_text="Payment state of this period (managed by FSM)",
    )

    provider_payment_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Provider payment reference that settled this period",
    )

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When this period was paid",
    )

    class Meta:
        ordering = ["transaction", "installment_number"]
        verbose_name = "Installment"
        verbose_name_plural = "Installment Schedule"
        constraints = [
            models.UniqueConstraint(
                fields=["transaction", "installment_number"],
                name="installment_unique_period",
            ),
            models.CheckConstraint(
                condition=models.Q(installment_number__gte=1)
                & models.Q(installment_number__lte=models.F("total_installments")),
                name="installment_number_in_range",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"Installment({self.transaction_id} "
            f"#{self.installment_number}/{self.total_installments}, {self.status})"
        )

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID

    @transition(
        field=status,
        source=InstallmentStatus.PENDING,
        target=InstallmentStatus.PAID,
    )
    def mark_paid(self, provider_payment_id: str | None = None):
        """Transition: PENDING -> PAID"""
        self.provider_payment_id = provider_payment_id
        self.paid_at = timezone.now()
