"""
Transaction ledger service.

This module provides the TransactionLedger class which encapsulates all
reads and writes of Transaction and InstallmentSchedule rows. The
orchestrator, planner and reconciler never touch those tables directly.

Key guarantees:
- At most one Transaction per (provider, provider_payment_id), enforced
  by a conditional unique constraint; a losing concurrent insert surfaces
  as DuplicateSettlementNoop
- A plan's Transaction and its full schedule are written in one atomic unit
- Rows are never deleted; only status and provider reference fields change

Usage:
    from payments.ledger import ledger

    txn = ledger.record_pending(
        user_id=user.pk,
        amount=Money.from_decimal("150.00", "USD"),
        kind=TransactionKind.ITEM,
        provider="stripe",
        checkout_id=session.session_id,
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.db.models import Prefetch, Q
from django.utils import timezone

from payments.exceptions import DuplicateSettlementNoop, PaymentNotFoundError
from payments.models import InstallmentSchedule, Transaction
from payments.state_machines import InstallmentStatus, TransactionKind, TransactionStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from django.db.models import QuerySet

    from payments.ledger.types import Money, ScheduledPeriod


class TransactionLedger:
    """
    Service class for ledger operations.

    All methods are static - no instance state is maintained. Methods
    that lock rows must be called inside transaction.atomic().
    """

    # =========================================================================
    # Writes
    # =========================================================================

    @staticmethod
    def record_pending(
        user_id: int,
        amount: Money,
        kind: str,
        provider: str,
        checkout_id: str | None = None,
        description: str = "",
        item_id: int | None = None,
        metadata: dict | None = None,
    ) -> Transaction:
        """Insert a pending Transaction for a checkout that was just created."""
        return Transaction.objects.create(
            user_id=user_id,
            amount=amount.to_decimal(),
            currency=amount.currency,
            kind=kind,
            provider=provider,
            provider_checkout_id=checkout_id,
            description=description,
            item_id=item_id,
            metadata=metadata or {},
        )

    @staticmethod
    def create_installment_plan(
        user_id: int,
        total: Money,
        provider: str,
        periods: Sequence[ScheduledPeriod],
        description: str = "",
        item_id: int | None = None,
        metadata: dict | None = None,
    ) -> Transaction:
        """
        Write a pending plan Transaction and its whole schedule atomically.

        Neither row set is visible without the other: a failure while
        inserting the schedule rolls back the Transaction as well.
        """
        with transaction.atomic():
            parent = Transaction.objects.create(
                user_id=user_id,
                amount=total.to_decimal(),
                currency=total.currency,
                kind=TransactionKind.INSTALLMENT,
                provider=provider,
                description=description,
                item_id=item_id,
                metadata=metadata or {},
            )
            InstallmentSchedule.objects.bulk_create(
                [
                    InstallmentSchedule(
                        transaction=parent,
                        installment_number=period.number,
                        total_installments=len(periods),
                        amount=period.amount.to_decimal(),
                        due_date=period.due_date,
                    )
                    for period in periods
                ]
            )
        return parent

    @staticmethod
    def append_installment_payment(
        parent: Transaction,
        installment_number: int,
        reference: str,
        amount: Money,
        checkout_id: str | None = None,
        description: str = "",
    ) -> Transaction:
        """
        Insert a succeeded history row for a later installment.

        The row references the plan's parent and carries its own provider
        reference, so a replay hits the unique constraint.

        Raises:
            DuplicateSettlementNoop: A row for this reference already exists
        """
        try:
            with transaction.atomic():
                return Transaction.objects.create(
                    user_id=parent.user_id,
                    parent=parent,
                    amount=amount.to_decimal(),
                    currency=amount.currency,
                    status=TransactionStatus.SUCCEEDED,
                    kind=TransactionKind.INSTALLMENT,
                    provider=parent.provider,
                    provider_payment_id=reference,
                    provider_checkout_id=checkout_id,
                    item_id=parent.item_id,
                    installment_number=installment_number,
                    description=description,
                    settled_at=timezone.now(),
                )
        except IntegrityError as e:
            raise DuplicateSettlementNoop(
                f"Settlement {reference} already recorded",
                details={"provider": parent.provider, "reference": reference},
            ) from e

    @staticmethod
    def insert_settled(
        user_id: int,
        amount: Money,
        kind: str,
        provider: str,
        reference: str,
        checkout_id: str | None = None,
        description: str = "",
        item_id: int | None = None,
    ) -> Transaction:
        """
        Insert a succeeded Transaction for a settlement with no pending row.

        Raises:
            DuplicateSettlementNoop: A concurrent delivery inserted it first
        """
        try:
            with transaction.atomic():
                return Transaction.objects.create(
                    user_id=user_id,
                    amount=amount.to_decimal(),
                    currency=amount.currency,
                    status=TransactionStatus.SUCCEEDED,
                    kind=kind,
                    provider=provider,
                    provider_payment_id=reference,
                    provider_checkout_id=checkout_id,
                    item_id=item_id,
                    description=description,
                    settled_at=timezone.now(),
                )
        except IntegrityError as e:
            raise DuplicateSettlementNoop(
                f"Settlement {reference} already recorded",
                details={"provider": provider, "reference": reference},
            ) from e

    @staticmethod
    def mark_installment_paid(
        transaction_id: int, installment_number: int, reference: str
    ) -> InstallmentSchedule | None:
        """
        Mark one schedule entry paid.

        Returns the entry when it changed, None when it was already paid.

        Raises:
            PaymentNotFoundError: No such entry
        """
        entry = TransactionLedger.get_installment(transaction_id, installment_number, lock=True)
        if entry.status == InstallmentStatus.PAID:
            return None
        entry.mark_paid(provider_payment_id=reference)
        entry.save(update_fields=["status", "provider_payment_id", "paid_at", "updated_at"])
        return entry

    # =========================================================================
    # Reads
    # =========================================================================

    @staticmethod
    def get_transaction(transaction_id: int, lock: bool = False) -> Transaction:
        """
        Raises:
            PaymentNotFoundError: No such transaction
        """
        queryset = Transaction.objects.select_for_update() if lock else Transaction.objects
        try:
            return queryset.get(pk=transaction_id)
        except Transaction.DoesNotExist:
            raise PaymentNotFoundError(
                f"Transaction {transaction_id} not found",
                details={"transaction_id": transaction_id},
            )

    @staticmethod
    def find_by_reference(
        provider: str,
        reference: str,
        checkout_id: str | None = None,
        lock: bool = False,
    ) -> Transaction | None:
        """
        Find the Transaction a settlement belongs to.

        Matches on provider payment id first, then on the row created for the
        same checkout before its reference was known. History rows of
        installment plans are skipped; they are only reachable through their parent.
        """
        queryset = Transaction.objects.select_for_update() if lock else Transaction.objects
        match = queryset.filter(provider=provider, provider_payment_id=reference).first()
        if match is not None or not checkout_id:
            return match
        return (
            queryset.filter(
                Q(provider_payment_id__isnull=True) | Q(provider_payment_id=""),
                provider=provider,
                provider_checkout_id=checkout_id,
                parent__isnull=True,
            )
            .order_by("created_at")
            .first()
        )

    @staticmethod
    def get_installment(
        transaction_id: int, installment_number: int, lock: bool = False
    ) -> InstallmentSchedule:
        """
        Raises:
            PaymentNotFoundError: No such entry
        """
        queryset = InstallmentSchedule.objects.select_for_update() if lock else InstallmentSchedule.objects
        try:
            return queryset.get(
                transaction_id=transaction_id,
                installment_number=installment_number,
            )
        except InstallmentSchedule.DoesNotExist:
            raise PaymentNotFoundError(
                f"Installment {installment_number} of transaction {transaction_id} not found",
                details={
                    "transaction_id": transaction_id,
                    "installment_number": installment_number,
                },
            )

    @staticmethod
    def history_for_user(user_id: int) -> QuerySet[Transaction]:
        """A user's transactions, newest first, with their schedules prefetched."""
        return (
            Transaction.objects.filter(user_id=user_id)
            .prefetch_related(
                Prefetch(
                    "installments",
                    queryset=InstallmentSchedule.objects.order_by("installment_number"),
                )
            )
            .order_by("-created_at")
        )


ledger = TransactionLedger()
