"""
Tests for TransactionLedger.

Covers plan atomicity, replay detection through the unique provider
reference, and settlement lookup rules.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.utils import timezone

from authentication.tests.factories import UserFactory
from payments.exceptions import DuplicateSettlementNoop, PaymentNotFoundError
from payments.ledger import Money, ScheduledPeriod, ledger
from payments.models import InstallmentSchedule, Transaction
from payments.state_machines import (
    InstallmentStatus,
    TransactionKind,
    TransactionStatus,
)
from payments.tests.factories import InstallmentPlanFactory, TransactionFactory


def _periods(*minors):
    now = timezone.now()
    return [
        ScheduledPeriod(number=i, amount=Money(minor, "USD"), due_date=now + timedelta(days=30 * (i - 1)))
        for i, minor in enumerate(minors, start=1)
    ]


# =============================================================================
# Plan Creation
# =============================================================================


class TestCreateInstallmentPlan:
    def test_writes_parent_and_schedule(self, db):
        user = UserFactory()

        parent = ledger.create_installment_plan(
            user_id=user.pk,
            total=Money(10000, "USD"),
            provider="paystack",
            periods=_periods(3333, 3333, 3334),
            description="Installment plan for Silk Wrap Dress",
            item_id=7,
        )

        assert parent.status == TransactionStatus.PENDING
        assert parent.kind == TransactionKind.INSTALLMENT
        assert parent.amount == Decimal("100.00")
        entries = list(parent.installments.order_by("installment_number"))
        assert [e.installment_number for e in entries] == [1, 2, 3]
        assert all(e.total_installments == 3 for e in entries)
        assert sum(e.amount for e in entries) == parent.amount

    def test_schedule_failure_rolls_back_parent(self, db):
        """
        Given the schedule insert fails
        When the plan is created
        Then no Transaction row survives either
        """
        user = UserFactory()

        with patch.object(
            InstallmentSchedule.objects, "bulk_create", side_effect=DatabaseError("disk full")
        ):
            with pytest.raises(DatabaseError):
                ledger.create_installment_plan(
                    user_id=user.pk,
                    total=Money(10000, "USD"),
                    provider="paystack",
                    periods=_periods(5000, 5000),
                )

        assert Transaction.objects.count() == 0


# =============================================================================
# Settled Writes
# =============================================================================


class TestSettledWrites:
    def test_append_installment_payment(self, db):
        plan = InstallmentPlanFactory(periods=3)

        row = ledger.append_installment_payment(
            plan,
            installment_number=2,
            reference="T2",
            amount=Money(3333, "USD"),
            checkout_id="T2",
            description="Installment 2 for Silk Wrap Dress",
        )

        assert row.parent_id == plan.pk
        assert row.status == TransactionStatus.SUCCEEDED
        assert row.installment_number == 2
        assert row.user_id == plan.user_id
        assert row.provider == plan.provider

    def test_append_replay_is_duplicate(self, db):
        plan = InstallmentPlanFactory(periods=3)
        ledger.append_installment_payment(plan, 2, "T2", Money(3333, "USD"))

        with pytest.raises(DuplicateSettlementNoop):
            ledger.append_installment_payment(plan, 2, "T2", Money(3333, "USD"))

        assert Transaction.objects.filter(parent=plan).count() == 1

    def test_insert_settled_replay_is_duplicate(self, db):
        user = UserFactory()
        ledger.insert_settled(user.pk, Money(500, "USD"), "one-time", "paystack", "T9")

        with pytest.raises(DuplicateSettlementNoop):
            ledger.insert_settled(user.pk, Money(500, "USD"), "one-time", "paystack", "T9")

    def test_mark_installment_paid_once(self, db):
        plan = InstallmentPlanFactory(periods=2)

        first = ledger.mark_installment_paid(plan.pk, 1, "T1")
        second = ledger.mark_installment_paid(plan.pk, 1, "T1-again")

        assert first.status == InstallmentStatus.PAID
        assert second is None
        assert ledger.get_installment(plan.pk, 1).provider_payment_id == "T1"

    def test_mark_unknown_installment(self, db):
        plan = InstallmentPlanFactory(periods=2)

        with pytest.raises(PaymentNotFoundError):
            ledger.mark_installment_paid(plan.pk, 5, "T5")


# =============================================================================
# Lookups
# =============================================================================


class TestFindByReference:
    def test_matches_provider_reference(self, db):
        txn = TransactionFactory(provider_payment_id="T1", status=TransactionStatus.SUCCEEDED)

        assert ledger.find_by_reference("paystack", "T1") == txn

    def test_reference_is_scoped_to_provider(self, db):
        TransactionFactory(provider_payment_id="T1")

        assert ledger.find_by_reference("stripe", "T1") is None

    def test_falls_back_to_pending_checkout(self, db):
        txn = TransactionFactory(provider="stripe", provider_checkout_id="cs_test_1")

        assert ledger.find_by_reference("stripe", "pi_1", checkout_id="cs_test_1") == txn

    def test_history_rows_not_matched_by_checkout(self, db):
        plan = InstallmentPlanFactory(provider_checkout_id="T10")
        TransactionFactory(
            parent=plan,
            user=plan.user,
            provider_checkout_id="T11",
            kind=TransactionKind.INSTALLMENT,
        )

        assert ledger.find_by_reference("paystack", "X", checkout_id="T11") is None

    def test_get_transaction_missing(self, db):
        with pytest.raises(PaymentNotFoundError):
            ledger.get_transaction(999_999)


class TestHistoryForUser:
    def test_only_callers_rows_newest_first(self, db):
        user = UserFactory()
        older = TransactionFactory(user=user)
        newer = InstallmentPlanFactory(user=user)
        TransactionFactory()
        Transaction.objects.filter(pk=older.pk).update(
            created_at=timezone.now() - timedelta(days=1)
        )

        history = list(ledger.history_for_user(user.pk))

        assert history == [newer, older]
        assert len(history[0].installments.all()) == 3
