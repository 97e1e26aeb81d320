"""
Tests for state machine transitions using django-fsm.

Tests valid and invalid state transitions for Transaction,
InstallmentSchedule, Subscription and WebhookEvent.
"""

import pytest
from django.db import IntegrityError, transaction
from django_fsm import TransitionNotAllowed

from payments.state_machines import (
    InstallmentStatus,
    SubscriptionStatus,
    TransactionKind,
    TransactionStatus,
    WebhookEventStatus,
)
from payments.tests.factories import (
    InstallmentPlanFactory,
    SubscriptionFactory,
    TransactionFactory,
    WebhookEventFactory,
)


# =============================================================================
# Transaction State Transition Tests
# =============================================================================


class TestTransactionTransitions:
    """Tests for Transaction state machine transitions."""

    # -------------------------------------------------------------------------
    # Valid Transitions
    # -------------------------------------------------------------------------

    def test_pending_to_succeeded(self, db):
        """Should record the provider reference and settlement time."""
        txn = TransactionFactory()

        txn.succeed(provider_payment_id="T12345")
        txn.save()

        txn.refresh_from_db()
        assert txn.status == TransactionStatus.SUCCEEDED
        assert txn.provider_payment_id == "T12345"
        assert txn.settled_at is not None

    def test_pending_to_failed(self, db):
        txn = TransactionFactory()

        txn.fail(reason="Declined")
        txn.save()

        assert txn.status == TransactionStatus.FAILED
        assert txn.failure_reason == "Declined"

    def test_pending_to_canceled(self, db):
        txn = TransactionFactory()

        txn.cancel(reason="Checkout session expired")
        txn.save()

        assert txn.status == TransactionStatus.CANCELED
        assert txn.is_terminal

    def test_failed_to_succeeded_clears_reason(self, db):
        """
        Given a row closed as failed
        When the provider later confirms the payment
        Then the row succeeds and the failure reason is cleared
        """
        txn = TransactionFactory(status=TransactionStatus.FAILED, failure_reason="Declined")

        txn.succeed(provider_payment_id="T1")
        txn.save()

        txn.refresh_from_db()
        assert txn.status == TransactionStatus.SUCCEEDED
        assert txn.failure_reason is None
        assert txn.provider_payment_id == "T1"

    def test_canceled_to_succeeded(self, db):
        txn = TransactionFactory(status=TransactionStatus.CANCELED, failure_reason="abandoned")

        txn.succeed(provider_payment_id="T1")

        assert txn.status == TransactionStatus.SUCCEEDED

    # -------------------------------------------------------------------------
    # Invalid Transitions
    # -------------------------------------------------------------------------

    def test_cannot_succeed_twice(self, db):
        txn = TransactionFactory(status=TransactionStatus.SUCCEEDED, provider_payment_id="T1")

        with pytest.raises(TransitionNotAllowed):
            txn.succeed(provider_payment_id="T2")

    def test_cannot_fail_after_success(self, db):
        txn = TransactionFactory(status=TransactionStatus.SUCCEEDED, provider_payment_id="T1")

        with pytest.raises(TransitionNotAllowed):
            txn.fail(reason="late failure")


# =============================================================================
# Transaction Constraint Tests
# =============================================================================


class TestTransactionConstraints:
    """Database-level guarantees on the ledger."""

    def test_provider_reference_is_unique(self, db):
        TransactionFactory(provider_payment_id="T1", status=TransactionStatus.SUCCEEDED)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                TransactionFactory(provider_payment_id="T1", status=TransactionStatus.SUCCEEDED)

    def test_same_reference_allowed_across_providers(self, db):
        TransactionFactory(provider="paystack", provider_payment_id="REF1")
        TransactionFactory(provider="stripe", provider_payment_id="REF1")

    def test_many_pending_rows_without_reference(self, db):
        TransactionFactory(provider_payment_id=None)
        TransactionFactory(provider_payment_id=None)

    def test_plan_parent_is_installment_plan(self, db):
        plan = InstallmentPlanFactory()
        history = TransactionFactory(parent=plan, kind=TransactionKind.INSTALLMENT, user=plan.user)

        assert plan.is_installment_plan
        assert not history.is_installment_plan


# =============================================================================
# Installment Schedule Tests
# =============================================================================


class TestInstallmentSchedule:
    def test_plan_factory_conserves_total(self, db):
        plan = InstallmentPlanFactory(periods=3)

        amounts = [entry.amount for entry in plan.installments.order_by("installment_number")]

        assert [str(a) for a in amounts] == ["33.33", "33.33", "33.34"]
        assert sum(amounts) == plan.amount

    def test_mark_paid(self, db):
        plan = InstallmentPlanFactory(periods=2)
        entry = plan.installments.get(installment_number=1)

        entry.mark_paid(provider_payment_id="T1")
        entry.save()

        assert entry.status == InstallmentStatus.PAID
        assert entry.paid_at is not None

    def test_cannot_pay_twice(self, db):
        plan = InstallmentPlanFactory(periods=2)
        entry = plan.installments.get(installment_number=1)
        entry.mark_paid(provider_payment_id="T1")

        with pytest.raises(TransitionNotAllowed):
            entry.mark_paid(provider_payment_id="T2")

    def test_period_number_is_unique_per_plan(self, db):
        plan = InstallmentPlanFactory(periods=2)
        duplicate = plan.installments.get(installment_number=1)
        duplicate.pk = None

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                duplicate.save()


# =============================================================================
# Subscription State Transition Tests
# =============================================================================


class TestSubscriptionTransitions:
    def test_active_to_past_due_and_back(self, db):
        subscription = SubscriptionFactory()

        subscription.mark_past_due()
        assert subscription.status == SubscriptionStatus.PAST_DUE

        subscription.renew()
        assert subscription.status == SubscriptionStatus.ACTIVE

    def test_cancel_sets_canceled_at(self, db):
        subscription = SubscriptionFactory()

        subscription.cancel()

        assert subscription.status == SubscriptionStatus.CANCELED
        assert subscription.canceled_at is not None

    def test_canceled_is_terminal(self, db):
        subscription = SubscriptionFactory(status=SubscriptionStatus.CANCELED)

        with pytest.raises(TransitionNotAllowed):
            subscription.renew()


# =============================================================================
# WebhookEvent Tests
# =============================================================================


class TestWebhookEventStatus:
    def test_processing_counts_attempts(self, db):
        event = WebhookEventFactory()

        event.mark_processing()
        event.mark_failed("boom")
        event.mark_processing()

        assert event.attempt_count == 2
        assert event.status == WebhookEventStatus.PROCESSING

    def test_processed_clears_error(self, db):
        event = WebhookEventFactory(status=WebhookEventStatus.FAILED, error_message="boom")

        event.mark_processed()

        assert event.is_processed
        assert event.error_message is None
        assert event.processed_at is not None
