"""
Settlement reconciler.

Applies verified settlement events to the ledger, exactly once per
settlement, whichever way they arrive (webhook push or verify pull,
possibly duplicated, possibly concurrent).

Resolution of the ledger row, in priority order:
1. Parent plan id + installment > 1: append a new succeeded history row
   referencing the parent. Each later installment is its own entry.
2. Parent plan id + installment 1: update the pending parent in place.
3. Otherwise: upsert by (provider, reference), also matching the pending
   row created for the same checkout.

Steps 1-3 plus schedule bookkeeping run in one atomic unit. A replay is
recognized inside that unit (existing succeeded row, or a unique
constraint violation from a concurrent delivery) and rolls it back
without writing anything.

Production task creation runs after the unit commits and is best-effort:
the payment record stays authoritative even when fulfillment needs
manual follow-up.

Usage:
    reconciler = get_settlement_reconciler()
    outcome = reconciler.apply(settlement_event)
    if outcome.duplicate:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError, transaction

from core.services import BaseService
from payments.adapters.base import NotSettled
from payments.exceptions import (
    DuplicateSettlementNoop,
    PaymentNotFoundError,
    ReconciliationLookupError,
)
from payments.ledger import Money, ledger
from payments.models import PaymentProfile, Subscription, Transaction
from payments.state_machines import (
    SettlementOutcome,
    SubscriptionStatus,
    TransactionKind,
    TransactionStatus,
)

if TYPE_CHECKING:
    from decimal import Decimal

    from payments.adapters.base import SettlementEvent, SubscriptionEvent
    from payments.adapters.registry import ProviderRegistry
    from payments.services.fulfillment import FulfillmentService

DEFAULT_DESCRIPTION = "Fashion Purchase"


@dataclass
class ReconciliationOutcome:
    """
    What apply() did with a settlement.

    Attributes:
        transaction_id: Ledger row the settlement resolved to
        status: That row's status afterwards
        created: A new ledger row was inserted
        duplicate: The settlement was a replay; nothing was written
        task_id: Production task opened for this settlement, if any
    """

    transaction_id: int | None = None
    status: str | None = None
    created: bool = False
    duplicate: bool = False
    task_id: int | None = None


class SettlementReconciler(BaseService):
    """The single write path from provider settlements into the ledger."""

    def __init__(self, registry: ProviderRegistry, fulfillment: FulfillmentService):
        self.registry = registry
        self.fulfillment = fulfillment

    # =========================================================================
    # Entry points
    # =========================================================================

    def apply(self, event: SettlementEvent) -> ReconciliationOutcome:
        """
        Apply one verified settlement.

        Raises:
            ReconciliationLookupError: A settlement with no pending row and
                no user in its metadata cannot be recorded
        """
        if not event.succeeded:
            return self._apply_unsuccessful(event)

        logger = self.get_logger()
        log_context = self._log_context(event)

        try:
            with self.atomic():
                txn, created = self._record_success(event)
        except DuplicateSettlementNoop as e:
            logger.info(
                "Duplicate settlement ignored",
                extra={**log_context, "error_code": e.error_code},
            )
            existing = ledger.find_by_reference(event.provider, event.reference, event.checkout_id)
            outcome = ReconciliationOutcome(
                transaction_id=existing.pk if existing else event.metadata.transaction_id,
                status=TransactionStatus.SUCCEEDED,
                duplicate=True,
            )
            # A task missed on an earlier delivery is opened now; the task
            # board refuses a second one for the same reference
            if existing is not None:
                outcome.task_id = self._trigger_fulfillment(event, existing)
            return outcome

        logger.info(
            "Settlement applied",
            extra={**log_context, "transaction_id": txn.pk, "row_created": created},
        )
        outcome = ReconciliationOutcome(
            transaction_id=txn.pk,
            status=txn.status,
            created=created,
        )
        outcome.task_id = self._trigger_fulfillment(event, txn)
        return outcome

    def verify(self, provider: str, reference: str) -> bool:
        """
        Pull the remote state of a payment and reconcile it if settled.

        Returns True only when the payment succeeded. A replayed settlement
        still counts as success.
        """
        adapter = self.registry.get(provider)
        result = adapter.verify_by_reference(reference)

        if isinstance(result, NotSettled):
            self.get_logger().info(
                "Payment not settled",
                extra={
                    "provider": provider,
                    "reference": reference,
                    "remote_status": result.remote_status,
                },
            )
            return False

        self.apply(result)
        return result.succeeded

    def apply_subscription_event(self, event: SubscriptionEvent) -> Subscription:
        """
        Record a provider-reported subscription state change.

        Unknown subscriptions are created for the user named in the event's
        metadata or owning the provider customer.

        Raises:
            ReconciliationLookupError: Unknown subscription and no way to
                resolve its user
        """
        logger = self.get_logger()
        log_context = {
            "provider": event.provider,
            "subscription_id": event.subscription_id,
            "status": event.status,
            "event_type": event.event_type,
        }

        with self.atomic():
            subscription = (
                Subscription.objects.select_for_update()
                .filter(provider=event.provider, provider_subscription_id=event.subscription_id)
                .first()
            )
            if subscription is None:
                user_id = self._resolve_subscription_user(event)
                subscription = Subscription.objects.create(
                    user_id=user_id,
                    provider=event.provider,
                    provider_subscription_id=event.subscription_id,
                    plan_id=event.metadata.plan_id or "",
                    status=event.status,
                    current_period_end=event.current_period_end,
                    cancel_at_period_end=event.cancel_at_period_end,
                )
                logger.info(
                    "Subscription recorded",
                    extra={**log_context, "user_id": user_id},
                )
                return subscription

            self._transition_subscription(subscription, event)
            if event.current_period_end is not None:
                subscription.current_period_end = event.current_period_end
            subscription.cancel_at_period_end = event.cancel_at_period_end
            subscription.save()

        logger.info("Subscription updated", extra=log_context)
        return subscription

    # =========================================================================
    # Success path
    # =========================================================================

    def _record_success(self, event: SettlementEvent) -> tuple[Transaction, bool]:
        """Steps 1-3. Runs inside the caller's atomic unit."""
        metadata = event.metadata

        if metadata.is_installment:
            try:
                parent = ledger.get_transaction(metadata.transaction_id, lock=True)
            except PaymentNotFoundError:
                self.get_logger().warning(
                    "Installment settlement names an unknown plan; recording by reference",
                    extra=self._log_context(event),
                )
            else:
                if metadata.is_first_installment:
                    return self._settle_first_installment(parent, event), False
                return self._append_installment(parent, event), True

        return self._upsert_by_reference(event)

    def _append_installment(self, parent: Transaction, event: SettlementEvent) -> Transaction:
        number = event.metadata.installment_number
        row = ledger.append_installment_payment(
            parent,
            installment_number=number,
            reference=event.reference,
            amount=event.amount,
            checkout_id=event.checkout_id,
            description=self._describe(event, parent.item_id),
        )
        self._mark_installment_paid(parent, event)

        # Best-effort; the savepoint keeps a failed task update from
        # poisoning the ledger writes around it
        try:
            with transaction.atomic():
                self.fulfillment.record_installment_payment(parent.pk, event.amount.to_decimal())
        except ReconciliationLookupError as e:
            self.get_logger().warning(
                e.message,
                extra={**self._log_context(event), "error_code": e.error_code},
            )
        except DatabaseError:
            self.get_logger().error(
                "Task amount update failed",
                extra=self._log_context(event),
                exc_info=True,
            )
        return row

    def _settle_first_installment(self, parent: Transaction, event: SettlementEvent) -> Transaction:
        if parent.status == TransactionStatus.SUCCEEDED:
            entry = ledger.get_installment(parent.pk, 1)
            if entry.is_paid:
                raise DuplicateSettlementNoop(
                    f"Settlement {event.reference} already recorded",
                    details={"provider": event.provider, "reference": event.reference},
                )
        else:
            if parent.status != TransactionStatus.PENDING:
                self._log_late_success(parent, event)
            parent.succeed(provider_payment_id=event.reference)
            if event.checkout_id:
                parent.provider_checkout_id = event.checkout_id
            parent.description = self._describe(event, parent.item_id)
            self._save_settled(parent, event)

        self._mark_installment_paid(parent, event)
        return parent

    def _upsert_by_reference(self, event: SettlementEvent) -> tuple[Transaction, bool]:
        metadata = event.metadata
        txn = ledger.find_by_reference(event.provider, event.reference, event.checkout_id, lock=True)

        if txn is None:
            if not metadata.user_id:
                raise ReconciliationLookupError(
                    "Settlement has no pending transaction and no user in its metadata",
                    details=self._log_context(event),
                )
            txn = ledger.insert_settled(
                user_id=metadata.user_id,
                amount=event.amount,
                kind=metadata.kind or TransactionKind.ONE_TIME,
                provider=event.provider,
                reference=event.reference,
                checkout_id=event.checkout_id,
                description=self._describe(event, metadata.item_id),
                item_id=metadata.item_id,
            )
            created = True
        elif txn.status == TransactionStatus.SUCCEEDED:
            raise DuplicateSettlementNoop(
                f"Settlement {event.reference} already recorded",
                details={"provider": event.provider, "reference": event.reference},
            )
        else:
            if txn.status != TransactionStatus.PENDING:
                self._log_late_success(txn, event)
            self._check_amount(txn.amount, txn.currency, event)
            txn.succeed(provider_payment_id=event.reference)
            if event.checkout_id and not txn.provider_checkout_id:
                txn.provider_checkout_id = event.checkout_id
            if not txn.description:
                txn.description = self._describe(event, txn.item_id)
            self._save_settled(txn, event)
            created = False

        if txn.kind == TransactionKind.SUBSCRIPTION and event.subscription_id:
            self._record_subscription(txn, event)
        self._remember_customer(txn.user_id, event)
        return txn, created

    def _save_settled(self, txn: Transaction, event: SettlementEvent) -> None:
        try:
            with transaction.atomic():
                txn.save()
        except IntegrityError as e:
            # Another row already holds this provider reference
            raise DuplicateSettlementNoop(
                f"Settlement {event.reference} already recorded",
                details={"provider": event.provider, "reference": event.reference},
            ) from e

    def _mark_installment_paid(self, parent: Transaction, event: SettlementEvent) -> None:
        number = event.metadata.installment_number
        entry = ledger.get_installment(parent.pk, number, lock=True)
        self._check_amount(entry.amount, parent.currency, event)
        if ledger.mark_installment_paid(parent.pk, number, event.reference) is None:
            self.get_logger().warning(
                "Installment was already paid",
                extra={**self._log_context(event), "installment_number": number},
            )

    def _record_subscription(self, txn: Transaction, event: SettlementEvent) -> None:
        Subscription.objects.get_or_create(
            provider=event.provider,
            provider_subscription_id=event.subscription_id,
            defaults={
                "user_id": txn.user_id,
                "transaction": txn,
                "plan_id": event.metadata.plan_id or "",
                "status": SubscriptionStatus.ACTIVE,
            },
        )

    def _remember_customer(self, user_id: int, event: SettlementEvent) -> None:
        if not event.customer_id:
            return
        PaymentProfile.objects.get_or_create(
            user_id=user_id,
            provider=event.provider,
            defaults={"customer_id": event.customer_id},
        )

    # =========================================================================
    # Failure path
    # =========================================================================

    def _apply_unsuccessful(self, event: SettlementEvent) -> ReconciliationOutcome:
        """Move the pending row to failed/canceled. Never creates rows."""
        logger = self.get_logger()
        log_context = {**self._log_context(event), "outcome": event.outcome}

        with self.atomic():
            txn = ledger.find_by_reference(event.provider, event.reference, event.checkout_id, lock=True)
            if txn is None or txn.parent_id is not None:
                logger.info("No pending transaction for unsuccessful settlement", extra=log_context)
                return ReconciliationOutcome()

            if txn.is_installment_plan:
                # The plan stays open; its first period can be paid again
                logger.info(
                    "Unsuccessful installment checkout; plan left pending",
                    extra={**log_context, "transaction_id": txn.pk},
                )
                return ReconciliationOutcome(transaction_id=txn.pk, status=txn.status)

            if txn.status != TransactionStatus.PENDING:
                logger.info(
                    "Unsuccessful settlement for settled transaction ignored",
                    extra={**log_context, "transaction_id": txn.pk, "status": txn.status},
                )
                return ReconciliationOutcome(transaction_id=txn.pk, status=txn.status, duplicate=True)

            if event.outcome == SettlementOutcome.CANCELED:
                txn.cancel(reason=event.failure_reason)
            else:
                txn.fail(reason=event.failure_reason)
            txn.save()

        logger.warning(
            "Payment did not succeed",
            extra={**log_context, "transaction_id": txn.pk, "status": txn.status},
        )
        return ReconciliationOutcome(transaction_id=txn.pk, status=txn.status)

    # =========================================================================
    # Fulfillment
    # =========================================================================

    def _trigger_fulfillment(self, event: SettlementEvent, txn: Transaction) -> int | None:
        """Step 4: open the production task. Never raises."""
        metadata = event.metadata
        kind = metadata.kind or txn.kind

        if metadata.is_first_installment:
            if not (metadata.item_id or txn.item_id):
                return None
            parent_id = metadata.transaction_id
        elif kind == TransactionKind.ITEM and not metadata.is_installment:
            parent_id = None
        else:
            return None

        event = replace(
            event,
            metadata=replace(
                metadata,
                item_id=metadata.item_id or txn.item_id,
                user_id=metadata.user_id or txn.user_id,
            ),
        )

        try:
            with transaction.atomic():
                task = self.fulfillment.request_task(event, parent_transaction_id=parent_id)
        except ReconciliationLookupError as e:
            self.get_logger().error(
                f"Fulfillment skipped: {e.message}",
                extra={
                    **self._log_context(event),
                    "transaction_id": txn.pk,
                    "error_code": e.error_code,
                },
            )
            return None
        except Exception:
            self.get_logger().exception(
                "Fulfillment failed",
                extra={**self._log_context(event), "transaction_id": txn.pk},
            )
            return None

        return task.task_id if task else None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _describe(self, event: SettlementEvent, item_id: int | None = None) -> str:
        """Ledger description, e.g. "Installment 2 for Wool Suit"."""
        number = event.metadata.installment_number
        item_id = item_id or event.metadata.item_id
        title = None
        if item_id:
            item = self.fulfillment.catalog.get_item(item_id)
            title = item.title if item else None

        if title and number:
            return f"Installment {number} for {title}"
        if title:
            return f"Payment for {title}"
        if number:
            return f"Installment {number} Payment"
        return DEFAULT_DESCRIPTION

    def _check_amount(self, expected: Decimal, currency: str, event: SettlementEvent) -> None:
        """The provider is the source of truth; a mismatch is only logged."""
        expected_money = Money.from_decimal(expected, currency)
        if expected_money != event.amount:
            self.get_logger().warning(
                "Settlement amount differs from expected",
                extra={
                    **self._log_context(event),
                    "expected": str(expected_money),
                    "received": str(event.amount),
                },
            )

    def _log_late_success(self, txn: Transaction, event: SettlementEvent) -> None:
        self.get_logger().warning(
            "Confirmed payment recorded for a failed or canceled transaction",
            extra={
                **self._log_context(event),
                "transaction_id": txn.pk,
                "previous_status": txn.status,
                "failure_reason": txn.failure_reason,
            },
        )

    def _resolve_subscription_user(self, event: SubscriptionEvent) -> int:
        if event.metadata.user_id:
            return event.metadata.user_id
        if event.customer_id:
            profile = PaymentProfile.objects.filter(
                provider=event.provider, customer_id=event.customer_id
            ).first()
            if profile is not None:
                return profile.user_id
        raise ReconciliationLookupError(
            f"Cannot resolve user for subscription {event.subscription_id}",
            details={
                "provider": event.provider,
                "subscription_id": event.subscription_id,
                "customer_id": event.customer_id,
            },
        )

    def _transition_subscription(self, subscription: Subscription, event: SubscriptionEvent) -> None:
        if event.status == subscription.status:
            return
        if subscription.status == SubscriptionStatus.CANCELED:
            self.get_logger().warning(
                "Ignoring state change for canceled subscription",
                extra={
                    "subscription_id": subscription.provider_subscription_id,
                    "status": event.status,
                },
            )
            return
        if event.status == SubscriptionStatus.ACTIVE:
            subscription.renew(current_period_end=event.current_period_end)
        elif event.status == SubscriptionStatus.PAST_DUE:
            subscription.mark_past_due()
        elif event.status == SubscriptionStatus.CANCELED:
            subscription.cancel()

    @staticmethod
    def _log_context(event: SettlementEvent) -> dict:
        return {
            "provider": event.provider,
            "reference": event.reference,
            "checkout_id": event.checkout_id,
            "parent_transaction_id": event.metadata.transaction_id,
            "installment_number": event.metadata.installment_number,
            "event_type": event.event_type,
        }
