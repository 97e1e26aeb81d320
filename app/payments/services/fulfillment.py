"""
Fulfillment side effects of a settled payment.

A paid item order (or the first installment of an item-backed plan)
opens exactly one production task. Later installments of the same plan
add their amount to that task's paid total.

Tasks are linked back to payments through structured tokens embedded in
the task note:

    Order via Stripe for item: Linen Kaftan. Paid in Full. [ref:pi_123]
    Order via Paystack for item: Wool Suit. Started via Installment Plan.
        [ref:T12345] [parent-transaction:17]

The task board owns the note field, so lookups go through
FulfillmentTasks.find_task_by_reference() with a full token, never a
prose substring.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.services import BaseService
from payments.exceptions import ReconciliationLookupError
from payments.protocols import TaskRequest

if TYPE_CHECKING:
    from payments.adapters.base import SettlementEvent
    from payments.protocols import (
        Catalog,
        CustomerProfiles,
        FulfillmentTasks,
        IdentityDirectory,
        TaskRef,
    )

TOKEN_PATTERN = re.compile(r"\[(ref|parent-transaction):([^\]\s]+)\]")


@dataclass(frozen=True)
class TraceabilityNote:
    """
    Parseable payment references carried in a task note.

    Attributes:
        reference: External settlement reference that opened the task
        parent_transaction_id: Installment plan the task belongs to
        summary: Human-readable prefix
    """

    reference: str
    parent_transaction_id: int | None = None
    summary: str = ""

    @staticmethod
    def reference_token(reference: str) -> str:
        return f"[ref:{reference}]"

    @staticmethod
    def parent_token(transaction_id: int) -> str:
        return f"[parent-transaction:{transaction_id}]"

    def render(self) -> str:
        tokens = [self.reference_token(self.reference)]
        if self.parent_transaction_id is not None:
            tokens.append(self.parent_token(self.parent_transaction_id))
        return " ".join([self.summary.strip(), *tokens]).strip()

    @classmethod
    def parse(cls, text: str | None) -> TraceabilityNote | None:
        """Extract tokens from a note; None when it carries no reference."""
        if not text:
            return None
        found = dict(TOKEN_PATTERN.findall(text))
        if "ref" not in found:
            return None
        parent = found.get("parent-transaction")
        return cls(
            reference=found["ref"],
            parent_transaction_id=int(parent) if parent and parent.isdigit() else None,
            summary=TOKEN_PATTERN.sub("", text).strip(),
        )


class FulfillmentService(BaseService):
    """
    Opens and updates production tasks for settled payments.

    Every method here is best-effort from the reconciler's point of view:
    failures are raised as ReconciliationLookupError and logged by the
    caller, never propagated into the payment write path.
    """

    def __init__(
        self,
        identities: IdentityDirectory,
        catalog: Catalog,
        customers: CustomerProfiles,
        tasks: FulfillmentTasks,
        due_days: int | None = None,
        deadline_buffer_days: int | None = None,
    ):
        self.identities = identities
        self.catalog = catalog
        self.customers = customers
        self.tasks = tasks
        self.due_days = settings.FULFILLMENT_DUE_DAYS if due_days is None else due_days
        self.deadline_buffer_days = (
            settings.FULFILLMENT_DEADLINE_BUFFER_DAYS
            if deadline_buffer_days is None
            else deadline_buffer_days
        )

    def request_task(
        self,
        event: SettlementEvent,
        parent_transaction_id: int | None = None,
    ) -> TaskRef | None:
        """
        Open the production task for a settlement, once.

        Returns None when a task for this reference already exists.

        Raises:
            ReconciliationLookupError: Item or payer missing, or the task
                board rejected the request
        """
        logger = self.get_logger()
        metadata = event.metadata
        log_context = {
            "provider": event.provider,
            "reference": event.reference,
            "item_id": metadata.item_id,
            "parent_transaction_id": parent_transaction_id,
        }

        existing = self.tasks.find_task_by_reference(TraceabilityNote.reference_token(event.reference))
        if existing is not None:
            logger.info(
                "Task already exists for settlement",
                extra={**log_context, "task_id": existing.task_id},
            )
            return None

        item = self.catalog.get_item(metadata.item_id) if metadata.item_id else None
        if item is None:
            raise ReconciliationLookupError(
                f"Item {metadata.item_id} not found",
                details=log_context,
            )

        payer = self.identities.get_identity(metadata.user_id) if metadata.user_id else None
        if payer is None:
            raise ReconciliationLookupError(
                f"User {metadata.user_id} not found",
                details=log_context,
            )

        customer = self.customers.get_or_create_by_email(payer.email, payer.full_name)

        due_date = timezone.now() + timedelta(days=self.due_days)
        is_plan = parent_transaction_id is not None
        note = TraceabilityNote(
            reference=event.reference,
            parent_transaction_id=parent_transaction_id,
            summary=(
                f"Order via {str(event.provider).title()} for item: {item.title}. "
                f"{'Started via Installment Plan.' if is_plan else 'Paid in Full.'}"
            ),
        )

        try:
            task = self.tasks.create_task(
                TaskRequest(
                    customer_id=customer.customer_id,
                    category=item.category,
                    total_amount=item.unit_price * metadata.quantity,
                    amount_paid=event.amount.to_decimal(),
                    due_date=due_date,
                    deadline=due_date - timedelta(days=self.deadline_buffer_days),
                    notes=note.render(),
                    source_reference=event.reference,
                    quantity=metadata.quantity,
                    delivery_destination=metadata.delivery_address,
                    production_notes=metadata.production_notes,
                )
            )
        except LookupError as e:
            raise ReconciliationLookupError(str(e), details=log_context) from e

        logger.info("Production task created", extra={**log_context, "task_id": task.task_id})
        return task

    def record_installment_payment(self, parent_transaction_id: int, amount: Decimal) -> TaskRef:
        """
        Add a later installment's amount to the plan's task.

        Raises:
            ReconciliationLookupError: No task references the plan
        """
        token = TraceabilityNote.parent_token(parent_transaction_id)
        task = self.tasks.find_task_by_reference(token)
        if task is None:
            raise ReconciliationLookupError(
                f"No task found for installment plan {parent_transaction_id}",
                details={"parent_transaction_id": parent_transaction_id},
            )
        try:
            updated = self.tasks.increment_amount_paid(task.task_id, amount)
        except LookupError as e:
            raise ReconciliationLookupError(
                str(e), details={"task_id": task.task_id}
            ) from e

        self.get_logger().info(
            "Task amount paid updated",
            extra={
                "task_id": task.task_id,
                "parent_transaction_id": parent_transaction_id,
                "amount": str(amount),
                "amount_paid": str(updated.amount_paid),
            },
        )
        return updated
