"""
Production collaborators for the payments core.

These classes implement the protocols in payments.protocols on top of
the production models. They are wired in through
settings.PAYMENTS_COLLABORATORS and can be swapped for another
back-office without touching the payments app.

Usage:
    from production.services import TaskBoard

    board = TaskBoard()
    task = board.find_task_by_reference("[ref:pi_123]")
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import F, Q

from payments.protocols import CatalogItem, CustomerRef, TaskRef, TaskRequest
from production.models import Customer, Item, ProductionTask

logger = logging.getLogger(__name__)


def _task_ref(task: ProductionTask) -> TaskRef:
    return TaskRef(task_id=task.pk, amount_paid=task.amount_paid, notes=task.notes)


class ItemCatalog:
    """Catalog backed by the Item table."""

    def get_item(self, item_id: int) -> CatalogItem | None:
        item = Item.objects.filter(pk=item_id).first()
        if item is None:
            return None
        return CatalogItem(
            item_id=item.pk,
            title=item.title,
            category=item.category,
            unit_price=item.price,
        )


class CustomerDirectory:
    """Customer records matched case-insensitively by email."""

    def get_or_create_by_email(self, email: str, name: str = "") -> CustomerRef:
        normalized = email.strip().lower()
        customer = Customer.objects.filter(email__iexact=normalized).first()
        if customer is None:
            try:
                with transaction.atomic():
                    customer = Customer.objects.create(email=normalized, name=name)
            except IntegrityError:
                # Concurrent creation for the same email
                customer = Customer.objects.get(email__iexact=normalized)
            else:
                logger.info("Customer created", extra={"customer_id": customer.pk})

        return CustomerRef(customer_id=customer.pk, name=customer.name, email=customer.email)


class TaskBoard:
    """
    Production task board.

    Tasks are found by a full traceability token. A [ref:X] token also
    matches the task's source_reference directly.
    """

    def find_task_by_reference(self, token: str) -> TaskRef | None:
        query = Q(notes__contains=token)
        if token.startswith("[ref:") and token.endswith("]"):
            query |= Q(source_reference=token[len("[ref:") : -1])

        task = ProductionTask.objects.filter(query).order_by("created_at").first()
        return _task_ref(task) if task else None

    def create_task(self, request: TaskRequest) -> TaskRef:
        """
        Open a task. A second request for the same source reference
        returns the existing task.

        Raises:
            LookupError: The customer does not exist
        """
        if not Customer.objects.filter(pk=request.customer_id).exists():
            raise LookupError(f"Customer {request.customer_id} not found")

        try:
            with transaction.atomic():
                task = ProductionTask.objects.create(
                    customer_id=request.customer_id,
                    category=request.category,
                    total_amount=request.total_amount,
                    amount_paid=request.amount_paid,
                    due_date=request.due_date,
                    deadline=request.deadline,
                    notes=request.notes,
                    quantity=request.quantity,
                    delivery_destination=request.delivery_destination,
                    production_notes=request.production_notes,
                    source_reference=request.source_reference,
                )
        except IntegrityError:
            task = ProductionTask.objects.get(source_reference=request.source_reference)
            logger.info(
                "Task already exists for source reference",
                extra={"task_id": task.pk, "source_reference": request.source_reference},
            )

        return _task_ref(task)

    def increment_amount_paid(self, task_id: int, amount: Decimal) -> TaskRef:
        updated = ProductionTask.objects.filter(pk=task_id).update(
            amount_paid=F("amount_paid") + amount
        )
        if not updated:
            raise LookupError(f"Task {task_id} not found")
        return _task_ref(ProductionTask.objects.get(pk=task_id))
