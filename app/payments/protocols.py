"""
Collaborator contracts used by the payments app.

The checkout orchestrator and settlement reconciler need to look up
payers, catalog items, customers and production tasks. Those live in
other apps, so payments only depends on these Protocols; concrete
implementations are configured in settings.PAYMENTS_COLLABORATORS.

Usage:
    from payments.protocols import Catalog

    def price_for(catalog: Catalog, item_id: int) -> Decimal:
        item = catalog.get_item(item_id)
        return item.unit_price if item else Decimal("0")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol, runtime_checkable


# =============================================================================
# Value Types
# =============================================================================


@dataclass(frozen=True)
class PayerIdentity:
    """
    Who is paying.

    is_long_term_customer drives the extended installment plan
    (students at the atelier).
    """

    user_id: int
    email: str
    full_name: str = ""
    is_long_term_customer: bool = False


@dataclass(frozen=True)
class CatalogItem:
    """A purchasable piece from the catalog."""

    item_id: int
    title: str
    category: str
    unit_price: Decimal


@dataclass(frozen=True)
class CustomerRef:
    """A back-office customer record."""

    customer_id: int
    name: str
    email: str


@dataclass(frozen=True)
class TaskRequest:
    """
    Everything needed to open a production task for a paid order.

    source_reference is the settlement reference; the task board uses it
    to refuse a second task for the same payment.
    """

    customer_id: int
    category: str
    total_amount: Decimal
    amount_paid: Decimal
    due_date: datetime
    deadline: datetime
    notes: str
    source_reference: str
    quantity: int = 1
    delivery_destination: str = ""
    production_notes: str = ""


@dataclass(frozen=True)
class TaskRef:
    """A production task as seen by the payments app."""

    task_id: int
    amount_paid: Decimal
    notes: str = ""


# =============================================================================
# Collaborator Protocols
# =============================================================================


@runtime_checkable
class IdentityDirectory(Protocol):
    def get_identity(self, user_id: int) -> PayerIdentity | None:
        ...


@runtime_checkable
class Catalog(Protocol):
    def get_item(self, item_id: int) -> CatalogItem | None:
        ...


@runtime_checkable
class CustomerProfiles(Protocol):
    def get_or_create_by_email(self, email: str, name: str = "") -> CustomerRef:
        ...


@runtime_checkable
class FulfillmentTasks(Protocol):
    """Production task board."""

    def find_task_by_reference(self, token: str) -> TaskRef | None:
        """Find a task whose source reference or notes carry the token."""
        ...

    def create_task(self, request: TaskRequest) -> TaskRef:
        ...

    def increment_amount_paid(self, task_id: int, amount: Decimal) -> TaskRef:
        """Add amount to the task's paid total. Raises LookupError if missing."""
        ...
