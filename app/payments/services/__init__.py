"""
Payment services for coordinating checkout and settlement.

This module provides:
- CheckoutOrchestrator: Entry point for starting checkouts
- InstallmentPlanner: Period count rules and schedule computation
- SettlementReconciler: Applies verified settlements to the ledger
- FulfillmentService: Production task side effects of settlements

Services that need collaborators are wired from settings by the factory
functions below, sharing the process-wide provider registry.

Usage:
    from payments.services import get_checkout_orchestrator, PurchaseRequest

    result = get_checkout_orchestrator().start_checkout(
        PurchaseRequest(user_id=user.pk, kind="installment", item_id=42)
    )

    from payments.services import get_settlement_reconciler

    paid = get_settlement_reconciler().verify("paystack", reference)
"""

from __future__ import annotations

from django.conf import settings
from django.utils.module_loading import import_string

from payments.adapters.registry import get_registry
from payments.services.checkout_orchestrator import (
    CheckoutOrchestrator,
    CheckoutResult,
    PurchaseRequest,
)
from payments.services.fulfillment import FulfillmentService, TraceabilityNote
from payments.services.installment_planner import InstallmentPlanner
from payments.services.settlement_reconciler import (
    ReconciliationOutcome,
    SettlementReconciler,
)


def load_collaborator(role: str):
    """Instantiate the collaborator configured for role in PAYMENTS_COLLABORATORS."""
    return import_string(settings.PAYMENTS_COLLABORATORS[role])()


def get_checkout_orchestrator() -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        registry=get_registry(),
        identities=load_collaborator("identity"),
        catalog=load_collaborator("catalog"),
    )


def get_fulfillment_service() -> FulfillmentService:
    return FulfillmentService(
        identities=load_collaborator("identity"),
        catalog=load_collaborator("catalog"),
        customers=load_collaborator("customers"),
        tasks=load_collaborator("tasks"),
    )


def get_settlement_reconciler() -> SettlementReconciler:
    return SettlementReconciler(
        registry=get_registry(),
        fulfillment=get_fulfillment_service(),
    )


__all__ = [
    "CheckoutOrchestrator",
    "CheckoutResult",
    "FulfillmentService",
    "InstallmentPlanner",
    "PurchaseRequest",
    "ReconciliationOutcome",
    "SettlementReconciler",
    "TraceabilityNote",
    "get_checkout_orchestrator",
    "get_fulfillment_service",
    "get_settlement_reconciler",
    "load_collaborator",
]
