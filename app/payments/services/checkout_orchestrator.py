"""
Checkout orchestrator service.

This module provides the CheckoutOrchestrator class which serves as the
entry point for starting a payment. It classifies each purchase request
into exactly one flow and coordinates the provider adapter, the
installment planner and the ledger.

Flows:
- One-shot (one-time, subscription, item): provider session, then a
  pending Transaction keyed by the checkout id
- New installment plan (installment, no transaction id): pending plan
  Transaction + full schedule, then a session for period 1 only. A
  provider failure rolls the plan back.
- Subsequent installment (transaction id + installment number): a session
  for exactly that period's amount; no ledger writes until settlement

Usage:
    from payments.services import get_checkout_orchestrator, PurchaseRequest

    result = get_checkout_orchestrator().start_checkout(
        PurchaseRequest(user_id=user.pk, kind="item", item_id=42)
    )
    return redirect(result.redirect_url)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings

from core.services import BaseService
from payments.adapters.base import CheckoutRequest, SettlementMetadata
from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.ledger import Money, ledger
from payments.models import PaymentProfile, Subscription
from payments.services.installment_planner import InstallmentPlanner
from payments.state_machines import (
    ProviderName,
    SubscriptionStatus,
    TransactionKind,
    TransactionStatus,
)

if TYPE_CHECKING:
    from payments.adapters.base import ProviderAdapter, SubscriptionEvent
    from payments.adapters.registry import ProviderRegistry
    from payments.protocols import Catalog, CatalogItem, IdentityDirectory, PayerIdentity


# =============================================================================
# Parameter Types
# =============================================================================


@dataclass
class PurchaseRequest:
    """
    A purchase as submitted by the storefront.

    Attributes:
        user_id: Purchasing user
        kind: TransactionKind value
        provider: Provider name (default: settings.DEFAULT_PAYMENT_PROVIDER)
        amount: Major-unit amount; defaults to item price x quantity
        currency: ISO 4217 code
        item_id: Catalog item being bought
        plan_id: Subscription plan identifier
        transaction_id: Existing installment plan (subsequent payments)
        installment_number: Period to pay (subsequent payments)
        quantity: Units ordered
        delivery_address / production_notes: Passed through to the task
        success_url / cancel_url: Override the default redirect targets
    """

    user_id: int
    kind: str = TransactionKind.ONE_TIME
    provider: str | None = None
    amount: Decimal | None = None
    currency: str = "USD"
    item_id: int | None = None
    plan_id: str | None = None
    transaction_id: int | None = None
    installment_number: int | None = None
    quantity: int = 1
    delivery_address: str = ""
    production_notes: str = ""
    success_url: str | None = None
    cancel_url: str | None = None


@dataclass
class CheckoutResult:
    """
    What the storefront needs to redirect the payer.

    Attributes:
        session_id: Provider checkout id
        redirect_url: Hosted checkout page
        transaction_id: Ledger row (plan parent for installments)
        installment_number: Period being paid, for installment flows
    """

    session_id: str
    redirect_url: str | None
    transaction_id: int | None = None
    installment_number: int | None = None


# =============================================================================
# Orchestrator
# =============================================================================


class CheckoutOrchestrator(BaseService):
    """Entry point for starting checkouts and managing subscriptions."""

    def __init__(
        self,
        registry: ProviderRegistry,
        identities: IdentityDirectory,
        catalog: Catalog,
        planner: type[InstallmentPlanner] = InstallmentPlanner,
    ):
        self.registry = registry
        self.identities = identities
        self.catalog = catalog
        self.planner = planner

    def start_checkout(self, request: PurchaseRequest) -> CheckoutResult:
        """
        Start a checkout for the request.

        Raises:
            PaymentValidationError: Malformed request
            PlanNotAvailableError: No installment plan for this purchase
            PaymentNotFoundError: Unknown user, item, plan or period
            UnknownProviderError: Provider not registered
            ProviderRequestError: Provider rejected the session
        """
        payer = self.identities.get_identity(request.user_id)
        if payer is None:
            raise PaymentNotFoundError(
                f"User {request.user_id} not found",
                details={"user_id": request.user_id},
            )
        if request.quantity < 1:
            raise PaymentValidationError(
                "Quantity must be at least 1",
                details={"quantity": request.quantity},
            )

        if request.transaction_id is not None:
            return self._subsequent_installment(request, payer)
        if request.installment_number is not None:
            raise PaymentValidationError(
                "installment_number requires transaction_id",
                details={"installment_number": request.installment_number},
            )
        if request.kind == TransactionKind.INSTALLMENT:
            return self._new_installment_plan(request, payer)
        return self._one_shot(request, payer)

    # =========================================================================
    # Flows
    # =========================================================================

    def _one_shot(self, request: PurchaseRequest, payer: PayerIdentity) -> CheckoutResult:
        adapter = self._adapter(request.provider)
        item = self._item(request.item_id)
        amount = self._amount(request, item)
        if request.kind == TransactionKind.ITEM and item is None:
            raise PaymentValidationError("Item purchases require item_id")

        metadata = self._metadata(request, payer)
        session = adapter.create_checkout_session(
            self._checkout_request(adapter, request, payer, amount, metadata)
        )
        txn = ledger.record_pending(
            user_id=payer.user_id,
            amount=amount,
            kind=request.kind,
            provider=adapter.name,
            checkout_id=session.session_id,
            description=f"Payment for {item.title}" if item else "",
            item_id=request.item_id,
            metadata=metadata.to_bag(),
        )

        self.get_logger().info(
            "Checkout started",
            extra={
                "user_id": payer.user_id,
                "provider": adapter.name,
                "kind": request.kind,
                "transaction_id": txn.pk,
                "session_id": session.session_id,
            },
        )
        return CheckoutResult(
            session_id=session.session_id,
            redirect_url=session.redirect_url,
            transaction_id=txn.pk,
        )

    def _new_installment_plan(self, request: PurchaseRequest, payer: PayerIdentity) -> CheckoutResult:
        adapter = self._adapter(request.provider)
        item = self._item(request.item_id)
        total = self._amount(request, item)

        # Business-rule rejection happens before any write or provider call
        periods = self.planner.resolve_period_count(
            is_long_term_customer=payer.is_long_term_customer,
            category=item.category if item else None,
        )

        with self.atomic():
            parent, schedule = self.planner.create_plan(
                user_id=payer.user_id,
                total=total,
                provider=adapter.name,
                periods=periods,
                description=f"Installment plan for {item.title}" if item else "Installment plan",
                item_id=request.item_id,
                metadata=self._metadata(request, payer).to_bag(),
            )
            first = schedule[0]
            metadata = self._metadata(
                request, payer, transaction_id=parent.pk, installment_number=1
            )
            session = adapter.create_checkout_session(
                self._checkout_request(
                    adapter,
                    request,
                    payer,
                    first.amount,
                    metadata,
                    description=self._installment_label(1, periods, item),
                )
            )
            parent.provider_checkout_id = session.session_id
            parent.save(update_fields=["provider_checkout_id", "updated_at"])

        self.get_logger().info(
            "Installment checkout started",
            extra={
                "user_id": payer.user_id,
                "provider": adapter.name,
                "transaction_id": parent.pk,
                "periods": periods,
                "installment_number": 1,
                "session_id": session.session_id,
            },
        )
        return CheckoutResult(
            session_id=session.session_id,
            redirect_url=session.redirect_url,
            transaction_id=parent.pk,
            installment_number=1,
        )

    def _subsequent_installment(self, request: PurchaseRequest, payer: PayerIdentity) -> CheckoutResult:
        if request.installment_number is None:
            raise PaymentValidationError(
                "installment_number is required when paying an existing plan",
                details={"transaction_id": request.transaction_id},
            )

        parent = ledger.get_transaction(request.transaction_id)
        if parent.user_id != payer.user_id or not parent.is_installment_plan:
            # Same answer as a missing plan; other users' plans stay invisible
            raise PaymentNotFoundError(
                f"Installment plan {request.transaction_id} not found",
                details={"transaction_id": request.transaction_id},
            )
        if parent.status not in (TransactionStatus.PENDING, TransactionStatus.SUCCEEDED):
            raise InvalidStateTransitionError(
                f"Installment plan {parent.pk} is {parent.status}",
                details={"transaction_id": parent.pk, "current_state": parent.status},
            )
        if request.provider and request.provider.lower() != parent.provider:
            raise PaymentValidationError(
                "Installments must be paid with the plan's provider",
                details={"provider": request.provider, "plan_provider": parent.provider},
            )

        entry = ledger.get_installment(parent.pk, request.installment_number)
        if entry.is_paid:
            raise PaymentValidationError(
                f"Installment {entry.installment_number} is already paid",
                details={
                    "transaction_id": parent.pk,
                    "installment_number": entry.installment_number,
                },
            )
        if entry.installment_number > 1 and parent.status != TransactionStatus.SUCCEEDED:
            raise PaymentValidationError(
                f"Installment 1 must be paid before installment {entry.installment_number}",
                details={
                    "transaction_id": parent.pk,
                    "installment_number": entry.installment_number,
                    "current_state": parent.status,
                },
            )

        adapter = self._adapter(parent.provider)
        item = self._item(parent.item_id) if parent.item_id else None
        metadata = self._metadata(
            request,
            payer,
            transaction_id=parent.pk,
            installment_number=entry.installment_number,
            item_id=parent.item_id,
        )
        session = adapter.create_checkout_session(
            self._checkout_request(
                adapter,
                request,
                payer,
                Money.from_decimal(entry.amount, parent.currency),
                metadata,
                description=self._installment_label(
                    entry.installment_number, entry.total_installments, item
                ),
            )
        )

        self.get_logger().info(
            "Installment checkout started",
            extra={
                "user_id": payer.user_id,
                "provider": adapter.name,
                "transaction_id": parent.pk,
                "installment_number": entry.installment_number,
                "session_id": session.session_id,
            },
        )
        return CheckoutResult(
            session_id=session.session_id,
            redirect_url=session.redirect_url,
            transaction_id=parent.pk,
            installment_number=entry.installment_number,
        )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def cancel_subscription(self, user_id: int, provider: str, subscription_id: str) -> Subscription:
        """
        Cancel one of the user's subscriptions at the provider.

        Raises:
            PaymentNotFoundError: Subscription unknown or owned by someone else
            ProviderRequestError: Provider rejected the cancellation
        """
        adapter = self._adapter(provider)
        subscription = Subscription.objects.filter(
            user_id=user_id,
            provider=adapter.name,
            provider_subscription_id=subscription_id,
        ).first()
        if subscription is None:
            raise PaymentNotFoundError(
                f"Subscription {subscription_id} not found",
                details={"provider": provider, "subscription_id": subscription_id},
            )

        remote: SubscriptionEvent = adapter.cancel_subscription(subscription_id)

        subscription.cancel_at_period_end = remote.cancel_at_period_end
        if remote.current_period_end is not None:
            subscription.current_period_end = remote.current_period_end
        if (
            remote.status == SubscriptionStatus.CANCELED
            and subscription.status != SubscriptionStatus.CANCELED
        ):
            subscription.cancel()
        subscription.save()

        self.get_logger().info(
            "Subscription canceled",
            extra={
                "user_id": user_id,
                "provider": adapter.name,
                "subscription_id": subscription_id,
                "cancel_at_period_end": subscription.cancel_at_period_end,
            },
        )
        return subscription

    # =========================================================================
    # Helpers
    # =========================================================================

    def _adapter(self, provider: str | None) -> ProviderAdapter:
        return self.registry.get(provider or settings.DEFAULT_PAYMENT_PROVIDER)

    def _item(self, item_id: int | None) -> CatalogItem | None:
        if item_id is None:
            return None
        item = self.catalog.get_item(item_id)
        if item is None:
            raise PaymentNotFoundError(
                f"Item {item_id} not found",
                details={"item_id": item_id},
            )
        return item

    @staticmethod
    def _amount(request: PurchaseRequest, item: CatalogItem | None) -> Money:
        if request.amount is not None:
            amount = Decimal(request.amount)
        elif item is not None:
            amount = item.unit_price * request.quantity
        else:
            raise PaymentValidationError("amount is required when no item is given")

        if amount <= 0:
            raise PaymentValidationError(
                "Amount must be positive",
                details={"amount": str(amount)},
            )
        return Money.from_decimal(amount, request.currency)

    @staticmethod
    def _metadata(
        request: PurchaseRequest,
        payer: PayerIdentity,
        transaction_id: int | None = None,
        installment_number: int | None = None,
        item_id: int | None = None,
    ) -> SettlementMetadata:
        return SettlementMetadata(
            user_id=payer.user_id,
            kind=TransactionKind.INSTALLMENT if transaction_id else request.kind,
            item_id=item_id or request.item_id,
            plan_id=request.plan_id,
            transaction_id=transaction_id,
            installment_number=installment_number,
            quantity=request.quantity,
            delivery_address=request.delivery_address,
            production_notes=request.production_notes,
        )

    def _checkout_request(
        self,
        adapter: ProviderAdapter,
        request: PurchaseRequest,
        payer: PayerIdentity,
        amount: Money,
        metadata: SettlementMetadata,
        description: str = "",
    ) -> CheckoutRequest:
        success_url, cancel_url = self._redirect_urls(adapter.name, request)
        return CheckoutRequest(
            user_id=payer.user_id,
            email=payer.email,
            amount=amount,
            kind=metadata.kind,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            description=description,
            customer_id=self._customer_id(adapter, payer),
        )

    @staticmethod
    def _redirect_urls(provider: str, request: PurchaseRequest) -> tuple[str, str]:
        base = settings.PAYMENTS_APP_URL.rstrip("/")
        if provider == ProviderName.STRIPE:
            default_success = f"{base}/payment/success?provider=stripe&session_id={{CHECKOUT_SESSION_ID}}"
        else:
            default_success = f"{base}/payment/success?provider={provider}"
        return (
            request.success_url or default_success,
            request.cancel_url or f"{base}/payment/cancel",
        )

    def _customer_id(self, adapter: ProviderAdapter, payer: PayerIdentity) -> str | None:
        """Reuse (or create) the payer's provider customer."""
        if not adapter.reuses_customers:
            return None

        profile = PaymentProfile.objects.filter(user_id=payer.user_id, provider=adapter.name).first()
        if profile is not None:
            return profile.customer_id

        customer_id = adapter.create_customer(
            email=payer.email,
            name=payer.full_name,
            metadata={"user_id": str(payer.user_id)},
        )
        if customer_id:
            PaymentProfile.objects.get_or_create(
                user_id=payer.user_id,
                provider=adapter.name,
                defaults={"customer_id": customer_id},
            )
        return customer_id

    @staticmethod
    def _installment_label(number: int, total: int, item: CatalogItem | None) -> str:
        label = f"Installment {number} of {total}"
        return f"{label}: {item.title}" if item else label
