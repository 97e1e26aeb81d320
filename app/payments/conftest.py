"""
Pytest fixtures shared by all payment tests.

Services are built with the real collaborator implementations (users,
catalog, customers, task board) and a FakeProviderAdapter, so flows run
end to end against the test database without network calls.

Sections:
    - User and Catalog Fixtures
    - Provider Fixtures
    - Service Fixtures

Usage:
    def test_item_checkout(orchestrator, user, item):
        result = orchestrator.start_checkout(
            PurchaseRequest(user_id=user.pk, kind="item", item_id=item.pk)
        )
"""

from decimal import Decimal

import pytest

from authentication.services import UserIdentityDirectory
from authentication.tests.factories import UserFactory
from payments.adapters import ProviderRegistry, set_registry
from payments.services import (
    CheckoutOrchestrator,
    FulfillmentService,
    SettlementReconciler,
)
from payments.tests.fakes import FakeProviderAdapter
from production.services import CustomerDirectory, ItemCatalog, TaskBoard
from production.tests.factories import ItemFactory


# =============================================================================
# User and Catalog Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """A regular (non-student) client."""
    return UserFactory(first_name="Ada", last_name="Okafor")


@pytest.fixture
def student(db):
    """A student client, eligible for the long-term plan."""
    return UserFactory(is_student=True)


@pytest.fixture
def item(db):
    """A 150.00 dress."""
    return ItemFactory(title="Linen Kaftan", category="dress", price=Decimal("150.00"))


@pytest.fixture
def plan_item(db):
    """A 100.00 dress, which splits into 33.33 / 33.33 / 33.34."""
    return ItemFactory(title="Silk Wrap Dress", category="dress", price=Decimal("100.00"))


@pytest.fixture
def suit(db):
    return ItemFactory(title="Wool Suit", category="suit", price=Decimal("800.00"))


# =============================================================================
# Provider Fixtures
# =============================================================================


@pytest.fixture
def fake_adapter():
    return FakeProviderAdapter()


@pytest.fixture
def registry(fake_adapter):
    return ProviderRegistry([fake_adapter])


@pytest.fixture
def installed_registry(registry):
    """Install the test registry process-wide (views, webhook handlers)."""
    set_registry(registry)
    yield registry
    set_registry(None)


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def fulfillment(db):
    return FulfillmentService(
        identities=UserIdentityDirectory(),
        catalog=ItemCatalog(),
        customers=CustomerDirectory(),
        tasks=TaskBoard(),
        due_days=14,
        deadline_buffer_days=3,
    )


@pytest.fixture
def orchestrator(registry):
    return CheckoutOrchestrator(
        registry=registry,
        identities=UserIdentityDirectory(),
        catalog=ItemCatalog(),
    )


@pytest.fixture
def reconciler(registry, fulfillment):
    return SettlementReconciler(registry=registry, fulfillment=fulfillment)
