"""
Tests for production models.
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from production.models import ProductionTask
from production.tests.factories import CustomerFactory, ItemFactory, ProductionTaskFactory


class TestItem:
    def test_price_cannot_be_negative(self, db):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                ItemFactory(price=Decimal("-1.00"))

    def test_str(self, db):
        assert str(ItemFactory(title="Wool Suit")) == "Wool Suit"


class TestCustomer:
    def test_str_falls_back_to_email(self, db):
        assert str(CustomerFactory(name="", email="ada@example.com")) == "ada@example.com"


class TestProductionTask:
    def test_defaults(self, db):
        task = ProductionTaskFactory()

        assert task.status == ProductionTask.Status.PENDING
        assert task.quantity == 1
        assert task.notes == f"[ref:{task.source_reference}]"

    def test_source_reference_is_unique(self, db):
        ProductionTaskFactory(source_reference="T1")

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                ProductionTaskFactory(source_reference="T1")

    def test_ordered_by_deadline(self, db):
        later = ProductionTaskFactory()
        sooner = ProductionTaskFactory(deadline=later.deadline.replace(year=later.deadline.year - 1))

        assert list(ProductionTask.objects.all()) == [sooner, later]
