"""
Tests for provider-neutral adapter types.
"""

import json

import pytest

from payments.adapters.base import CheckoutRequest, SettlementMetadata
from payments.ledger import Money


class TestSettlementMetadata:
    def test_to_bag_flattens_to_strings(self):
        metadata = SettlementMetadata(user_id=7, kind="installment", transaction_id=12, installment_number=2)

        assert metadata.to_bag() == {
            "user_id": "7",
            "kind": "installment",
            "transaction_id": "12",
            "installment_number": "2",
            "quantity": "1",
        }

    def test_from_bag_accepts_json_string(self):
        bag = json.dumps({"user_id": 7, "item_id": "42", "quantity": 3, "referrer": "https://shop.example"})

        metadata = SettlementMetadata.from_bag(bag)

        assert metadata.user_id == 7
        assert metadata.item_id == 42
        assert metadata.quantity == 3

    @pytest.mark.parametrize("bag", [None, "", "not json", ["a", "list"]])
    def test_from_bag_tolerates_garbage(self, bag):
        metadata = SettlementMetadata.from_bag(bag)

        assert metadata.user_id is None
        assert metadata.quantity == 1

    def test_invalid_numbers_become_none(self):
        metadata = SettlementMetadata.from_bag({"user_id": "abc", "quantity": "-2"})

        assert metadata.user_id is None
        assert metadata.quantity == 1

    def test_installment_flags(self):
        first = SettlementMetadata(transaction_id=3, installment_number=1)
        second = SettlementMetadata(transaction_id=3, installment_number=2)

        assert first.is_first_installment
        assert second.is_installment
        assert not second.is_first_installment
        assert not SettlementMetadata(installment_number=1).is_installment


class TestCheckoutRequest:
    def _request(self, **overrides):
        values = {
            "user_id": 7,
            "email": "ada@example.com",
            "amount": Money(15000, "USD"),
            "kind": "item",
            "success_url": "https://shop.example/payment/success",
            "cancel_url": "https://shop.example/payment/cancel",
        }
        values.update(overrides)
        return CheckoutRequest(**values)

    def test_valid_request(self):
        request = self._request()

        assert request.metadata == SettlementMetadata()
        assert request.customer_id is None

    @pytest.mark.parametrize(
        "overrides",
        [{"amount": Money(0, "USD")}, {"email": ""}, {"success_url": ""}],
    )
    def test_rejects_invalid_fields(self, overrides):
        with pytest.raises(ValueError):
            self._request(**overrides)
