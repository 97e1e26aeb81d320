"""
Tests for ledger value types.
"""

from decimal import Decimal

import pytest

from payments.ledger.types import Money, currency_exponent


class TestMoney:
    """Tests for Money arithmetic and conversion."""

    def test_from_decimal_rounds_half_up(self):
        assert Money.from_decimal(Decimal("10.005"), "USD").minor == 1001

    def test_currency_is_upper_cased(self):
        assert Money(100, "ngn").currency == "NGN"

    def test_to_decimal(self):
        assert Money(3334, "USD").to_decimal() == Decimal("33.34")

    def test_zero_decimal_currency(self):
        """JPY has no minor unit."""
        amount = Money.from_decimal("1500", "JPY")

        assert amount.minor == 1500
        assert currency_exponent("jpy") == 0
        assert amount.to_decimal() == Decimal("1500.00")

    def test_minor_must_be_int(self):
        with pytest.raises(TypeError):
            Money(10.5, "USD")

    def test_add_rejects_mixed_currencies(self):
        with pytest.raises(ValueError):
            Money(100, "USD") + Money(100, "NGN")

    def test_str(self):
        assert str(Money(15000, "USD")) == "150.00 USD"


class TestMoneySplit:
    """Splitting must never lose or invent money."""

    def test_last_part_absorbs_remainder(self):
        parts = Money(10000, "USD").split(3)

        assert [p.minor for p in parts] == [3333, 3333, 3334]

    @pytest.mark.parametrize("minor,parts", [(1, 3), (99999, 7), (80000, 2), (5, 6)])
    def test_parts_sum_to_total(self, minor, parts):
        total = Money(minor, "USD")

        split = total.split(parts)

        assert len(split) == parts
        assert sum(split, Money.zero("USD")) == total
        assert all(p.minor == split[0].minor for p in split[:-1])

    def test_single_part(self):
        assert Money(500, "USD").split(1) == [Money(500, "USD")]

    def test_zero_parts_rejected(self):
        with pytest.raises(ValueError):
            Money(500, "USD").split(0)
