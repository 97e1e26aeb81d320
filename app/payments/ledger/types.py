"""
Data types for ledger operations.

Types:
    Money: A monetary amount held in minor currency units
    ScheduledPeriod: One computed period of an installment plan

Usage:
    from payments.ledger.types import Money

    total = Money.from_decimal(Decimal("100.00"), "USD")
    parts = total.split(3)  # [33.33, 33.33, 33.34]
    assert sum(parts, Money.zero("USD")) == total
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

# Currencies without a minor unit, as documented by Stripe
ZERO_DECIMAL_CURRENCIES = frozenset(
    [
        "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
        "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
    ]
)


def currency_exponent(currency: str) -> int:
    """Number of decimal places in the currency's minor unit."""
    return 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2


@dataclass(frozen=True)
class Money:
    """
    Represents a monetary amount.

    Amounts are held in the smallest currency unit (cents, kobo) so that
    splitting and summing never lose or invent money. Providers take and
    report amounts in the same unit.

    Attributes:
        minor: Amount in the smallest currency unit
        currency: ISO 4217 currency code (upper case)

    Example:
        amount = Money(minor=15000, currency="USD")
        print(amount)  # "150.00 USD"
    """

    minor: int
    currency: str = "USD"

    def __post_init__(self) -> None:
        if not isinstance(self.minor, int):
            raise TypeError("minor must be an int")
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(minor=0, currency=currency)

    @classmethod
    def from_decimal(cls, amount: Decimal | str | int, currency: str) -> Money:
        """Build from a major-unit amount, rounding half up to the minor unit."""
        exponent = currency_exponent(currency)
        scaled = (Decimal(amount) * (10**exponent)).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        return cls(minor=int(scaled), currency=currency)

    @property
    def exponent(self) -> int:
        return currency_exponent(self.currency)

    def to_decimal(self) -> Decimal:
        """Major-unit amount with two decimal places, as stored in the ledger."""
        return (Decimal(self.minor) / (10**self.exponent)).quantize(Decimal("0.01"))

    def split(self, parts: int) -> list[Money]:
        """
        Split evenly into `parts` amounts.

        Every part but the last gets floor(minor / parts); the last part
        absorbs the remainder so the parts always sum to the original.
        """
        if parts < 1:
            raise ValueError("parts must be at least 1")
        base = self.minor // parts
        last = self.minor - base * (parts - 1)
        return [Money(base, self.currency)] * (parts - 1) + [Money(last, self.currency)]

    def _check_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot combine Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(minor=self.minor + other.minor, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(minor=self.minor - other.minor, currency=self.currency)

    def __str__(self) -> str:
        return f"{self.to_decimal()} {self.currency}"


@dataclass(frozen=True)
class ScheduledPeriod:
    """One period of a computed installment schedule."""

    number: int
    amount: Money
    due_date: datetime
