"""
Ledger - durable record of payment attempts and installment schedules.

Public API:
    Service:
        ledger - Singleton instance of TransactionLedger
        TransactionLedger - Class with all ledger reads and writes

    Types:
        Money - Monetary amount in minor currency units
        ScheduledPeriod - One computed installment period

Usage:
    from payments.ledger import ledger, Money

    txn = ledger.find_by_reference("paystack", "ref_123", lock=True)
"""

from .services import TransactionLedger, ledger
from .types import Money, ScheduledPeriod

__all__ = [
    # Service
    "ledger",
    "TransactionLedger",
    # Types
    "Money",
    "ScheduledPeriod",
]
