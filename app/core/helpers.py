"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- String hashing
- Calendar arithmetic (month offsets)

These utilities are pure infrastructure - they have no knowledge
of transactions, installments or providers.

Usage:
    from core.helpers import add_months, hash_string

    digest = hash_string(raw_body, "sha256")
    second_due = add_months(timezone.now(), 1)
"""

from __future__ import annotations

import calendar
import hashlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import date


def hash_string(value: str | bytes, algorithm: str = "sha256") -> str:
    """
    Hash a string (or raw bytes) using the specified algorithm.

    Args:
        value: String or bytes to hash
        algorithm: Hash algorithm (sha256, sha512, md5, etc.)

    Returns:
        Hexadecimal hash string
    """
    if isinstance(value, str):
        value = value.encode("utf-8")
    hasher = hashlib.new(algorithm)
    hasher.update(value)
    return hasher.hexdigest()


def add_months(moment: date, months: int) -> date:
    """
    Shift a date or datetime by whole calendar months.

    The day is clamped to the last day of the target month, so
    Jan 31 + 1 month is Feb 28 (or 29). Time and tzinfo are preserved.

    Example:
        add_months(datetime(2024, 1, 31, 9, 0), 1)  # 2024-02-29 09:00
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
