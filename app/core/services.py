"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with logging and transaction utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures (business rules, replays)
    - Exceptions: Use for unexpected failures (provider outages, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class SettlementService(BaseService):
        @classmethod
        def mark_settled(cls, transaction_id: int) -> ServiceResult[Transaction]:
            with cls.atomic():
                txn = Transaction.objects.select_for_update().get(pk=transaction_id)
                ...
            cls.get_logger().info("Marked settled", extra={"transaction_id": txn.pk})
            return ServiceResult.success(txn)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling

    Usage:
        result = dispatch_webhook(webhook_event, event)
        if result.success:
            webhook_event.mark_processed()
        else:
            webhook_event.mark_failed(result.error)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own error code; anything else
        falls back to the exception class name.
        """
        code = error_code or getattr(exc, "error_code", None) or exc.__class__.__name__.upper()
        return cls(
            success=False,
            error=getattr(exc, "message", None) or str(exc),
            error_code=code,
        )

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @classmethod for stateless services
        - Services that hold collaborators (registries, directories) are
          instantiated once and receive them through __init__
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Nested use creates a savepoint, so an inner failure can be
        caught without discarding the outer unit of work.

        Example:
            with cls.atomic():
                txn = Transaction.objects.create(...)
                InstallmentSchedule.objects.bulk_create(entries)
                # If the schedule insert fails, the transaction row is rolled back
        """
        with transaction.atomic():
            yield
