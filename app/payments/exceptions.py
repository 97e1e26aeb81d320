"""
Payment-specific exceptions for checkout and settlement operations.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Transaction / installment lookup failures
    ├── PaymentValidationError - Request validation failures
    │   ├── PlanNotAvailableError - Installment plan rejected by business rules
    │   └── UnknownProviderError - No adapter registered for provider name
    ├── ProviderRequestError - Remote provider call failed (no retry)
    ├── InvalidSignatureError - Callback authenticity proof did not match
    ├── ReconciliationLookupError - Item/user/task missing during fulfillment
    └── DuplicateSettlementNoop - Replay recognized, zero writes performed

    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Usage:
    from payments.exceptions import ProviderRequestError

    raise ProviderRequestError(
        "Paystack initialize returned 401",
        provider="paystack",
        status_code=401,
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            orchestrator.start_checkout(request)
        except PaymentError as e:
            logger.error(f"Checkout failed: {e}")
            return Response(e.to_dict(), status=400)
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment entity cannot be found.

    Example:
        txn = Transaction.objects.filter(pk=transaction_id, user_id=user_id).first()
        if not txn:
            raise PaymentNotFoundError(
                f"Transaction {transaction_id} not found",
                details={"transaction_id": transaction_id},
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"


class PaymentValidationError(PaymentError):
    """Raised when a checkout request fails validation."""

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class PlanNotAvailableError(PaymentValidationError):
    """
    Raised when business rules yield fewer than one installment period.

    Always raised before any ledger write or provider call.
    """

    default_error_code: str = "PLAN_NOT_AVAILABLE"


class UnknownProviderError(PaymentValidationError):
    """Raised when no adapter is registered under the requested provider name."""

    default_error_code: str = "UNKNOWN_PROVIDER"


# =============================================================================
# Provider Exceptions
# =============================================================================


class ProviderRequestError(PaymentError):
    """
    Raised when a call to a payment provider fails.

    Covers transport errors, timeouts, and non-2xx responses. Calls are
    single-attempt; the caller surfaces this as a 5xx-class failure and
    no partial state is left behind.

    Attributes:
        provider: Provider name ("stripe", "paystack")
        status_code: HTTP status returned by the provider, if any
        provider_code: Provider's own error code, if any
    """

    default_error_code: str = "PROVIDER_REQUEST_FAILED"

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
        provider_code: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if provider:
            details["provider"] = provider
        if status_code is not None:
            details["status_code"] = status_code
        if provider_code:
            details["provider_code"] = provider_code
        super().__init__(message, error_code=error_code, details=details)
        self.provider = provider
        self.status_code = status_code
        self.provider_code = provider_code


class InvalidSignatureError(PaymentError):
    """
    Raised when a callback's authenticity proof does not match.

    Raised before any side effect; the ledger is never touched.
    """

    default_error_code: str = "INVALID_SIGNATURE"


# =============================================================================
# Reconciliation Exceptions
# =============================================================================


class ReconciliationLookupError(PaymentError):
    """
    Raised when fulfillment cannot find the item, payer or task it needs.

    Logged and swallowed by the reconciler; the payment record stays
    authoritative and fulfillment needs manual follow-up.
    """

    default_error_code: str = "RECONCILIATION_LOOKUP_FAILED"


class DuplicateSettlementNoop(PaymentError):
    """
    Signals that a settlement was already applied.

    Not a failure. The reconciler raises it internally to unwind the
    write path and logs it so replays are distinguishable from first-time
    successes.
    """

    default_error_code: str = "DUPLICATE_SETTLEMENT"


# =============================================================================
# State Machine Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a django-fsm transition is not allowed from the current state.

    Example:
        try:
            txn.succeed()
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot succeed transaction from '{txn.status}'",
                details={"current_state": txn.status, "target_state": "succeeded"},
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


__all__ = [
    "DuplicateSettlementNoop",
    "InvalidSignatureError",
    "InvalidStateTransitionError",
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "PlanNotAvailableError",
    "ProviderRequestError",
    "ReconciliationLookupError",
    "UnknownProviderError",
]
