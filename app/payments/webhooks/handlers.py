"""
Webhook event handlers.

This module provides a handler registry and implementations for
processing verified provider callbacks. Adapters have already normalized
the payload, so handlers are keyed by the normalized event type rather
than by provider event names.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    # Register a handler for a normalized event type
    @register_handler(SettlementEvent)
    def handle_settlement(webhook_event, event) -> ServiceResult:
        ...

    # Dispatch an event to its handler
    result = dispatch_webhook(webhook_event, event)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from core.services import ServiceResult

from payments.adapters.base import SettlementEvent, SubscriptionEvent
from payments.exceptions import PaymentError
from payments.services import get_settlement_reconciler

if TYPE_CHECKING:
    from payments.adapters.base import CallbackEvent
    from payments.models import WebhookEvent


logger = logging.getLogger(__name__)

Handler = Callable[["WebhookEvent", "CallbackEvent"], ServiceResult]


# =============================================================================
# Handler Registry
# =============================================================================


# Maps normalized event classes to handler functions
WEBHOOK_HANDLERS: dict[type, Handler] = {}


def register_handler(event_class: type) -> Callable[[Handler], Handler]:
    """
    Decorator to register a webhook event handler.

    Args:
        event_class: The normalized event type (SettlementEvent, SubscriptionEvent)
    """

    def decorator(func: Handler) -> Handler:
        WEBHOOK_HANDLERS[event_class] = func
        logger.debug(f"Registered webhook handler for {event_class.__name__}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent, event: CallbackEvent) -> ServiceResult:
    """
    Dispatch a verified event to the appropriate handler.

    Unknown event types succeed without doing anything, so the provider
    stops redelivering them.
    """
    handler = WEBHOOK_HANDLERS.get(type(event))

    if not handler:
        logger.info(
            f"No handler registered for {type(event).__name__}",
            extra={"event_key": webhook_event.event_key},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={
            "provider": webhook_event.provider,
            "event_key": webhook_event.event_key,
        },
    )
    return handler(webhook_event, event)


# =============================================================================
# Handlers
# =============================================================================


@register_handler(SettlementEvent)
def handle_settlement(webhook_event: WebhookEvent, event: SettlementEvent) -> ServiceResult:
    """Apply a payment settlement through the reconciler."""
    try:
        outcome = get_settlement_reconciler().apply(event)
    except PaymentError as e:
        logger.error(
            f"Settlement processing failed: {e.message}",
            extra={
                "provider": event.provider,
                "reference": event.reference,
                "event_key": webhook_event.event_key,
                "error_code": e.error_code,
            },
        )
        return ServiceResult.from_exception(e)
    except Exception as e:
        logger.exception(
            "Unexpected error processing settlement",
            extra={
                "provider": event.provider,
                "reference": event.reference,
                "event_key": webhook_event.event_key,
            },
        )
        return ServiceResult.from_exception(e)

    return ServiceResult.success(outcome)


@register_handler(SubscriptionEvent)
def handle_subscription(webhook_event: WebhookEvent, event: SubscriptionEvent) -> ServiceResult:
    """Record a subscription state change."""
    try:
        subscription = get_settlement_reconciler().apply_subscription_event(event)
    except PaymentError as e:
        logger.error(
            f"Subscription event failed: {e.message}",
            extra={
                "provider": event.provider,
                "subscription_id": event.subscription_id,
                "event_key": webhook_event.event_key,
                "error_code": e.error_code,
            },
        )
        return ServiceResult.from_exception(e)
    except Exception as e:
        logger.exception(
            "Unexpected error processing subscription event",
            extra={
                "provider": event.provider,
                "subscription_id": event.subscription_id,
                "event_key": webhook_event.event_key,
            },
        )
        return ServiceResult.from_exception(e)

    return ServiceResult.success(subscription)
