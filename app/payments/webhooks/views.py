"""
Webhook endpoint view for payment providers.

One endpoint serves every registered provider:

    POST /api/v1/payments/webhooks/<provider>/

The view:
1. Verifies the callback signature through the provider's adapter
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Processes the event synchronously through the handler registry
4. Acknowledges

Once the signature has been verified the response is always 200, even
when processing fails. A malformed-but-authentic payload would otherwise
be redelivered forever; failures are logged and kept on the
WebhookEvent instead.
"""

from __future__ import annotations

import json
import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from core.helpers import hash_string

from payments.adapters import get_registry
from payments.exceptions import InvalidSignatureError, PaymentValidationError, UnknownProviderError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.webhooks.handlers import dispatch_webhook


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def provider_webhook(request: HttpRequest, provider: str) -> HttpResponse:
    """
    Receive, verify and process a provider webhook.

    Returns:
        HttpResponse with status:
        - 200: Signature valid (event processed, duplicate, ignored or failed)
        - 400: Missing or invalid signature
        - 404: Unknown provider
    """
    try:
        adapter = get_registry().get(provider)
    except UnknownProviderError:
        logger.warning("Webhook for unknown provider", extra={"provider": provider})
        return HttpResponse("Unknown provider", status=404)

    payload = request.body
    signature = request.headers.get(adapter.signature_header, "")

    # Step 1: Verify signature before anything else
    try:
        event = adapter.parse_and_verify_callback(payload, signature)
    except InvalidSignatureError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"provider": provider, "error": e.message},
        )
        return HttpResponse("Invalid signature", status=400)
    except PaymentValidationError as e:
        logger.error(
            "Authentic webhook with unreadable payload",
            extra={"provider": provider, "error": e.message},
        )
        return HttpResponse("Accepted", status=200)

    if event is None:
        return HttpResponse("Ignored", status=200)

    event_key = event.event_id or f"{event.event_type}:{hash_string(payload)}"

    logger.info(
        f"Received {provider} webhook: {event.event_type}",
        extra={"provider": provider, "event_key": event_key},
    )

    # Step 2: Create/get WebhookEvent (idempotent)
    webhook_event, created = WebhookEvent.objects.get_or_create(
        provider=adapter.name,
        event_key=event_key,
        defaults={
            "event_type": event.event_type,
            "payload": json.loads(payload),
            "status": WebhookEventStatus.PENDING,
        },
    )

    # Step 3: If already processed, return success
    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed, returning success",
            extra={"provider": provider, "event_key": event_key},
        )
        return HttpResponse("Already processed", status=200)

    webhook_event.mark_processing()
    webhook_event.save()

    # Step 4: Process
    result = dispatch_webhook(webhook_event, event)

    if result.success:
        webhook_event.mark_processed()
    else:
        webhook_event.mark_failed(result.error or "Processing failed")
        logger.error(
            "Webhook processing failed",
            extra={
                "provider": provider,
                "event_key": event_key,
                "error_code": result.error_code,
            },
        )
    webhook_event.save()

    return HttpResponse("OK", status=200)
