# payments/services/webhooks.py

"""
WEBHOOK EVENT PROCESSING

Signature verification happens in the view (via the gateway) BEFORE this
module is reached. Here we:

1) record the event id (WebhookEvent) so redeliveries of an event that was
   already processed are acknowledged without reprocessing
2) dispatch on event type
3) store the outcome; a FAILED event is reprocessed on the next delivery

Every handler is idempotent on its own, so a concurrent double delivery
is harmless too.
"""

from __future__ import annotations

import logging

from django.utils import timezone

from backend.api_errors import DomainValidationError
from payments.models import WebhookEvent
from payments.services.payment_orchestrator import (
    confirm_payment,
    mark_payment_cancelled,
    mark_payment_failed,
)
from users.models import User

logger = logging.getLogger(__name__)

OUTCOME_DUPLICATE = "duplicate"
OUTCOME_IGNORED = "ignored"
OUTCOME_PROCESSED = "processed"


class WebhookPayloadError(DomainValidationError):
    default_message = "Malformed webhook event"


def _payment_succeeded(obj: dict) -> None:
    confirm_payment(external_ref=obj["id"], payload=obj)


def _payment_failed(obj: dict) -> None:
    error = obj.get("last_payment_error") or {}
    mark_payment_failed(external_ref=obj["id"], message=error.get("message") or "Payment failed")


def _payment_canceled(obj: dict) -> None:
    mark_payment_cancelled(external_ref=obj["id"])


def _account_updated(obj: dict) -> None:
    complete = bool(obj.get("charges_enabled") and obj.get("payouts_enabled"))
    rows = User.objects.filter(stripe_connect_id=obj["id"]).update(
        stripe_onboarding_complete=complete
    )
    if not rows:
        logger.warning("No user for connect account", extra={"connect_id": obj["id"]})


HANDLERS = {
    "payment_intent.succeeded": _payment_succeeded,
    "payment_intent.payment_failed": _payment_failed,
    "payment_intent.canceled": _payment_canceled,
    "account.updated": _account_updated,
}


def process_event(event: dict) -> str:
    event_id = str(event.get("id") or "").strip()
    event_type = str(event.get("type") or "").strip()
    obj = (event.get("data") or {}).get("object") or {}

    if not event_id or not event_type:
        raise WebhookPayloadError()

    log, created = WebhookEvent.objects.get_or_create(
        event_id=event_id,
        defaults={"event_type": event_type},
    )
    if not created and log.outcome in WebhookEvent.FINAL_OUTCOMES:
        logger.info("Duplicate webhook event acknowledged", extra={"event_id": event_id})
        return OUTCOME_DUPLICATE

    handler = HANDLERS.get(event_type)
    if handler is None:
        _finish(log, WebhookEvent.OUTCOME_IGNORED)
        logger.info("Unhandled webhook event type", extra={"event_id": event_id, "event_type": event_type})
        return OUTCOME_IGNORED

    if not obj.get("id"):
        _finish(log, WebhookEvent.OUTCOME_FAILED, error="Event object has no id")
        raise WebhookPayloadError("Event object has no id")

    try:
        handler(obj)
    except Exception as exc:
        _finish(log, WebhookEvent.OUTCOME_FAILED, error=str(exc))
        raise

    _finish(log, WebhookEvent.OUTCOME_PROCESSED)
    logger.info("Webhook event processed", extra={"event_id": event_id, "event_type": event_type})
    return OUTCOME_PROCESSED


def _finish(log: WebhookEvent, outcome: str, *, error: str = "") -> None:
    log.outcome = outcome
    log.error_message = error
    log.processed_at = timezone.now()
    log.save(update_fields=["outcome", "error_message", "processed_at"])
