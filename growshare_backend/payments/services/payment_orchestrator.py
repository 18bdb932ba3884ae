# payments/services/payment_orchestrator.py

"""
PAYMENT ORCHESTRATOR

Keeps local PaymentRecords and transaction statuses consistent with the
money that actually moved at the provider.

GUARANTEES:
- At most one PaymentRecord per booking / rental / order (one-to-one FK)
- No provider call is made while holding row locks for initiation; a
  provider failure marks the record FAILED and nothing is marked paid
- Confirmation is idempotent: replays of the same success never advance
  status twice and never notify twice
- Refunds are at most once: the provider refund carries an idempotency
  key derived from the record, and REFUNDED is terminal
- Money that cannot be reflected locally is flagged as a
  ReconciliationIssue instead of being dropped

Amounts are minor units (cents) everywhere in this module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from backend.api_errors import DomainPermissionError, DomainStateError, DomainValidationError
from payments.models import PaymentRecord, ReconciliationIssue
from payments.services.gateway import PaymentGateway, PaymentProviderError, get_payment_gateway
from permissions.roles import ACTOR_COUNTERPARTY, resolve_actor_role
from transactions.models import KIND_BOOKING, KIND_ORDER, KIND_RENTAL, MODEL_BY_KIND
from transactions.services.lifecycle import get_table
from transactions.services.pricing import from_minor_units, platform_fee, to_minor_units
from transactions.services.refund_policy import quote_refund
from transactions.services.side_effects import notify_payment_received
from transactions.services.transition_service import get_transactable
from users.models import User

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================


class PaymentForbiddenError(DomainPermissionError):
    pass


class NotPayableError(DomainStateError):
    pass


class AlreadyPaidError(DomainStateError):
    default_message = "This transaction has already been paid"


class PaymentPendingError(DomainStateError):
    default_message = "A payment is already pending for this transaction"


class NotRefundableError(DomainValidationError):
    pass


class NotPaidError(DomainStateError):
    default_message = "Only successful payments can be refunded"


class AlreadyRefundedError(DomainStateError):
    default_message = "This payment has already been refunded"


# ============================================================
# RULES
# ============================================================

PAYABLE_STATUSES = {
    KIND_BOOKING: ("APPROVED",),
    KIND_RENTAL: ("APPROVED",),
    KIND_ORDER: ("PENDING",),
}

# kind -> (status the payment advances from, status it advances to)
# Rentals are stamped paid only; pickup stays an owner action.
PAYMENT_ADVANCES = {
    KIND_BOOKING: ("APPROVED", "ACTIVE"),
    KIND_ORDER: ("PENDING", "CONFIRMED"),
}

REFUNDABLE_KINDS = (KIND_BOOKING, KIND_RENTAL)

CONFIRM_UNKNOWN = "unknown"
CONFIRM_DUPLICATE = "duplicate"
CONFIRM_FLAGGED = "flagged"
CONFIRM_CONFIRMED = "confirmed"


@dataclass(frozen=True)
class RefundOutcome:
    success: bool
    refund_amount: int
    percentage: int
    days_until_start: int
    refund_id: str = ""
    message: str = ""


def _config() -> dict:
    return settings.PAYMENTS


def _gateway(gateway: Optional[PaymentGateway]) -> PaymentGateway:
    return gateway if gateway is not None else get_payment_gateway()


def _record_for(*, kind: str, transactable, lock: bool = False) -> Optional[PaymentRecord]:
    qs = PaymentRecord.objects.filter(**{PaymentRecord.field_for_kind(kind): transactable})
    if lock:
        qs = qs.select_for_update()
    return qs.first()


def flag_issue(*, kind: str, record: Optional[PaymentRecord], external_ref: str, details: dict):
    """Persist a reconciliation issue in its own (savepoint) transaction."""
    with transaction.atomic():
        issue = ReconciliationIssue.objects.create(
            kind=kind,
            payment_record=record,
            external_ref=external_ref or "",
            details=details,
        )
    logger.error(
        "Payment reconciliation issue flagged",
        extra={"issue_id": issue.id, "issue_kind": kind, "external_ref": external_ref},
    )
    return issue


# ============================================================
# INITIATE
# ============================================================


def initiate_payment(
    *,
    kind: str,
    entity_id,
    user,
    gateway: Optional[PaymentGateway] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Create (or re-arm) the PaymentRecord and a provider PaymentIntent.

    Phase 1 (locked): validate + claim the record in PENDING
    Phase 2 (no locks): provider calls
    Phase 3: store the provider reference, or mark FAILED
    """
    gateway = _gateway(gateway)
    cfg = _config()
    now = now or timezone.now()
    ttl = timedelta(minutes=int(cfg.get("PENDING_TTL_MINUTES") or 30))
    currency = cfg.get("CURRENCY") or "usd"

    cancel_ref = ""

    with transaction.atomic():
        obj = get_transactable(kind=kind, entity_id=entity_id, lock=True)

        role = resolve_actor_role(transactable=obj, user=user)
        if role != ACTOR_COUNTERPARTY:
            raise PaymentForbiddenError(f"You can only pay for your own {kind}s")

        if obj.status not in PAYABLE_STATUSES[kind]:
            raise NotPayableError(f"{kind.capitalize()} cannot be paid while {obj.status}")

        amount = to_minor_units(obj.total_amount)
        if amount <= 0:
            raise NotPayableError(f"{kind.capitalize()} has nothing to pay")

        fee = platform_fee(amount, cfg.get("PLATFORM_FEE_PERCENT", 10))
        earnings = amount - fee

        record = _record_for(kind=kind, transactable=obj, lock=True)

        if record is None:
            try:
                with transaction.atomic():
                    record = PaymentRecord.objects.create(
                        **{PaymentRecord.field_for_kind(kind): obj},
                        amount=amount,
                        platform_fee=fee,
                        owner_earnings=earnings,
                        currency=currency,
                    )
            except IntegrityError:
                raise PaymentPendingError() from None
        else:
            if record.status in (PaymentRecord.STATUS_SUCCEEDED, PaymentRecord.STATUS_REFUNDED):
                raise AlreadyPaidError()
            if record.status == PaymentRecord.STATUS_PENDING and record.updated_at > now - ttl:
                raise PaymentPendingError()

            superseded_ref = record.external_ref or ""
            if record.status == PaymentRecord.STATUS_PENDING:
                cancel_ref = superseded_ref
            metadata = dict(record.metadata or {})
            if superseded_ref:
                metadata["superseded_refs"] = [*metadata.get("superseded_refs", []), superseded_ref]

            record.external_ref = None
            record.status = PaymentRecord.STATUS_PENDING
            record.amount = amount
            record.platform_fee = fee
            record.owner_earnings = earnings
            record.currency = currency
            record.failure_message = ""
            record.attempt += 1
            record.metadata = metadata
            record.save()

        owner = User.objects.only("id", "stripe_connect_id").get(pk=obj.owner_user_id)
        destination = owner.stripe_connect_id or None

    logger.info(
        "Payment initiated",
        extra={
            "kind": kind,
            "entity_id": str(obj.pk),
            "payment_record_id": str(record.id),
            "attempt": record.attempt,
            "amount": amount,
        },
    )

    try:
        customer_id = gateway.ensure_customer(
            email=user.email,
            name=user.display_name,
            existing_id=user.stripe_customer_id,
        )
        if customer_id != user.stripe_customer_id:
            User.objects.filter(pk=user.pk).update(stripe_customer_id=customer_id)
            user.stripe_customer_id = customer_id

        intent = gateway.create_intent(
            amount=amount,
            currency=currency,
            metadata={
                "type": kind,
                "entity_id": str(obj.pk),
                "payment_record_id": str(record.id),
                "payer_id": str(user.pk),
            },
            idempotency_key=f"pi_{record.id}_{record.attempt}",
            customer_id=customer_id,
            destination_account=destination,
            application_fee=fee if destination else None,
        )
    except PaymentProviderError as exc:
        PaymentRecord.objects.filter(
            pk=record.pk,
            attempt=record.attempt,
            status=PaymentRecord.STATUS_PENDING,
        ).update(
            status=PaymentRecord.STATUS_FAILED,
            failure_message=exc.message,
            updated_at=timezone.now(),
        )
        raise

    PaymentRecord.objects.filter(pk=record.pk, attempt=record.attempt).update(
        external_ref=intent.id,
        updated_at=timezone.now(),
    )

    if cancel_ref:
        try:
            gateway.cancel_intent(cancel_ref)
        except PaymentProviderError:
            logger.exception(
                "Could not cancel superseded PaymentIntent",
                extra={"payment_intent_id": cancel_ref, "payment_record_id": str(record.id)},
            )

    return {
        "client_secret": intent.client_secret,
        "payment_intent_id": intent.id,
        "amount": amount,
        "platform_fee": fee,
        "owner_earnings": earnings,
        "currency": currency,
    }


# ============================================================
# CONFIRM (WEBHOOK)
# ============================================================


def confirm_payment(*, external_ref: str, payload: Optional[dict] = None) -> str:
    """
    payment_intent.succeeded.

    Returns one of: unknown, duplicate, flagged, confirmed.
    Only "confirmed" has side effects beyond logging / flagging.
    """
    now = timezone.now()
    payload = payload or {}

    with transaction.atomic():
        record = (
            PaymentRecord.objects.select_for_update()
            .filter(external_ref=external_ref)
            .first()
        )

        if record is None:
            logger.warning("Payment confirmation for unknown reference", extra={"external_ref": external_ref})
            return CONFIRM_UNKNOWN

        if record.status in (PaymentRecord.STATUS_SUCCEEDED, PaymentRecord.STATUS_REFUNDED):
            logger.info("Duplicate payment confirmation ignored", extra={"external_ref": external_ref})
            return CONFIRM_DUPLICATE

        if record.status in (PaymentRecord.STATUS_FAILED, PaymentRecord.STATUS_CANCELLED):
            already = ReconciliationIssue.objects.filter(
                kind=ReconciliationIssue.KIND_PAYMENT_AFTER_TERMINAL_RECORD,
                external_ref=external_ref,
            ).exists()
            if not already:
                flag_issue(
                    kind=ReconciliationIssue.KIND_PAYMENT_AFTER_TERMINAL_RECORD,
                    record=record,
                    external_ref=external_ref,
                    details={"record_status": record.status, "amount": payload.get("amount")},
                )
            return CONFIRM_FLAGGED

        record.status = PaymentRecord.STATUS_SUCCEEDED
        record.completed_at = now
        record.save(update_fields=["status", "completed_at", "updated_at"])

        kind = record.kind
        obj = get_transactable(kind=kind, entity_id=record.transactable_id, lock=True)
        table = get_table(kind)
        current = obj.status

        updates = {"paid_at": now, "updated_at": now}
        if kind == KIND_BOOKING:
            updates["stripe_payment_id"] = external_ref

        if current in table.terminal:
            flag_issue(
                kind=ReconciliationIssue.KIND_PAYMENT_FOR_CLOSED_ENTITY,
                record=record,
                external_ref=external_ref,
                details={"kind": kind, "entity_id": str(obj.pk), "status": current},
            )
        else:
            advance = PAYMENT_ADVANCES.get(kind)
            if advance and current == advance[0]:
                updates["status"] = advance[1]
                ts_field = table.timestamps.get(advance[1])
                if ts_field:
                    updates[ts_field] = now

        MODEL_BY_KIND[kind].objects.filter(pk=obj.pk, status=current).update(**updates)
        for name, value in updates.items():
            setattr(obj, name, value)

    logger.info(
        "Payment confirmed",
        extra={
            "external_ref": external_ref,
            "kind": kind,
            "entity_id": str(obj.pk),
            "from_status": current,
            "to_status": obj.status,
        },
    )
    notify_payment_received(kind=kind, transactable=obj, amount_minor=record.amount)
    return CONFIRM_CONFIRMED


def _close_pending(*, external_ref: str, status: str, failure_message: str = "") -> bool:
    rows = PaymentRecord.objects.filter(
        external_ref=external_ref,
        status=PaymentRecord.STATUS_PENDING,
    ).update(status=status, failure_message=failure_message, updated_at=timezone.now())
    if rows:
        logger.info("Payment closed", extra={"external_ref": external_ref, "status": status})
    else:
        logger.info(
            "Payment close ignored (unknown or not pending)",
            extra={"external_ref": external_ref, "status": status},
        )
    return bool(rows)


def mark_payment_failed(*, external_ref: str, message: str = "") -> bool:
    return _close_pending(
        external_ref=external_ref,
        status=PaymentRecord.STATUS_FAILED,
        failure_message=message or "Payment failed",
    )


def mark_payment_cancelled(*, external_ref: str) -> bool:
    return _close_pending(external_ref=external_ref, status=PaymentRecord.STATUS_CANCELLED)


# ============================================================
# REFUND
# ============================================================


def _refundable(*, kind: str, entity_id, user, lock: bool):
    obj = get_transactable(kind=kind, entity_id=entity_id, lock=lock)
    if resolve_actor_role(transactable=obj, user=user) is None:
        raise PaymentForbiddenError(f"You do not have permission to refund this {kind}")
    if kind not in REFUNDABLE_KINDS:
        raise NotRefundableError(f"{kind.capitalize()}s are not refundable")
    return obj


def refund_eligibility(*, kind: str, entity_id, user, now: Optional[datetime] = None) -> dict:
    """Read-only preview of what refund_payment would do right now."""
    now = now or timezone.now()
    obj = _refundable(kind=kind, entity_id=entity_id, user=user, lock=False)
    record = _record_for(kind=kind, transactable=obj)

    if record is None:
        return {"eligible": False, "reason": f"{kind.capitalize()} has not been paid"}
    if record.status == PaymentRecord.STATUS_REFUNDED:
        return {
            "eligible": False,
            "reason": "Already refunded",
            "refunded_amount": (record.metadata or {}).get("refund_amount"),
        }
    if record.status != PaymentRecord.STATUS_SUCCEEDED:
        return {"eligible": False, "reason": "Payment did not succeed"}

    quote = quote_refund(amount_minor=record.amount, now=now, start=obj.start_date)
    return {
        "eligible": quote.is_refundable,
        "refund_percentage": quote.percentage,
        "refund_amount": quote.refund_amount,
        "original_amount": quote.original_amount,
        "days_until_start": quote.days_until_start,
    }


def refund_payment(
    *,
    kind: str,
    entity_id,
    user,
    gateway: Optional[PaymentGateway] = None,
    now: Optional[datetime] = None,
) -> RefundOutcome:
    gateway = _gateway(gateway)
    now = now or timezone.now()
    provider_refund = None
    record = None

    try:
        with transaction.atomic():
            obj = _refundable(kind=kind, entity_id=entity_id, user=user, lock=True)
            record = _record_for(kind=kind, transactable=obj, lock=True)

            if record is not None and record.status == PaymentRecord.STATUS_REFUNDED:
                raise AlreadyRefundedError()
            if record is None or record.status != PaymentRecord.STATUS_SUCCEEDED:
                raise NotPaidError()

            quote = quote_refund(amount_minor=record.amount, now=now, start=obj.start_date)
            if not quote.is_refundable:
                return RefundOutcome(
                    success=False,
                    refund_amount=0,
                    percentage=0,
                    days_until_start=quote.days_until_start,
                    message="No refund available - cancellation is less than 3 days before start date",
                )

            provider_refund = gateway.refund(
                payment_intent_id=record.external_ref,
                amount=quote.refund_amount,
                idempotency_key=f"refund_{record.id}",
                metadata={"type": kind, "entity_id": str(obj.pk), "percentage": quote.percentage},
            )

            record.status = PaymentRecord.STATUS_REFUNDED
            record.refunded_at = now
            record.metadata = {
                **(record.metadata or {}),
                "refund_id": provider_refund.id,
                "refund_amount": quote.refund_amount,
                "refund_percentage": quote.percentage,
                "refunded_at": now.isoformat(),
            }
            record.save(update_fields=["status", "refunded_at", "metadata", "updated_at"])

    except DatabaseError:
        if provider_refund is not None:
            flag_issue(
                kind=ReconciliationIssue.KIND_REFUND_NOT_PERSISTED,
                record=record,
                external_ref=record.external_ref or "",
                details={
                    "refund_id": provider_refund.id,
                    "refund_amount": provider_refund.amount,
                    "refunded_at": now.isoformat(),
                },
            )
        raise

    logger.info(
        "Payment refunded",
        extra={
            "kind": kind,
            "entity_id": str(entity_id),
            "refund_id": provider_refund.id,
            "refund_amount": provider_refund.amount,
            "percentage": quote.percentage,
        },
    )
    return RefundOutcome(
        success=True,
        refund_amount=quote.refund_amount,
        percentage=quote.percentage,
        days_until_start=quote.days_until_start,
        refund_id=provider_refund.id,
        message=(
            f"Successfully refunded {quote.percentage}% "
            f"(${from_minor_units(quote.refund_amount):.2f})"
        ),
    )
