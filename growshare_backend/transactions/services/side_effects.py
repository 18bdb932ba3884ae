# transactions/services/side_effects.py

"""
SIDE-EFFECT DISPATCHER

Runs the consequences of a committed status change:

1) Inventory restoration (cancel / complete)
   - called INSIDE the transition's DB transaction, wrapped in a savepoint
   - failure is logged and the status change still commits
2) Notifications to the other party (approve / reject / active / ready / cancel)
3) Completion hook (transactable_completed signal -> rewards)

(2) and (3) run AFTER commit. Each is best-effort and independently logged.
"""

from __future__ import annotations

import logging

from django.db import DatabaseError, transaction

from backend.api_errors import DomainError
from listings.services.inventory import release_tool, restore_listing_quantity
from notifications.models import Notification
from notifications.services.notify import notify
from permissions.roles import ACTOR_OWNER, other_party_id
from transactions.models import KIND_BOOKING, KIND_ORDER, KIND_RENTAL
from transactions.services.pricing import from_minor_units
from transactions.signals import transactable_completed

logger = logging.getLogger(__name__)

LINKS = {
    KIND_BOOKING: "/bookings/{id}",
    KIND_RENTAL: "/tools/rentals/{id}",
    KIND_ORDER: "/marketplace/orders/{id}",
}

NOUNS = {
    KIND_BOOKING: "booking",
    KIND_RENTAL: "tool rental",
    KIND_ORDER: "order",
}

# (kind, new status) -> (notification type, title, body template)
TRANSITION_MESSAGES = {
    (KIND_BOOKING, "APPROVED"): (
        Notification.TYPE_BOOKING_APPROVED,
        "Booking Approved",
        "Your booking for {title} has been approved.",
    ),
    (KIND_BOOKING, "REJECTED"): (
        Notification.TYPE_BOOKING_REJECTED,
        "Booking Rejected",
        "Your booking for {title} was not accepted.",
    ),
    (KIND_BOOKING, "ACTIVE"): (
        Notification.TYPE_TRANSACTION_UPDATE,
        "Booking Active",
        "Your booking for {title} is now active.",
    ),
    (KIND_RENTAL, "APPROVED"): (
        Notification.TYPE_BOOKING_APPROVED,
        "Tool Rental Approved",
        "Your rental of {title} has been approved.",
    ),
    (KIND_RENTAL, "ACTIVE"): (
        Notification.TYPE_TRANSACTION_UPDATE,
        "Tool Picked Up",
        "The rental of {title} is now active.",
    ),
    (KIND_ORDER, "CONFIRMED"): (
        Notification.TYPE_BOOKING_APPROVED,
        "Order Confirmed",
        "Your order of {title} has been confirmed.",
    ),
    (KIND_ORDER, "READY"): (
        Notification.TYPE_TRANSACTION_UPDATE,
        "Order Ready",
        "Your order of {title} is ready.",
    ),
}

CANCELLED = "CANCELLED"
COMPLETED = "COMPLETED"


def link_for(*, kind: str, transactable) -> str:
    return LINKS[kind].format(id=transactable.id)


# ============================================================
# INVENTORY (in-transaction, best-effort)
# ============================================================


def restore_inventory(*, kind: str, transactable, to_status: str) -> bool:
    """
    Give back whatever this transaction took from its listing.

    Only restores when a decrement actually happened (flags on the row),
    so cancelling a PENDING rental never touches the tool.
    """
    if kind == KIND_ORDER and to_status == CANCELLED:
        action = restore_listing_quantity
        kwargs = {"order": transactable}
    elif kind == KIND_RENTAL and to_status in (CANCELLED, COMPLETED):
        action = release_tool
        kwargs = {"rental": transactable}
    else:
        return False

    try:
        with transaction.atomic():
            return action(**kwargs)
    except (DatabaseError, DomainError):
        logger.exception(
            "Inventory restoration failed; status change kept",
            extra={"kind": kind, "entity_id": str(transactable.id), "to_status": to_status},
        )
        return False


# ============================================================
# AFTER COMMIT
# ============================================================


def dispatch_transition_effects(
    *,
    kind: str,
    transactable,
    from_status: str,
    to_status: str,
    actor_role: str,
) -> None:
    recipient_id = other_party_id(transactable=transactable, actor_role=actor_role)
    link = link_for(kind=kind, transactable=transactable)
    metadata = {"kind": kind, "entity_id": str(transactable.id), "status": to_status}

    if to_status == CANCELLED:
        who = "owner" if actor_role == ACTOR_OWNER else "other party"
        notify(
            recipient_id=recipient_id,
            type=Notification.TYPE_BOOKING_CANCELLED,
            title=f"{NOUNS[kind].capitalize()} Cancelled",
            content=f"The {NOUNS[kind]} for {transactable.title} was cancelled by the {who}.",
            link=link,
            metadata=metadata,
        )
    elif (kind, to_status) in TRANSITION_MESSAGES:
        ntype, title, body = TRANSITION_MESSAGES[(kind, to_status)]
        notify(
            recipient_id=recipient_id,
            type=ntype,
            title=title,
            content=body.format(title=transactable.title),
            link=link,
            metadata=metadata,
        )

    if to_status == COMPLETED:
        fire_completion_hook(kind=kind, transactable=transactable)

    logger.info(
        "Transition effects dispatched",
        extra={**metadata, "from_status": from_status},
    )


def fire_completion_hook(*, kind: str, transactable) -> None:
    responses = transactable_completed.send_robust(
        sender=type(transactable),
        kind=kind,
        instance=transactable,
        owner_id=transactable.owner_user_id,
        counterparty_id=transactable.counterparty_user_id,
    )
    for receiver, result in responses:
        if isinstance(result, Exception):
            logger.error(
                "Completion hook receiver failed",
                exc_info=result,
                extra={"kind": kind, "entity_id": str(transactable.id), "receiver": repr(receiver)},
            )


def notify_created(*, kind: str, transactable) -> None:
    """New request -> the owner / seller."""
    notify(
        recipient_id=transactable.owner_user_id,
        type=Notification.TYPE_BOOKING_REQUEST,
        title=f"New {NOUNS[kind]} request",
        content=f"You have a new {NOUNS[kind]} request for {transactable.title}.",
        link=link_for(kind=kind, transactable=transactable),
        metadata={"kind": kind, "entity_id": str(transactable.id)},
    )


def notify_payment_received(*, kind: str, transactable, amount_minor: int) -> None:
    """Successful payment -> the receiving party (owner / seller)."""
    amount = from_minor_units(amount_minor)
    notify(
        recipient_id=transactable.owner_user_id,
        type=Notification.TYPE_PAYMENT_RECEIVED,
        title="Payment Received",
        content=f"Payment of ${amount:.2f} received for {transactable.title}.",
        link=link_for(kind=kind, transactable=transactable),
        metadata={"kind": kind, "entity_id": str(transactable.id), "amount": amount_minor},
    )
