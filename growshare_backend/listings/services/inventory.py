# listings/services/inventory.py

"""
LISTING INVENTORY ENGINE

Purpose:
- Decrement produce quantity when an order is created.
- Restore it when that order is cancelled.
- Hold a tool (AVAILABLE -> RENTED) when a rental is approved and release it
  when the rental completes or is cancelled.

HARD RULES:
- Every decrement is ONE conditional UPDATE (check + set in the same
  statement). Reading the row first and writing later is not safe under
  concurrent orders.
- Restoration is guarded by a flag on the transaction row (inventory_restored /
  tool_held) that is claimed with its own conditional UPDATE, so a second
  cancellation path can never credit the same stock twice.
- Nothing here caches listing state in memory; the datastore is the only
  source of truth.
"""

from __future__ import annotations

import logging

from django.db.models import Case, F, Value, When
from django.utils import timezone

from backend.api_errors import DomainNotFoundError, DomainStateError, DomainValidationError
from listings.models import ProduceListing, Tool

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================


class InvalidQuantityError(DomainValidationError):
    default_message = "Quantity must be greater than 0"


class ListingNotFoundError(DomainNotFoundError):
    default_message = "Listing not found"


class ListingUnavailableError(DomainStateError):
    default_message = "Listing is not available"


class InsufficientQuantityError(DomainStateError):
    default_message = "Insufficient quantity available"


class ToolUnavailableError(DomainStateError):
    default_message = "Tool is not available"


def _to_int_qty(value) -> int:
    """
    Quantity normalizer.
    HARD RULE: produce quantities are whole units.
    """
    if isinstance(value, bool):
        raise InvalidQuantityError("Quantity must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidQuantityError("Quantity must be a whole number")


# ============================================================
# PRODUCE LISTINGS
# ============================================================


def reserve_listing_quantity(*, listing_id, quantity) -> None:
    """
    Atomically take `quantity` units from a listing.

    The UPDATE only matches while the listing is AVAILABLE and holds enough
    stock. When the order takes the last units, status becomes SOLD in the
    same statement.

    Raises:
        InvalidQuantityError, ListingNotFoundError,
        ListingUnavailableError, InsufficientQuantityError
    """
    qty = _to_int_qty(quantity)
    if qty <= 0:
        raise InvalidQuantityError()

    # status is listed first: it must be computed from the pre-update quantity.
    updated = ProduceListing.objects.filter(
        pk=listing_id,
        status=ProduceListing.STATUS_AVAILABLE,
        quantity__gte=qty,
    ).update(
        status=Case(
            When(quantity=qty, then=Value(ProduceListing.STATUS_SOLD)),
            default=Value(ProduceListing.STATUS_AVAILABLE),
        ),
        quantity=F("quantity") - qty,
        updated_at=timezone.now(),
    )

    if updated == 1:
        logger.info(
            "Listing quantity reserved",
            extra={"listing_id": str(listing_id), "quantity": qty},
        )
        return

    current = (
        ProduceListing.objects.filter(pk=listing_id)
        .values("status", "quantity", "unit")
        .first()
    )
    if current is None:
        raise ListingNotFoundError()
    if current["status"] != ProduceListing.STATUS_AVAILABLE:
        raise ListingUnavailableError()
    raise InsufficientQuantityError(
        f"Only {current['quantity']} {current['unit']} available"
    )


def restore_listing_quantity(*, order) -> bool:
    """
    Give an order's quantity back to its listing, at most once.

    Only orders that actually decremented stock are restored. Returns True
    when stock was credited, False when there was nothing to restore.
    """
    claimed = type(order).objects.filter(
        pk=order.pk,
        inventory_decremented=True,
        inventory_restored=False,
    ).update(inventory_restored=True)

    if claimed != 1:
        logger.info(
            "Listing restoration skipped (nothing reserved or already restored)",
            extra={"order_id": str(order.pk)},
        )
        return False

    ProduceListing.objects.filter(pk=order.listing_id).update(
        status=Case(
            When(
                status=ProduceListing.STATUS_SOLD,
                then=Value(ProduceListing.STATUS_AVAILABLE),
            ),
            default=F("status"),
        ),
        quantity=F("quantity") + order.quantity,
        updated_at=timezone.now(),
    )
    order.inventory_restored = True

    logger.info(
        "Listing quantity restored",
        extra={"order_id": str(order.pk), "listing_id": str(order.listing_id)},
    )
    return True


# ============================================================
# TOOLS
# ============================================================


def hold_tool(*, rental) -> None:
    """
    Mark the rental's tool RENTED. Fails if someone else already holds it.
    """
    updated = Tool.objects.filter(
        pk=rental.tool_id,
        status=Tool.STATUS_AVAILABLE,
    ).update(status=Tool.STATUS_RENTED, updated_at=timezone.now())

    if updated != 1:
        raise ToolUnavailableError("Tool is no longer available for these dates")

    type(rental).objects.filter(pk=rental.pk).update(tool_held=True)
    rental.tool_held = True

    logger.info(
        "Tool held for rental",
        extra={"rental_id": str(rental.pk), "tool_id": str(rental.tool_id)},
    )


def release_tool(*, rental) -> bool:
    """
    Return the rental's tool to AVAILABLE, at most once.

    Rentals that never held the tool (cancelled while PENDING) are a no-op.
    """
    claimed = type(rental).objects.filter(pk=rental.pk, tool_held=True).update(
        tool_held=False
    )
    if claimed != 1:
        return False

    Tool.objects.filter(pk=rental.tool_id, status=Tool.STATUS_RENTED).update(
        status=Tool.STATUS_AVAILABLE,
        updated_at=timezone.now(),
    )
    rental.tool_held = False

    logger.info(
        "Tool released",
        extra={"rental_id": str(rental.pk), "tool_id": str(rental.tool_id)},
    )
    return True
