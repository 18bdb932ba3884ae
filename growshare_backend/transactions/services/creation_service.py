# transactions/services/creation_service.py

"""
CREATION SERVICE

Creates bookings, tool rentals and produce orders in PENDING (or APPROVED
for instant-book plots) and notifies the owner / seller.

Concurrency:
- bookings lock the plot row, rentals lock the tool row, so overlap checks
  for the same listing are serialized
- orders rely on the atomic conditional decrement in
  listings.services.inventory (no lock, no check-then-set)
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from backend.api_errors import DomainNotFoundError, DomainStateError, DomainValidationError
from listings.models import Plot, ProduceListing, Tool
from listings.services.inventory import (
    ListingNotFoundError,
    ListingUnavailableError,
    reserve_listing_quantity,
)
from transactions.models import KIND_BOOKING, KIND_ORDER, KIND_RENTAL, Booking, Order, ToolRental
from transactions.services.pricing import price_booking, price_order, price_rental
from transactions.services.side_effects import notify_created

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================


class SelfDealingError(DomainValidationError):
    pass


class DateConflictError(DomainStateError):
    pass


class InvalidDeliveryMethodError(DomainValidationError):
    default_message = "Invalid delivery method"


BOOKING_BLOCKING_STATUSES = (
    Booking.STATUS_PENDING,
    Booking.STATUS_APPROVED,
    Booking.STATUS_ACTIVE,
)

RENTAL_BLOCKING_STATUSES = (
    ToolRental.STATUS_APPROVED,
    ToolRental.STATUS_ACTIVE,
)


def _lock(model, pk, *, not_found: str):
    try:
        return model.objects.select_for_update().get(pk=pk)
    except (model.DoesNotExist, ValueError, DjangoValidationError):
        raise DomainNotFoundError(not_found) from None


def _check_dates(start: datetime, end: datetime, *, now: datetime) -> None:
    if start is None or end is None:
        raise DomainValidationError("Start and end dates are required")
    if end <= start:
        raise DomainValidationError("End date must be after start date")
    if start < now:
        raise DomainValidationError("Start date cannot be in the past")


# ============================================================
# BOOKINGS
# ============================================================


def create_booking(
    *,
    plot_id,
    renter,
    start_date: datetime,
    end_date: datetime,
    message: str = "",
    now: datetime | None = None,
) -> Booking:
    now = now or timezone.now()
    _check_dates(start_date, end_date, now=now)

    with transaction.atomic():
        plot = _lock(Plot, plot_id, not_found="Plot not found")

        if not plot.is_active:
            raise ListingUnavailableError("Plot is not available for booking")
        if plot.owner_id == renter.id:
            raise SelfDealingError("You cannot book your own plot")

        overlapping = Booking.objects.filter(
            plot=plot,
            status__in=BOOKING_BLOCKING_STATUSES,
            start_date__lt=end_date,
            end_date__gt=start_date,
        ).exists()
        if overlapping:
            raise DateConflictError("Plot is already booked for these dates")

        instant = plot.instant_book
        booking = Booking.objects.create(
            plot=plot,
            renter=renter,
            start_date=start_date,
            end_date=end_date,
            total_amount=price_booking(plot=plot, start=start_date, end=end_date),
            security_deposit=plot.security_deposit,
            message=message or "",
            status=Booking.STATUS_APPROVED if instant else Booking.STATUS_PENDING,
            approved_at=now if instant else None,
        )

    logger.info(
        "Booking created",
        extra={"booking_id": str(booking.id), "plot_id": str(plot.id), "instant": instant},
    )
    notify_created(kind=KIND_BOOKING, transactable=booking)
    return booking


# ============================================================
# TOOL RENTALS
# ============================================================


def create_tool_rental(
    *,
    tool_id,
    renter,
    start_date: datetime,
    end_date: datetime,
    renter_notes: str = "",
    now: datetime | None = None,
) -> ToolRental:
    now = now or timezone.now()
    _check_dates(start_date, end_date, now=now)

    with transaction.atomic():
        tool = _lock(Tool, tool_id, not_found="Tool not found")

        if tool.status != Tool.STATUS_AVAILABLE:
            raise ListingUnavailableError("Tool is not available for rent")
        if not tool.is_rentable:
            raise ListingUnavailableError("This tool is only available for purchase")
        if tool.owner_id == renter.id:
            raise SelfDealingError("You cannot rent your own tool")

        conflicting = ToolRental.objects.filter(
            tool=tool,
            status__in=RENTAL_BLOCKING_STATUSES,
            start_date__lt=end_date,
            end_date__gt=start_date,
        ).exists()
        if conflicting:
            raise DateConflictError("Tool is already rented for these dates")

        rental = ToolRental.objects.create(
            tool=tool,
            renter=renter,
            start_date=start_date,
            end_date=end_date,
            total_amount=price_rental(
                daily_rate=tool.daily_rate,
                weekly_rate=tool.weekly_rate,
                start=start_date,
                end=end_date,
            ),
            deposit_amount=tool.deposit_amount,
            renter_notes=renter_notes or "",
        )

    logger.info(
        "Tool rental created",
        extra={"rental_id": str(rental.id), "tool_id": str(tool.id)},
    )
    notify_created(kind=KIND_RENTAL, transactable=rental)
    return rental


# ============================================================
# ORDERS
# ============================================================


def create_order(
    *,
    listing_id,
    buyer,
    quantity: int,
    delivery_method: str,
    delivery_address: str = "",
    notes: str = "",
) -> Order:
    try:
        listing = ProduceListing.objects.get(pk=listing_id)
    except (ProduceListing.DoesNotExist, ValueError, DjangoValidationError):
        raise ListingNotFoundError() from None

    if listing.seller_id == buyer.id:
        raise SelfDealingError("You cannot order your own listing")
    if listing.status != ProduceListing.STATUS_AVAILABLE:
        raise ListingUnavailableError()
    if not listing.supports_delivery(delivery_method):
        raise InvalidDeliveryMethodError(
            f"Delivery method '{delivery_method}' is not offered for this listing"
        )

    total = price_order(
        unit_price=listing.price_per_unit,
        quantity=quantity,
        available=listing.quantity,
    )

    with transaction.atomic():
        # Authoritative check happens here, at commit time.
        reserve_listing_quantity(listing_id=listing.id, quantity=quantity)

        order = Order.objects.create(
            listing=listing,
            buyer=buyer,
            quantity=quantity,
            unit_price=listing.price_per_unit,
            total_amount=total,
            delivery_method=delivery_method,
            delivery_address=delivery_address or "",
            notes=notes or "",
            inventory_decremented=True,
        )

    logger.info(
        "Order created",
        extra={"order_id": str(order.id), "listing_id": str(listing.id), "quantity": quantity},
    )
    notify_created(kind=KIND_ORDER, transactable=order)
    return order
