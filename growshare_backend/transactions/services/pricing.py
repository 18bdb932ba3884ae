# transactions/services/pricing.py

"""
PRICING CALCULATOR

Pure functions: no DB access, no side effects.

Money rules:
- Prices are Decimal, quantized to 2 places with ROUND_HALF_UP
- Payment amounts are integer minor units (cents)
- Durations are whole days, rounded UP (a started day is a billed day)
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from backend.api_errors import DomainValidationError
from listings.services.inventory import InsufficientQuantityError, InvalidQuantityError

TWOPLACES = Decimal("0.01")
SECONDS_PER_DAY = 86400
DAYS_PER_WEEK = 7
DAYS_PER_BILLING_MONTH = 30


class InvalidDateRangeError(DomainValidationError):
    default_message = "End date must be after start date"


class InvalidRateError(DomainValidationError):
    default_message = "Rate must be greater than zero"


def _money(value) -> Decimal:
    try:
        return Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidRateError(f"Invalid money value: {value!r}") from exc


def _positive_rate(value, *, name: str) -> Decimal:
    rate = _money(value)
    if rate <= 0:
        raise InvalidRateError(f"{name} must be greater than zero")
    return rate


# ============================================================
# DURATIONS
# ============================================================


def duration_days(start: datetime, end: datetime) -> int:
    """
    Whole days between start and end, rounded up. Must be > 0.
    """
    if start is None or end is None:
        raise InvalidDateRangeError("Start and end dates are required")

    days = math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)
    if days <= 0:
        raise InvalidDateRangeError()
    return days


# ============================================================
# RENTALS / BOOKINGS
# ============================================================


def price_rental(*, daily_rate, weekly_rate=None, start: datetime, end: datetime) -> Decimal:
    """
    duration >= 7 with a weekly rate:
        floor(duration / 7) * weekly_rate + (duration % 7) * daily_rate
    otherwise:
        duration * daily_rate

    The result is capped at duration * daily_rate, so a weekly rate set
    above seven daily rates never raises the price.
    """
    days = duration_days(start, end)
    daily = _positive_rate(daily_rate, name="daily_rate")
    daily_total = daily * days

    if weekly_rate is not None and days >= DAYS_PER_WEEK:
        weekly = _positive_rate(weekly_rate, name="weekly_rate")
        weeks, remainder = divmod(days, DAYS_PER_WEEK)
        return _money(min(weekly * weeks + daily * remainder, daily_total))

    return _money(daily_total)


def price_monthly(*, monthly_rate, start: datetime, end: datetime) -> Decimal:
    """
    Plot bookings on a monthly rate: every started 30-day block is billed.
    """
    days = duration_days(start, end)
    monthly = _positive_rate(monthly_rate, name="price_per_month")
    months = math.ceil(days / DAYS_PER_BILLING_MONTH)
    return _money(monthly * months)


def price_booking(*, plot, start: datetime, end: datetime) -> Decimal:
    if plot.daily_rate is not None:
        return price_rental(
            daily_rate=plot.daily_rate,
            weekly_rate=plot.weekly_rate,
            start=start,
            end=end,
        )
    return price_monthly(monthly_rate=plot.price_per_month, start=start, end=end)


# ============================================================
# ORDERS
# ============================================================


def price_order(*, unit_price, quantity: int, available: int | None = None) -> Decimal:
    """
    unit_price * quantity.

    `available` is the caller's read of the listing; the authoritative
    check happens again in the atomic reservation at commit time.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError("Quantity must be a whole number")
    if quantity <= 0:
        raise InvalidQuantityError()
    if available is not None and quantity > available:
        raise InsufficientQuantityError(f"Only {available} available")

    return _money(_positive_rate(unit_price, name="unit_price") * quantity)


# ============================================================
# MINOR UNITS / FEES
# ============================================================


def to_minor_units(amount) -> int:
    """Dollars -> cents."""
    return int((_money(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(cents: int) -> Decimal:
    """Cents -> dollars."""
    return _money(Decimal(int(cents)) / Decimal(100))


def platform_fee(amount_minor: int, percent) -> int:
    """round(amount * percent / 100), half up."""
    fee = Decimal(int(amount_minor)) * Decimal(str(percent)) / Decimal(100)
    return int(fee.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
