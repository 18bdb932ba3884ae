# transactions/services/refund_policy.py

"""
REFUND POLICY

Refund share depends only on how far away the service start is:

    days until start (rounded up) >= 7  -> 100%
    days until start (rounded up) >= 3  -> 50%
    otherwise                           -> 0%

`now` is always injected by the caller. The result shrinks as the start
date approaches, so the same booking legitimately gets different answers
at different times.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

FULL_REFUND_DAYS = 7
PARTIAL_REFUND_DAYS = 3

FULL_REFUND_PERCENT = 100
PARTIAL_REFUND_PERCENT = 50
NO_REFUND_PERCENT = 0


@dataclass(frozen=True)
class RefundQuote:
    days_until_start: int
    percentage: int
    refund_amount: int  # minor units
    original_amount: int  # minor units

    @property
    def is_refundable(self) -> bool:
        return self.refund_amount > 0


def days_until_start(*, now: datetime, start: datetime) -> int:
    return math.ceil((start - now).total_seconds() / 86400)


def refund_percentage(*, now: datetime, start: datetime) -> int:
    days = days_until_start(now=now, start=start)
    if days >= FULL_REFUND_DAYS:
        return FULL_REFUND_PERCENT
    if days >= PARTIAL_REFUND_DAYS:
        return PARTIAL_REFUND_PERCENT
    return NO_REFUND_PERCENT


def refund_amount(*, amount_minor: int, percentage: int) -> int:
    value = Decimal(int(amount_minor)) * Decimal(int(percentage)) / Decimal(100)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def quote_refund(*, amount_minor: int, now: datetime, start: datetime) -> RefundQuote:
    pct = refund_percentage(now=now, start=start)
    return RefundQuote(
        days_until_start=days_until_start(now=now, start=start),
        percentage=pct,
        refund_amount=refund_amount(amount_minor=amount_minor, percentage=pct),
        original_amount=int(amount_minor),
    )
