# listings/models/rates.py

from decimal import Decimal

DAYS_PER_WEEK = 7


def weekly_rate_problem(daily_rate, weekly_rate) -> str | None:
    """
    Returns an error message when a weekly rate is unusable, else None.

    A weekly rate is a discount: positive, backed by a daily rate, and
    never more than seven days at the daily rate.
    """
    if weekly_rate is None:
        return None
    if daily_rate is None:
        return "weekly_rate requires a daily_rate"

    weekly = Decimal(str(weekly_rate))
    if weekly <= 0:
        return "weekly_rate must be greater than zero"
    if weekly > Decimal(str(daily_rate)) * DAYS_PER_WEEK:
        return "weekly_rate cannot exceed 7 days at the daily_rate"
    return None
