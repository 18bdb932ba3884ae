# users/signals.py

"""
REWARD HOOK RECEIVERS

Completion of a booking, tool rental or produce order awards points to both
parties. Points are credited with an F() increment so concurrent completions
never lose updates.
"""

from __future__ import annotations

import logging

from django.db.models import F
from django.dispatch import receiver

from transactions.signals import transactable_completed
from users.models import User

logger = logging.getLogger(__name__)

COMPLETION_POINTS = {
    "booking": 25,
    "rental": 10,
    "order": 10,
}


def award_points(*, user_ids, points: int) -> int:
    if points <= 0:
        return 0
    return User.objects.filter(id__in=list(user_ids)).update(
        total_points=F("total_points") + points
    )


@receiver(transactable_completed, dispatch_uid="users.award_completion_points")
def award_completion_points(sender, *, kind, owner_id, counterparty_id, **kwargs):
    points = COMPLETION_POINTS.get(kind, 0)
    updated = award_points(user_ids={owner_id, counterparty_id}, points=points)
    logger.info(
        "Completion points awarded",
        extra={"kind": kind, "points": points, "users": updated},
    )
