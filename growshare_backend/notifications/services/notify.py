# notifications/services/notify.py

"""
NOTIFICATION SINK

Fire-and-forget: callers get the created Notification or None.
A failure to write a notification is logged and never propagated, so it
can never undo the business operation that triggered it.
"""

from __future__ import annotations

import logging

from django.db import DatabaseError, transaction

from notifications.models import Notification

logger = logging.getLogger(__name__)


def notify(
    *,
    recipient_id,
    type: str,
    title: str,
    content: str = "",
    link: str = "",
    metadata: dict | None = None,
):
    try:
        # Savepoint: a failed insert must not poison an enclosing transaction.
        with transaction.atomic():
            return Notification.objects.create(
                recipient_id=recipient_id,
                type=type,
                title=title,
                content=content,
                link=link,
                metadata=metadata or {},
            )
    except DatabaseError:
        logger.exception(
            "Failed to create notification",
            extra={"recipient_id": str(recipient_id), "type": type},
        )
        return None


def mark_read(*, recipient, notification_ids=None) -> int:
    qs = Notification.objects.filter(recipient=recipient, is_read=False)
    if notification_ids is not None:
        qs = qs.filter(id__in=list(notification_ids))
    return qs.update(is_read=True)
