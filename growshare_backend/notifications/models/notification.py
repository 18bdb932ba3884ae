# notifications/models/notification.py

import uuid

from django.conf import settings
from django.db import models


class Notification(models.Model):
    """
    In-app notification for a single recipient.

    Records are append-only apart from is_read.
    """

    TYPE_BOOKING_REQUEST = "BOOKING_REQUEST"
    TYPE_BOOKING_APPROVED = "BOOKING_APPROVED"
    TYPE_BOOKING_REJECTED = "BOOKING_REJECTED"
    TYPE_BOOKING_CANCELLED = "BOOKING_CANCELLED"
    TYPE_NEW_MESSAGE = "NEW_MESSAGE"
    TYPE_NEW_REVIEW = "NEW_REVIEW"
    TYPE_PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    TYPE_PLOT_VIEWED = "PLOT_VIEWED"
    TYPE_TRANSACTION_UPDATE = "TRANSACTION_UPDATE"

    TYPE_CHOICES = [
        (TYPE_BOOKING_REQUEST, "Booking request"),
        (TYPE_BOOKING_APPROVED, "Booking approved"),
        (TYPE_BOOKING_REJECTED, "Booking rejected"),
        (TYPE_BOOKING_CANCELLED, "Booking cancelled"),
        (TYPE_NEW_MESSAGE, "New message"),
        (TYPE_NEW_REVIEW, "New review"),
        (TYPE_PAYMENT_RECEIVED, "Payment received"),
        (TYPE_PLOT_VIEWED, "Plot viewed"),
        (TYPE_TRANSACTION_UPDATE, "Transaction update"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )

    type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    title = models.CharField(max_length=200)
    content = models.TextField(blank=True, default="")
    link = models.CharField(max_length=500, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
        ]

    def __str__(self):
        return f"{self.type} -> {self.recipient_id}"
