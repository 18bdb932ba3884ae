# transactions/models/booking.py

from decimal import Decimal

from django.conf import settings
from django.db import models

from .base import KIND_BOOKING, Transactable


class Booking(Transactable):
    """
    A grower booking a landowner's plot for a date range.

    Lifecycle:
        PENDING -> APPROVED -> ACTIVE -> COMPLETED
        PENDING -> REJECTED
        PENDING | APPROVED -> CANCELLED

    ACTIVE is normally reached by the payment webhook (paid_at set).
    """

    KIND = KIND_BOOKING

    STATUS_PENDING = "PENDING"
    STATUS_APPROVED = "APPROVED"
    STATUS_ACTIVE = "ACTIVE"
    STATUS_COMPLETED = "COMPLETED"
    STATUS_CANCELLED = "CANCELLED"
    STATUS_REJECTED = "REJECTED"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_ACTIVE, "Active"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_REJECTED, "Rejected"),
    ]

    plot = models.ForeignKey(
        "listings.Plot",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings_as_renter",
    )

    start_date = models.DateTimeField()
    end_date = models.DateTimeField()

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)

    security_deposit = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )

    message = models.TextField(blank=True, default="")
    owner_notes = models.TextField(blank=True, default="")
    renter_notes = models.TextField(blank=True, default="")

    stripe_payment_id = models.CharField(max_length=128, blank=True, default="")

    approved_at = models.DateTimeField(null=True, blank=True)
    activated_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["plot", "status"], name="booking_plot_status_idx"),
            models.Index(fields=["renter", "status"], name="booking_renter_status_idx"),
            models.Index(fields=["start_date", "end_date"], name="booking_dates_idx"),
        ]

    @property
    def owner_user_id(self):
        return self.plot.owner_id

    @property
    def counterparty_user_id(self):
        return self.renter_id

    @property
    def title(self) -> str:
        return self.plot.title

    def __str__(self):
        return f"Booking {self.id} | {self.status}"
