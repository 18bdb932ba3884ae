# transactions/models/tool_rental.py

from decimal import Decimal

from django.conf import settings
from django.db import models

from .base import KIND_RENTAL, Transactable


class ToolRental(Transactable):
    """
    A member renting another member's tool.

    Availability:
    - the tool is held (RENTED) only from APPROVED onwards
    - tool_held records that this rental owns the hold, so releasing is
      idempotent and PENDING cancellations never touch the tool
    """

    KIND = KIND_RENTAL

    STATUS_PENDING = "PENDING"
    STATUS_APPROVED = "APPROVED"
    STATUS_ACTIVE = "ACTIVE"
    STATUS_COMPLETED = "COMPLETED"
    STATUS_CANCELLED = "CANCELLED"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_ACTIVE, "Active"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    tool = models.ForeignKey(
        "listings.Tool",
        on_delete=models.PROTECT,
        related_name="rentals",
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="tool_rentals_as_renter",
    )

    start_date = models.DateTimeField()
    end_date = models.DateTimeField()

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)

    deposit_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )

    owner_notes = models.TextField(blank=True, default="")
    renter_notes = models.TextField(blank=True, default="")

    tool_held = models.BooleanField(default=False)

    approved_at = models.DateTimeField(null=True, blank=True)
    picked_up_at = models.DateTimeField(null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["tool", "status"], name="rental_tool_status_idx"),
            models.Index(fields=["renter", "status"], name="rental_renter_status_idx"),
        ]

    @property
    def owner_user_id(self):
        return self.tool.owner_id

    @property
    def counterparty_user_id(self):
        return self.renter_id

    @property
    def title(self) -> str:
        return self.tool.name

    def __str__(self):
        return f"ToolRental {self.id} | {self.status}"
