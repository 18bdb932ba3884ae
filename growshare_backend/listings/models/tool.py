# listings/models/tool.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .rates import weekly_rate_problem


class Tool(models.Model):
    """
    A tool offered by a member for rent (and/or sale).

    AVAILABILITY:
    - status flips AVAILABLE -> RENTED only when a rental is APPROVED
    - it flips back when that rental completes or is cancelled
    - both flips are conditional UPDATEs (listings/services/inventory.py)
    """

    STATUS_AVAILABLE = "AVAILABLE"
    STATUS_RENTED = "RENTED"
    STATUS_UNAVAILABLE = "UNAVAILABLE"

    STATUS_CHOICES = [
        (STATUS_AVAILABLE, "Available"),
        (STATUS_RENTED, "Rented"),
        (STATUS_UNAVAILABLE, "Unavailable"),
    ]

    LISTING_RENT = "RENT"
    LISTING_SALE = "SALE"
    LISTING_BOTH = "BOTH"

    LISTING_TYPE_CHOICES = [
        (LISTING_RENT, "Rent"),
        (LISTING_SALE, "Sale"),
        (LISTING_BOTH, "Rent or sale"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tools",
    )

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=100, blank=True, default="")

    listing_type = models.CharField(
        max_length=8, choices=LISTING_TYPE_CHOICES, default=LISTING_RENT
    )
    status = models.CharField(
        max_length=16, choices=STATUS_CHOICES, default=STATUS_AVAILABLE
    )

    daily_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    weekly_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    deposit_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="tool_status_idx"),
            models.Index(fields=["owner", "status"], name="tool_owner_status_idx"),
        ]

    @property
    def is_rentable(self) -> bool:
        return self.listing_type != self.LISTING_SALE

    def clean(self):
        if self.is_rentable and (self.daily_rate is None or Decimal(self.daily_rate) <= 0):
            raise ValidationError("Rentable tools need a daily_rate greater than zero")
        problem = weekly_rate_problem(self.daily_rate, self.weekly_rate)
        if problem:
            raise ValidationError(problem)

    def __str__(self):
        return f"{self.name} ({self.status})"
