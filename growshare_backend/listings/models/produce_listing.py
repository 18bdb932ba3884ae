# listings/models/produce_listing.py

import uuid

from django.conf import settings
from django.db import models


class ProduceListing(models.Model):
    """
    Produce offered on the marketplace.

    STOCK MODEL:
    - quantity is the live available amount (whole units)
    - orders decrement it with a single conditional UPDATE
    - reaching 0 flips status to SOLD in the same statement
    - the DB check constraint makes a negative quantity impossible
    """

    STATUS_AVAILABLE = "AVAILABLE"
    STATUS_SOLD = "SOLD"
    STATUS_EXPIRED = "EXPIRED"

    STATUS_CHOICES = [
        (STATUS_AVAILABLE, "Available"),
        (STATUS_SOLD, "Sold"),
        (STATUS_EXPIRED, "Expired"),
    ]

    DELIVERY_PICKUP = "PICKUP"
    DELIVERY_LOCAL = "LOCAL_DELIVERY"
    DELIVERY_SHIPPING = "SHIPPING"

    DELIVERY_METHODS = {
        DELIVERY_PICKUP,
        DELIVERY_LOCAL,
        DELIVERY_SHIPPING,
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="produce_listings",
    )

    product_name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    unit = models.CharField(max_length=32, default="lb")

    price_per_unit = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.IntegerField(default=0)

    status = models.CharField(
        max_length=16, choices=STATUS_CHOICES, default=STATUS_AVAILABLE
    )

    delivery_methods = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="produce_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name="produce_quantity_non_negative",
            ),
        ]

    def supports_delivery(self, method: str) -> bool:
        methods = self.delivery_methods or [self.DELIVERY_PICKUP]
        return method in methods

    def __str__(self):
        return f"{self.product_name} x{self.quantity} ({self.status})"
