# transactions/models/order.py

from decimal import Decimal

from django.conf import settings
from django.db import models

from .base import KIND_ORDER, Transactable


class Order(Transactable):
    """
    A buyer ordering units of a produce listing.

    Inventory flags:
    - inventory_decremented: set when the listing quantity was reserved
      at creation (same DB transaction)
    - inventory_restored: claimed exactly once when a cancellation gives
      the quantity back
    """

    KIND = KIND_ORDER

    STATUS_PENDING = "PENDING"
    STATUS_CONFIRMED = "CONFIRMED"
    STATUS_READY = "READY"
    STATUS_COMPLETED = "COMPLETED"
    STATUS_CANCELLED = "CANCELLED"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_READY, "Ready"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    listing = models.ForeignKey(
        "listings.ProduceListing",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders_as_buyer",
    )

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    delivery_method = models.CharField(max_length=32)
    delivery_address = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)

    inventory_decremented = models.BooleanField(default=False)
    inventory_restored = models.BooleanField(default=False)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["listing", "status"], name="order_listing_status_idx"),
            models.Index(fields=["buyer", "status"], name="order_buyer_status_idx"),
        ]

    @property
    def owner_user_id(self):
        return self.listing.seller_id

    @property
    def counterparty_user_id(self):
        return self.buyer_id

    @property
    def title(self) -> str:
        return self.listing.product_name

    def __str__(self):
        return f"Order {self.id} | {self.status}"
