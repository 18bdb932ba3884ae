# payments/models/payment_record.py

import uuid

from django.db import models
from django.db.models import Q

from transactions.models import KIND_BOOKING, KIND_ORDER, KIND_RENTAL


class PaymentRecord(models.Model):
    """
    Local record of the payment for ONE booking, tool rental or order.

    GUARANTEES:
    - One-to-one with its transactable (DB unique constraint), so two
      concurrent initiations can never both create a record
    - Exactly one of booking / rental / order is set (check constraint)
    - Status moves only:
        PENDING -> SUCCEEDED | FAILED | CANCELLED
        SUCCEEDED -> REFUNDED (terminal)
      A FAILED / CANCELLED / stale PENDING record is re-armed in place for a
      new attempt (attempt += 1, previous refs kept in metadata)

    Amounts are minor units (cents).
    """

    STATUS_PENDING = "PENDING"
    STATUS_SUCCEEDED = "SUCCEEDED"
    STATUS_FAILED = "FAILED"
    STATUS_CANCELLED = "CANCELLED"
    STATUS_REFUNDED = "REFUNDED"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_SUCCEEDED, "Succeeded"),
        (STATUS_FAILED, "Failed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_REFUNDED, "Refunded"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    booking = models.OneToOneField(
        "transactions.Booking",
        on_delete=models.PROTECT,
        related_name="payment",
        null=True,
        blank=True,
    )
    rental = models.OneToOneField(
        "transactions.ToolRental",
        on_delete=models.PROTECT,
        related_name="payment",
        null=True,
        blank=True,
    )
    order = models.OneToOneField(
        "transactions.Order",
        on_delete=models.PROTECT,
        related_name="payment",
        null=True,
        blank=True,
    )

    external_ref = models.CharField(max_length=128, unique=True, null=True, blank=True)

    amount = models.PositiveIntegerField()
    platform_fee = models.PositiveIntegerField(default=0)
    owner_earnings = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, default="usd")

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)

    metadata = models.JSONField(default=dict, blank=True)
    failure_message = models.TextField(blank=True, default="")
    attempt = models.PositiveIntegerField(default=1)

    completed_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="payment_status_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(booking__isnull=False, rental__isnull=True, order__isnull=True)
                    | Q(booking__isnull=True, rental__isnull=False, order__isnull=True)
                    | Q(booking__isnull=True, rental__isnull=True, order__isnull=False)
                ),
                name="payment_exactly_one_transactable",
            ),
        ]

    @staticmethod
    def field_for_kind(kind: str) -> str:
        return {KIND_BOOKING: "booking", KIND_RENTAL: "rental", KIND_ORDER: "order"}[kind]

    @property
    def kind(self) -> str:
        if self.booking_id:
            return KIND_BOOKING
        if self.rental_id:
            return KIND_RENTAL
        return KIND_ORDER

    @property
    def transactable_id(self):
        return self.booking_id or self.rental_id or self.order_id

    def __str__(self):
        return f"Payment {self.external_ref or self.id} | {self.status}"
