# transactions/models/base.py

import uuid
from decimal import Decimal

from django.db import models

KIND_BOOKING = "booking"
KIND_RENTAL = "rental"
KIND_ORDER = "order"

KIND_CHOICES = [
    (KIND_BOOKING, "Plot booking"),
    (KIND_RENTAL, "Tool rental"),
    (KIND_ORDER, "Produce order"),
]


class Transactable(models.Model):
    """
    Shared shape of a booking, tool rental or produce order.

    GUARANTEES:
    - status is mutated ONLY through transactions.services.transition_service
      (or payment confirmation in payments.services.payment_orchestrator)
    - total_amount is a snapshot taken at creation; later listing price
      changes never touch it

    Subclasses define:
    - KIND
    - owner_user_id / counterparty_user_id
    - STATUS_* constants and status field
    """

    KIND = ""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @property
    def owner_user_id(self):
        raise NotImplementedError

    @property
    def counterparty_user_id(self):
        raise NotImplementedError

    @property
    def title(self) -> str:
        return str(self)
