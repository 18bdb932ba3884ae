# listings/models/plot.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .rates import weekly_rate_problem


class Plot(models.Model):
    """
    A piece of land a landowner offers for growing.

    PRICING:
    - price_per_month is the headline rate (billed per started 30-day block)
    - daily_rate / weekly_rate are optional; when daily_rate is set, bookings
      are priced with the daily/weekly calculator instead
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="plots",
    )

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    state = models.CharField(max_length=100, blank=True, default="")
    acreage = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)

    price_per_month = models.DecimalField(max_digits=10, decimal_places=2)
    daily_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    weekly_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    security_deposit = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )

    instant_book = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "is_active"], name="plot_owner_active_idx"),
        ]

    def clean(self):
        if self.price_per_month is None or Decimal(self.price_per_month) <= 0:
            raise ValidationError("price_per_month must be greater than zero")
        problem = weekly_rate_problem(self.daily_rate, self.weekly_rate)
        if problem:
            raise ValidationError(problem)

    def __str__(self):
        return self.title
