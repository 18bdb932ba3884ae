import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Plot",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("city", models.CharField(blank=True, default="", max_length=100)),
                ("state", models.CharField(blank=True, default="", max_length=100)),
                ("acreage", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("price_per_month", models.DecimalField(decimal_places=2, max_digits=10)),
                ("daily_rate", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("weekly_rate", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("security_deposit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("instant_book", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="plots",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["owner", "is_active"], name="plot_owner_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="Tool",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                (
                    "listing_type",
                    models.CharField(
                        choices=[("RENT", "Rent"), ("SALE", "Sale"), ("BOTH", "Rent or sale")],
                        default="RENT",
                        max_length=8,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("AVAILABLE", "Available"), ("RENTED", "Rented"), ("UNAVAILABLE", "Unavailable")],
                        default="AVAILABLE",
                        max_length=16,
                    ),
                ),
                ("daily_rate", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("weekly_rate", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("deposit_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tools",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="tool_status_idx"),
                    models.Index(fields=["owner", "status"], name="tool_owner_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProduceListing",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("product_name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("unit", models.CharField(default="lb", max_length=32)),
                ("price_per_unit", models.DecimalField(decimal_places=2, max_digits=10)),
                ("quantity", models.IntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[("AVAILABLE", "Available"), ("SOLD", "Sold"), ("EXPIRED", "Expired")],
                        default="AVAILABLE",
                        max_length=16,
                    ),
                ),
                ("delivery_methods", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "seller",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="produce_listings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status"], name="produce_status_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gte=0),
                        name="produce_quantity_non_negative",
                    )
                ],
            },
        ),
    ]
