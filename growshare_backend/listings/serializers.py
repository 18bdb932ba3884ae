# listings/serializers.py

from decimal import Decimal

from rest_framework import serializers

from listings.models import Plot, ProduceListing, Tool
from listings.models.rates import weekly_rate_problem


class PlotSerializer(serializers.ModelSerializer):
    owner_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Plot
        fields = [
            "id",
            "owner_id",
            "title",
            "description",
            "city",
            "state",
            "acreage",
            "price_per_month",
            "daily_rate",
            "weekly_rate",
            "security_deposit",
            "instant_book",
            "is_active",
            "created_at",
        ]
        read_only_fields = ["id", "owner_id", "created_at"]

    def validate_price_per_month(self, value):
        if value <= Decimal("0"):
            raise serializers.ValidationError("Must be greater than zero.")
        return value

    def validate(self, attrs):
        daily = attrs.get("daily_rate", getattr(self.instance, "daily_rate", None))
        weekly = attrs.get("weekly_rate", getattr(self.instance, "weekly_rate", None))
        problem = weekly_rate_problem(daily, weekly)
        if problem:
            raise serializers.ValidationError(problem)
        return attrs


class ToolSerializer(serializers.ModelSerializer):
    owner_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Tool
        fields = [
            "id",
            "owner_id",
            "name",
            "description",
            "category",
            "listing_type",
            "status",
            "daily_rate",
            "weekly_rate",
            "deposit_amount",
            "created_at",
        ]
        # status is driven by rentals only.
        read_only_fields = ["id", "owner_id", "status", "created_at"]

    def validate(self, attrs):
        listing_type = attrs.get(
            "listing_type", getattr(self.instance, "listing_type", Tool.LISTING_RENT)
        )
        daily = attrs.get("daily_rate", getattr(self.instance, "daily_rate", None))
        if listing_type != Tool.LISTING_SALE and (daily is None or daily <= 0):
            raise serializers.ValidationError(
                "Rentable tools need a daily_rate greater than zero."
            )
        problem = weekly_rate_problem(
            daily, attrs.get("weekly_rate", getattr(self.instance, "weekly_rate", None))
        )
        if problem:
            raise serializers.ValidationError(problem)
        return attrs


class ProduceListingSerializer(serializers.ModelSerializer):
    seller_id = serializers.UUIDField(read_only=True)
    delivery_methods = serializers.ListField(
        child=serializers.ChoiceField(choices=sorted(ProduceListing.DELIVERY_METHODS)),
        required=False,
    )

    class Meta:
        model = ProduceListing
        fields = [
            "id",
            "seller_id",
            "product_name",
            "description",
            "unit",
            "price_per_unit",
            "quantity",
            "status",
            "delivery_methods",
            "created_at",
        ]
        read_only_fields = ["id", "seller_id", "status", "created_at"]

    def validate_price_per_unit(self, value):
        if value <= Decimal("0"):
            raise serializers.ValidationError("Must be greater than zero.")
        return value

    def validate_quantity(self, value):
        if value < 0:
            raise serializers.ValidationError("Cannot be negative.")
        return value
