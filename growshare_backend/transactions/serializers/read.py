# transactions/serializers/read.py

from rest_framework import serializers

from transactions.models import Booking, Order, ToolRental


class BookingSerializer(serializers.ModelSerializer):
    plot_id = serializers.UUIDField(read_only=True)
    plot_title = serializers.CharField(source="plot.title", read_only=True)
    owner_id = serializers.UUIDField(source="plot.owner_id", read_only=True)
    renter_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "plot_id",
            "plot_title",
            "owner_id",
            "renter_id",
            "start_date",
            "end_date",
            "status",
            "total_amount",
            "security_deposit",
            "message",
            "owner_notes",
            "renter_notes",
            "paid_at",
            "approved_at",
            "activated_at",
            "rejected_at",
            "completed_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ToolRentalSerializer(serializers.ModelSerializer):
    tool_id = serializers.UUIDField(read_only=True)
    tool_name = serializers.CharField(source="tool.name", read_only=True)
    owner_id = serializers.UUIDField(source="tool.owner_id", read_only=True)
    renter_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ToolRental
        fields = [
            "id",
            "tool_id",
            "tool_name",
            "owner_id",
            "renter_id",
            "start_date",
            "end_date",
            "status",
            "total_amount",
            "deposit_amount",
            "owner_notes",
            "renter_notes",
            "paid_at",
            "approved_at",
            "picked_up_at",
            "returned_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    listing_id = serializers.UUIDField(read_only=True)
    product_name = serializers.CharField(source="listing.product_name", read_only=True)
    seller_id = serializers.UUIDField(source="listing.seller_id", read_only=True)
    buyer_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "listing_id",
            "product_name",
            "seller_id",
            "buyer_id",
            "quantity",
            "unit_price",
            "total_amount",
            "delivery_method",
            "delivery_address",
            "notes",
            "status",
            "paid_at",
            "confirmed_at",
            "ready_at",
            "completed_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AllowedTransitionsSerializer(serializers.Serializer):
    status = serializers.CharField()
    role = serializers.CharField()
    allowed = serializers.ListField(child=serializers.CharField())
