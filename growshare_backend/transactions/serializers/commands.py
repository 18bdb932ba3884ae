# transactions/serializers/commands.py

"""
Command serializers.

These do NOT touch the database. They validate request shape only;
business rules live in transactions/services.
"""

from rest_framework import serializers

from listings.models import ProduceListing

NOTE_KEYS = ("owner_notes", "renter_notes", "notes")


class _DateRangeSerializer(serializers.Serializer):
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()

    def validate(self, attrs):
        if attrs["end_date"] <= attrs["start_date"]:
            raise serializers.ValidationError("End date must be after start date.")
        return attrs


class BookingCreateSerializer(_DateRangeSerializer):
    plot_id = serializers.UUIDField()
    message = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class ToolRentalCreateSerializer(_DateRangeSerializer):
    tool_id = serializers.UUIDField()
    renter_notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class OrderCreateSerializer(serializers.Serializer):
    listing_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    delivery_method = serializers.ChoiceField(choices=sorted(ProduceListing.DELIVERY_METHODS))
    delivery_address = serializers.CharField(required=False, allow_blank=True, max_length=500)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class TransitionCommandSerializer(serializers.Serializer):
    """
    PATCH body for a booking / rental / order.

    - status: desired status (optional; omit for notes-only updates)
    - expected_status: the status the client last saw (optional)
    - owner_notes / renter_notes / notes: free text
    """

    status = serializers.CharField(required=False, max_length=16)
    expected_status = serializers.CharField(required=False, max_length=16)
    owner_notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    renter_notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate(self, attrs):
        if "status" not in attrs and not any(k in attrs for k in NOTE_KEYS):
            raise serializers.ValidationError("Nothing to update.")
        if "status" in attrs:
            attrs["status"] = attrs["status"].strip().upper()
        if "expected_status" in attrs:
            attrs["expected_status"] = attrs["expected_status"].strip().upper()
        return attrs

    @property
    def notes_payload(self) -> dict:
        return {k: v for k, v in self.validated_data.items() if k in NOTE_KEYS}
