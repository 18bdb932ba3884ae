# payments/serializers.py

from rest_framework import serializers

from transactions.models import KIND_BOOKING, KIND_CHOICES


class PaymentTargetSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=KIND_CHOICES)
    entity_id = serializers.UUIDField()


class RefundTargetSerializer(PaymentTargetSerializer):
    kind = serializers.ChoiceField(choices=KIND_CHOICES, default=KIND_BOOKING)


class PaymentIntentResponseSerializer(serializers.Serializer):
    client_secret = serializers.CharField()
    payment_intent_id = serializers.CharField()
    amount = serializers.IntegerField(help_text="Minor units (cents)")
    platform_fee = serializers.IntegerField()
    owner_earnings = serializers.IntegerField()
    currency = serializers.CharField()


class RefundResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    refund_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    refund_percentage = serializers.IntegerField()
    refund_id = serializers.CharField(allow_blank=True)
    message = serializers.CharField(allow_blank=True)
