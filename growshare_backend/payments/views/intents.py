# payments/views/intents.py

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.serializers import (
    PaymentIntentResponseSerializer,
    PaymentTargetSerializer,
    RefundResponseSerializer,
    RefundTargetSerializer,
)
from payments.services.payment_orchestrator import (
    initiate_payment,
    refund_eligibility,
    refund_payment,
)
from transactions.services.pricing import from_minor_units


class CreateIntentView(APIView):
    """
    POST /api/payments/create-intent/

    Body: {"kind": "booking|rental|order", "entity_id": "<uuid>"}
    Only the renter / buyer can pay.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(request=PaymentTargetSerializer, responses=PaymentIntentResponseSerializer)
    def post(self, request):
        target = PaymentTargetSerializer(data=request.data)
        target.is_valid(raise_exception=True)

        result = initiate_payment(
            kind=target.validated_data["kind"],
            entity_id=target.validated_data["entity_id"],
            user=request.user,
        )
        return Response(PaymentIntentResponseSerializer(result).data)


class RefundView(APIView):
    """
    POST /api/payments/refund/                          -> refund now
    GET  /api/payments/refund/?kind=&entity_id=         -> eligibility only
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(parameters=[RefundTargetSerializer])
    def get(self, request):
        target = RefundTargetSerializer(data=request.query_params)
        target.is_valid(raise_exception=True)

        data = refund_eligibility(
            kind=target.validated_data["kind"],
            entity_id=target.validated_data["entity_id"],
            user=request.user,
        )
        for key in ("refund_amount", "original_amount", "refunded_amount"):
            if data.get(key) is not None:
                data[key] = str(from_minor_units(data[key]))
        if "refund_percentage" in data:
            data["policy"] = {
                "7+ days": "100% refund",
                "3-6 days": "50% refund",
                "<3 days": "No refund",
            }
        return Response(data)

    @extend_schema(request=RefundTargetSerializer, responses=RefundResponseSerializer)
    def post(self, request):
        target = RefundTargetSerializer(data=request.data)
        target.is_valid(raise_exception=True)

        outcome = refund_payment(
            kind=target.validated_data["kind"],
            entity_id=target.validated_data["entity_id"],
            user=request.user,
        )
        return Response(
            RefundResponseSerializer(
                {
                    "success": outcome.success,
                    "refund_amount": from_minor_units(outcome.refund_amount),
                    "refund_percentage": outcome.percentage,
                    "refund_id": outcome.refund_id,
                    "message": outcome.message,
                }
            ).data
        )
