# payments/views/stripe_webhook.py

from __future__ import annotations

import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from backend.api_errors import DomainValidationError, error_response
from payments.services.gateway import get_payment_gateway
from payments.services.webhooks import process_event

logger = logging.getLogger(__name__)


class WebhookThrottle(AnonRateThrottle):
    scope = "webhook"


class StripeWebhookView(APIView):
    """
    POST /api/webhooks/stripe/

    - unsigned / badly signed payloads -> 400 before anything is read
    - already processed event ids      -> 200 (acknowledged, no-op)
    - unexpected failure               -> 500 so the provider retries
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [WebhookThrottle]

    @extend_schema(request=None, responses={200: None, 400: None, 500: None})
    def post(self, request, *args, **kwargs):
        raw_body = request.body or b""
        signature = request.headers.get("Stripe-Signature", "")

        try:
            event = get_payment_gateway().verify_webhook_signature(raw_body, signature)
            outcome = process_event(event)
        except DomainValidationError as exc:
            logger.warning("Webhook rejected", extra={"reason": exc.message})
            return error_response(message=exc.message, http_status=status.HTTP_400_BAD_REQUEST)
        except Exception:
            logger.exception("Webhook processing failed")
            return error_response(
                message="Webhook processing failed",
                http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({"received": True, "outcome": outcome}, status=status.HTTP_200_OK)
