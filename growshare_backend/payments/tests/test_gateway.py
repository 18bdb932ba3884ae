# payments/tests/test_gateway.py

from __future__ import annotations

import hashlib
import hmac
import json
import time
from unittest import mock

import stripe
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from rest_framework.test import APIClient

from payments.services.gateway import (
    PaymentGateway,
    PaymentProviderError,
    StripeGateway,
    WebhookSignatureError,
    get_payment_gateway,
)

WEBHOOK_SECRET = "whsec_gateway_tests"

STRIPE_CONFIG = {
    "SECRET_KEY": "sk_test_gateway",
    "WEBHOOK_SECRET": WEBHOOK_SECRET,
    "API_TIMEOUT_SECONDS": 7,
    "MAX_NETWORK_RETRIES": 2,
}


def _sign(body: bytes, *, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode("utf-8") + body
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def _event_body(event_type: str = "customer.created") -> bytes:
    return json.dumps(
        {"id": "evt_gateway_1", "type": event_type, "data": {"object": {"id": "cus_1"}}}
    ).encode("utf-8")


class StripeSignatureTests(SimpleTestCase):
    """
    GUARANTEES:
    - Only a header signed with the webhook secret is accepted
    - Forged, stale, missing or undecodable input raises WebhookSignatureError
    """

    def setUp(self):
        self.gateway = StripeGateway(STRIPE_CONFIG)

    def test_correct_signature_returns_event(self):
        body = _event_body()
        event = self.gateway.verify_webhook_signature(body, _sign(body))
        self.assertEqual(event["id"], "evt_gateway_1")
        self.assertEqual(event["type"], "customer.created")

    def test_forged_signature_rejected(self):
        body = _event_body()
        with self.assertRaises(WebhookSignatureError):
            self.gateway.verify_webhook_signature(body, _sign(body, secret="whsec_attacker"))

    def test_tampered_body_rejected(self):
        header = _sign(_event_body())
        with self.assertRaises(WebhookSignatureError):
            self.gateway.verify_webhook_signature(_event_body("payment_intent.succeeded"), header)

    def test_expired_timestamp_rejected(self):
        body = _event_body()
        stale = int(time.time()) - stripe.Webhook.DEFAULT_TOLERANCE - 60
        with self.assertRaises(WebhookSignatureError):
            self.gateway.verify_webhook_signature(body, _sign(body, timestamp=stale))

    def test_non_utf8_body_rejected(self):
        with self.assertRaises(WebhookSignatureError):
            self.gateway.verify_webhook_signature(b"\xff\xfe", "t=1,v1=abc")

    def test_missing_header_rejected(self):
        with self.assertRaises(WebhookSignatureError):
            self.gateway.verify_webhook_signature(_event_body(), "")

    def test_missing_secret_is_a_configuration_error(self):
        gateway = StripeGateway({**STRIPE_CONFIG, "WEBHOOK_SECRET": ""})
        with self.assertRaises(ImproperlyConfigured):
            gateway.verify_webhook_signature(_event_body(), "t=1,v1=abc")


class StripeClientCallTests(SimpleTestCase):
    """
    GUARANTEES:
    - The client is built once with a bounded HTTP timeout and retry count
    - Provider failures surface as PaymentProviderError (502)
    - Money-moving calls carry the caller's idempotency key
    """

    def setUp(self):
        self.gateway = StripeGateway(STRIPE_CONFIG)
        self.client = mock.Mock()

    def test_client_wiring(self):
        with mock.patch("stripe.RequestsClient") as http_client, mock.patch(
            "payments.services.gateway.StripeClient"
        ) as client_cls:
            first = self.gateway._get_client()
            second = self.gateway._get_client()

        self.assertIs(first, second)
        http_client.assert_called_once_with(timeout=7)
        client_cls.assert_called_once_with(
            "sk_test_gateway",
            http_client=http_client.return_value,
            max_network_retries=2,
        )

    def test_missing_secret_key_is_a_configuration_error(self):
        gateway = StripeGateway({**STRIPE_CONFIG, "SECRET_KEY": ""})
        with self.assertRaises(ImproperlyConfigured):
            gateway._get_client()

    def test_create_intent_connection_error(self):
        self.client.payment_intents.create.side_effect = stripe.APIConnectionError("network down")
        with mock.patch.object(StripeGateway, "_get_client", return_value=self.client):
            with self.assertRaises(PaymentProviderError) as ctx:
                self.gateway.create_intent(
                    amount=3000, currency="usd", metadata={"kind": "booking"}, idempotency_key="pi_x_1"
                )
        self.assertEqual(ctx.exception.http_status, status.HTTP_502_BAD_GATEWAY)

    def test_refund_connection_error(self):
        self.client.refunds.create.side_effect = stripe.APIConnectionError("network down")
        with mock.patch.object(StripeGateway, "_get_client", return_value=self.client):
            with self.assertRaises(PaymentProviderError):
                self.gateway.refund(payment_intent_id="pi_1", amount=1500, idempotency_key="refund_1")

    def test_create_intent_passes_connect_and_idempotency(self):
        self.client.payment_intents.create.return_value = mock.Mock(id="pi_1", client_secret="pi_1_secret")
        with mock.patch.object(StripeGateway, "_get_client", return_value=self.client):
            result = self.gateway.create_intent(
                amount=3000,
                currency="usd",
                metadata={"entity_id": 42},
                idempotency_key="pi_42_1",
                destination_account="acct_owner",
                application_fee=300,
            )

        self.assertEqual(result.id, "pi_1")
        _, kwargs = self.client.payment_intents.create.call_args
        self.assertEqual(kwargs["options"], {"idempotency_key": "pi_42_1"})
        self.assertEqual(kwargs["params"]["transfer_data"], {"destination": "acct_owner"})
        self.assertEqual(kwargs["params"]["application_fee_amount"], 300)
        self.assertEqual(kwargs["params"]["metadata"], {"entity_id": "42"})

    def test_refund_result(self):
        self.client.refunds.create.return_value = mock.Mock(id="re_1", status="succeeded", amount=1500)
        with mock.patch.object(StripeGateway, "_get_client", return_value=self.client):
            result = self.gateway.refund(payment_intent_id="pi_1", amount=1500, idempotency_key="refund_1")
        self.assertEqual((result.id, result.status, result.amount), ("re_1", "succeeded", 1500))


class GatewayInterfaceTests(SimpleTestCase):
    def test_partial_gateway_cannot_be_instantiated(self):
        class HalfGateway(PaymentGateway):
            def create_intent(self, **kwargs):
                return None

        with self.assertRaises(TypeError):
            HalfGateway()


class StripeWebhookEndpointTests(TestCase):
    """
    GUARANTEES:
    - With the Stripe gateway configured, undecodable or unsigned bodies get
      400 before any processing
    - A correctly signed event is accepted
    """

    def setUp(self):
        self.client = APIClient()

    def _stripe_settings(self):
        return self.settings(
            PAYMENTS={
                **settings.PAYMENTS,
                "GATEWAY": "payments.services.gateway.StripeGateway",
                "STRIPE": {**settings.PAYMENTS["STRIPE"], **STRIPE_CONFIG},
            }
        )

    def test_gateway_loaded_from_settings(self):
        with self._stripe_settings():
            self.assertIsInstance(get_payment_gateway(), StripeGateway)

    def test_non_utf8_body_is_rejected(self):
        with self._stripe_settings():
            res = self.client.generic(
                "POST",
                "/api/webhooks/stripe/",
                b"\xff\xfe",
                content_type="application/json",
                HTTP_STRIPE_SIGNATURE="t=1,v1=abc",
            )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.json(), {"error": "Invalid signature"})

    def test_signed_event_is_accepted(self):
        body = _event_body()
        with self._stripe_settings():
            res = self.client.generic(
                "POST",
                "/api/webhooks/stripe/",
                body,
                content_type="application/json",
                HTTP_STRIPE_SIGNATURE=_sign(body),
            )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
