# payments/tests/test_webhooks.py

from __future__ import annotations

import json
from unittest import mock

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from notifications.models import Notification
from payments.models import PaymentRecord, WebhookEvent
from payments.services.payment_orchestrator import initiate_payment
from payments.tests.fakes import VALID_SIGNATURE, FakePaymentGateway
from transactions.models import KIND_BOOKING, Booking
from transactions.tests.factories import make_booking, make_plot, make_user

WEBHOOK_URL = "/api/webhooks/stripe/"


def _event(event_id, event_type, obj):
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


class StripeWebhookTests(TestCase):
    """
    GUARANTEES:
    - Unsigned or badly signed payloads are rejected with 400 and change nothing
    - Redelivering a processed event changes nothing and notifies no one
    - A failing handler answers 500 so the provider retries, and the retry
      is processed
    """

    def setUp(self):
        self.client = APIClient()
        self.owner = make_user("owner@grow.test")
        self.renter = make_user("renter@grow.test")
        self.booking = make_booking(make_plot(self.owner), self.renter, status=Booking.STATUS_APPROVED)
        self.intent_id = initiate_payment(
            kind=KIND_BOOKING,
            entity_id=self.booking.id,
            user=self.renter,
            gateway=FakePaymentGateway(),
        )["payment_intent_id"]

    def _post(self, event, signature=VALID_SIGNATURE):
        extra = {"HTTP_STRIPE_SIGNATURE": signature} if signature is not None else {}
        return self.client.post(
            WEBHOOK_URL,
            data=json.dumps(event),
            content_type="application/json",
            **extra,
        )

    def _succeeded(self, event_id="evt_1"):
        return _event(event_id, "payment_intent.succeeded", {"id": self.intent_id, "amount": 30000})

    def test_bad_signature_is_rejected(self):
        res = self._post(self._succeeded(), signature="t=1,v1=forged")
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data, {"error": "Invalid signature"})

        self.assertFalse(WebhookEvent.objects.exists())
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.STATUS_APPROVED)

    def test_missing_signature_is_rejected(self):
        res = self._post(self._succeeded(), signature=None)
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data, {"error": "Missing stripe-signature header"})

    def test_success_event_confirms_payment(self):
        res = self._post(self._succeeded())
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data, {"received": True, "outcome": "processed"})

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.STATUS_ACTIVE)
        self.assertEqual(
            WebhookEvent.objects.get(event_id="evt_1").outcome, WebhookEvent.OUTCOME_PROCESSED
        )

    def test_replayed_event_is_a_noop(self):
        self._post(self._succeeded())
        self.booking.refresh_from_db()
        first_paid_at = self.booking.paid_at

        res = self._post(self._succeeded())
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["outcome"], "duplicate")

        # a new event id for the same intent is deduplicated by the record
        res = self._post(self._succeeded(event_id="evt_2"))
        self.assertEqual(res.status_code, status.HTTP_200_OK)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.paid_at, first_paid_at)
        self.assertEqual(
            Notification.objects.filter(type=Notification.TYPE_PAYMENT_RECEIVED).count(), 1
        )

    def test_unknown_event_type_is_ignored(self):
        res = self._post(_event("evt_x", "charge.dispute.created", {"id": "dp_1"}))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["outcome"], "ignored")

    def test_handler_failure_is_retried(self):
        with mock.patch(
            "payments.services.webhooks.confirm_payment",
            side_effect=RuntimeError("db went away"),
        ):
            res = self._post(self._succeeded())
        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(WebhookEvent.objects.get(event_id="evt_1").outcome, WebhookEvent.OUTCOME_FAILED)

        res = self._post(self._succeeded())
        self.assertEqual(res.data["outcome"], "processed")
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.STATUS_ACTIVE)

    def test_payment_failed_event(self):
        event = _event(
            "evt_f",
            "payment_intent.payment_failed",
            {"id": self.intent_id, "last_payment_error": {"message": "Your card was declined."}},
        )
        self._post(event)

        record = PaymentRecord.objects.get(external_ref=self.intent_id)
        self.assertEqual(record.status, PaymentRecord.STATUS_FAILED)
        self.assertEqual(record.failure_message, "Your card was declined.")

    def test_canceled_event(self):
        self._post(_event("evt_c", "payment_intent.canceled", {"id": self.intent_id}))
        record = PaymentRecord.objects.get(external_ref=self.intent_id)
        self.assertEqual(record.status, PaymentRecord.STATUS_CANCELLED)

    def test_malformed_event_is_400(self):
        res = self._post({"type": "payment_intent.succeeded"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data, {"error": "Malformed webhook event"})

    def test_account_updated_marks_onboarding(self):
        self.owner.stripe_connect_id = "acct_owner"
        self.owner.save()

        self._post(
            _event(
                "evt_a",
                "account.updated",
                {"id": "acct_owner", "charges_enabled": True, "payouts_enabled": True},
            )
        )
        self.owner.refresh_from_db()
        self.assertTrue(self.owner.stripe_onboarding_complete)
