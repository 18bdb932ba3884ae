# payments/tests/test_api.py

from __future__ import annotations

import uuid

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from payments.models import PaymentRecord
from payments.services.payment_orchestrator import confirm_payment
from transactions.models import Booking
from transactions.tests.factories import make_booking, make_plot, make_user


class PaymentApiTests(TestCase):
    """
    GUARANTEES:
    - create-intent returns the client secret and the fee split
    - refund GET previews, POST performs; amounts are dollars on the wire
    - payment errors keep the {"error": "..."} shape
    """

    def setUp(self):
        self.client = APIClient()
        self.owner = make_user("owner@grow.test")
        self.renter = make_user("renter@grow.test")
        self.booking = make_booking(make_plot(self.owner), self.renter, status=Booking.STATUS_APPROVED)

    def _create_intent(self, user, entity_id=None):
        self.client.force_authenticate(user=user)
        return self.client.post(
            "/api/payments/create-intent/",
            {"kind": "booking", "entity_id": str(entity_id or self.booking.id)},
            format="json",
        )

    def test_create_intent(self):
        res = self._create_intent(self.renter)
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["amount"], 30000)
        self.assertEqual(res.data["platform_fee"], 3000)
        self.assertEqual(res.data["owner_earnings"], 27000)
        self.assertTrue(res.data["client_secret"])

    def test_owner_cannot_create_intent(self):
        res = self._create_intent(self.owner)
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(res.data, {"error": "You can only pay for your own bookings"})

    def test_unknown_booking(self):
        res = self._create_intent(self.renter, entity_id=uuid.uuid4())
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_pending_payment_conflict(self):
        self._create_intent(self.renter)
        res = self._create_intent(self.renter)
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data, {"error": "A payment is already pending for this transaction"})

    def test_refund_preview_then_refund(self):
        intent_id = self._create_intent(self.renter).data["payment_intent_id"]
        confirm_payment(external_ref=intent_id)

        res = self.client.get(
            "/api/payments/refund/", {"kind": "booking", "entity_id": str(self.booking.id)}
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertTrue(res.data["eligible"])
        self.assertEqual(res.data["refund_amount"], "300.00")
        self.assertEqual(res.data["policy"]["3-6 days"], "50% refund")

        res = self.client.post(
            "/api/payments/refund/", {"entity_id": str(self.booking.id)}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertTrue(res.data["success"])
        self.assertEqual(res.data["refund_amount"], "300.00")
        self.assertEqual(res.data["refund_percentage"], 100)

        self.assertEqual(
            PaymentRecord.objects.get(booking=self.booking).status, PaymentRecord.STATUS_REFUNDED
        )

        res = self.client.post(
            "/api/payments/refund/", {"entity_id": str(self.booking.id)}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data, {"error": "This payment has already been refunded"})
