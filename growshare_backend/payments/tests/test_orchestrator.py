# payments/tests/test_orchestrator.py

from __future__ import annotations

from datetime import timedelta
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from notifications.models import Notification
from payments.models import PaymentRecord, ReconciliationIssue
from payments.services.gateway import PaymentProviderError
from payments.services.payment_orchestrator import (
    AlreadyPaidError,
    AlreadyRefundedError,
    NotPaidError,
    NotPayableError,
    NotRefundableError,
    PaymentForbiddenError,
    PaymentPendingError,
    confirm_payment,
    initiate_payment,
    mark_payment_failed,
    refund_eligibility,
    refund_payment,
)
from payments.tests.fakes import FakePaymentGateway
from transactions.models import KIND_BOOKING, KIND_ORDER, KIND_RENTAL, Booking, Order, ToolRental
from transactions.services.creation_service import create_booking
from transactions.services.transition_service import apply_transition
from transactions.tests.factories import (
    days_from_now,
    make_booking,
    make_listing,
    make_order,
    make_plot,
    make_rental,
    make_tool,
    make_user,
)


class InitiatePaymentTests(TestCase):
    """
    GUARANTEES:
    - Only the renter / buyer pays, and only from a payable status
    - Amounts are minor units; the platform keeps its fee
    - A fresh pending payment blocks a second one; a stale one is superseded
    - A provider failure marks the record FAILED and nothing is paid
    """

    def setUp(self):
        self.gateway = FakePaymentGateway()
        self.owner = make_user("owner@grow.test")
        self.renter = make_user("renter@grow.test")
        self.plot = make_plot(self.owner)
        self.booking = make_booking(self.plot, self.renter, status=Booking.STATUS_APPROVED)

    def _initiate(self, user=None, **kwargs):
        return initiate_payment(
            kind=KIND_BOOKING,
            entity_id=self.booking.id,
            user=user or self.renter,
            gateway=self.gateway,
            **kwargs,
        )

    def test_creates_pending_record_and_intent(self):
        result = self._initiate()

        self.assertEqual(result["amount"], 30000)
        self.assertEqual(result["platform_fee"], 3000)
        self.assertEqual(result["owner_earnings"], 27000)
        self.assertEqual(result["currency"], "usd")
        self.assertTrue(result["client_secret"].endswith("_secret"))

        record = PaymentRecord.objects.get(booking=self.booking)
        self.assertEqual(record.status, PaymentRecord.STATUS_PENDING)
        self.assertEqual(record.external_ref, result["payment_intent_id"])
        self.assertEqual(record.attempt, 1)

        (intent_call,) = self.gateway.calls_named("create_intent")
        self.assertEqual(intent_call["idempotency_key"], f"pi_{record.id}_1")
        self.assertIsNone(intent_call["destination_account"])
        self.assertIsNone(intent_call["application_fee"])
        self.assertEqual(intent_call["metadata"]["type"], KIND_BOOKING)

        self.renter.refresh_from_db()
        self.assertTrue(self.renter.stripe_customer_id.startswith("cus_fake_"))

    def test_connected_owner_gets_destination_charge(self):
        self.owner.stripe_connect_id = "acct_owner"
        self.owner.save()

        self._initiate()
        (intent_call,) = self.gateway.calls_named("create_intent")
        self.assertEqual(intent_call["destination_account"], "acct_owner")
        self.assertEqual(intent_call["application_fee"], 3000)

    def test_only_counterparty_can_pay(self):
        with self.assertRaises(PaymentForbiddenError):
            self._initiate(user=self.owner)
        self.assertFalse(PaymentRecord.objects.exists())

    def test_pending_booking_is_not_payable(self):
        Booking.objects.filter(pk=self.booking.pk).update(status=Booking.STATUS_PENDING)
        with self.assertRaises(NotPayableError):
            self._initiate()

    def test_fresh_pending_payment_blocks_second_attempt(self):
        self._initiate()
        with self.assertRaises(PaymentPendingError):
            self._initiate()
        self.assertEqual(len(self.gateway.calls_named("create_intent")), 1)

    def test_stale_pending_payment_is_superseded(self):
        first = self._initiate()
        second = self._initiate(now=timezone.now() + timedelta(minutes=31))

        self.assertNotEqual(first["payment_intent_id"], second["payment_intent_id"])
        record = PaymentRecord.objects.get(booking=self.booking)
        self.assertEqual(record.attempt, 2)
        self.assertEqual(record.external_ref, second["payment_intent_id"])
        self.assertEqual(record.metadata["superseded_refs"], [first["payment_intent_id"]])
        self.assertEqual(
            self.gateway.calls_named("cancel_intent"),
            [{"intent_id": first["payment_intent_id"]}],
        )

    def test_provider_failure_marks_record_failed(self):
        self.gateway.fail_next = "create_intent"
        with self.assertRaises(PaymentProviderError) as ctx:
            self._initiate()
        self.assertEqual(ctx.exception.http_status, 502)

        record = PaymentRecord.objects.get(booking=self.booking)
        self.assertEqual(record.status, PaymentRecord.STATUS_FAILED)
        self.assertIsNone(record.external_ref)

        self.booking.refresh_from_db()
        self.assertIsNone(self.booking.paid_at)

        # retry re-arms the failed record without cancelling anything
        self._initiate()
        record.refresh_from_db()
        self.assertEqual(record.status, PaymentRecord.STATUS_PENDING)
        self.assertEqual(record.attempt, 2)
        self.assertEqual(self.gateway.calls_named("cancel_intent"), [])

    def test_paid_booking_cannot_be_paid_again(self):
        result = self._initiate()
        confirm_payment(external_ref=result["payment_intent_id"])
        Booking.objects.filter(pk=self.booking.pk).update(status=Booking.STATUS_APPROVED)

        with self.assertRaises(AlreadyPaidError):
            self._initiate()


class ConfirmPaymentTests(TestCase):
    """
    GUARANTEES:
    - Confirmation advances booking APPROVED -> ACTIVE and order
      PENDING -> CONFIRMED; rentals are only stamped paid
    - Replays are no-ops: no second advance, no second notification
    - Money arriving for a closed transaction or a dead record is flagged
    """

    def setUp(self):
        self.gateway = FakePaymentGateway()
        self.owner = make_user("owner@grow.test")
        self.renter = make_user("renter@grow.test")

    def _pay(self, kind, entity, payer):
        return initiate_payment(kind=kind, entity_id=entity.id, user=payer, gateway=self.gateway)[
            "payment_intent_id"
        ]

    def test_unknown_reference(self):
        self.assertEqual(confirm_payment(external_ref="pi_nobody"), "unknown")

    def test_booking_flow_sends_three_notifications(self):
        plot = make_plot(self.owner)
        start = days_from_now(10)
        booking = create_booking(
            plot_id=plot.id,
            renter=self.renter,
            start_date=start,
            end_date=start + timedelta(days=30),
        )
        apply_transition(
            kind=KIND_BOOKING,
            entity_id=booking.id,
            user=self.owner,
            desired_status=Booking.STATUS_APPROVED,
        )
        ref = self._pay(KIND_BOOKING, booking, self.renter)

        self.assertEqual(confirm_payment(external_ref=ref), "confirmed")
        self.assertEqual(confirm_payment(external_ref=ref), "duplicate")

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_ACTIVE)
        self.assertIsNotNone(booking.paid_at)
        self.assertIsNotNone(booking.activated_at)
        self.assertEqual(booking.stripe_payment_id, ref)

        record = PaymentRecord.objects.get(booking=booking)
        self.assertEqual(record.status, PaymentRecord.STATUS_SUCCEEDED)
        self.assertIsNotNone(record.completed_at)

        types = list(Notification.objects.order_by("created_at").values_list("type", flat=True))
        self.assertEqual(
            sorted(types),
            sorted(
                [
                    Notification.TYPE_BOOKING_REQUEST,
                    Notification.TYPE_BOOKING_APPROVED,
                    Notification.TYPE_PAYMENT_RECEIVED,
                ]
            ),
        )
        payment_note = Notification.objects.get(type=Notification.TYPE_PAYMENT_RECEIVED)
        self.assertEqual(payment_note.recipient_id, self.owner.id)
        self.assertEqual(payment_note.content, "Payment of $300.00 received for Sunny Corner Plot.")

        apply_transition(
            kind=KIND_BOOKING,
            entity_id=booking.id,
            user=self.owner,
            desired_status=Booking.STATUS_COMPLETED,
        )
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_COMPLETED)
        self.assertEqual(Notification.objects.count(), 3)
        self.assertEqual(
            PaymentRecord.objects.filter(status=PaymentRecord.STATUS_SUCCEEDED).count(), 1
        )

    def test_order_payment_confirms_order(self):
        listing = make_listing(self.owner)
        order = make_order(listing, self.renter, quantity=2)
        ref = self._pay(KIND_ORDER, order, self.renter)

        confirm_payment(external_ref=ref)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CONFIRMED)
        self.assertIsNotNone(order.confirmed_at)

    def test_rental_payment_only_stamps_paid(self):
        rental = make_rental(make_tool(self.owner), self.renter, status=ToolRental.STATUS_APPROVED)
        ref = self._pay(KIND_RENTAL, rental, self.renter)

        confirm_payment(external_ref=ref)
        rental.refresh_from_db()
        self.assertEqual(rental.status, ToolRental.STATUS_APPROVED)
        self.assertIsNotNone(rental.paid_at)

    def test_payment_for_cancelled_booking_is_flagged(self):
        booking = make_booking(make_plot(self.owner), self.renter, status=Booking.STATUS_APPROVED)
        ref = self._pay(KIND_BOOKING, booking, self.renter)
        apply_transition(
            kind=KIND_BOOKING,
            entity_id=booking.id,
            user=self.owner,
            desired_status=Booking.STATUS_CANCELLED,
        )

        self.assertEqual(confirm_payment(external_ref=ref), "confirmed")

        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_CANCELLED)
        self.assertIsNotNone(booking.paid_at)
        issue = ReconciliationIssue.objects.get()
        self.assertEqual(issue.kind, ReconciliationIssue.KIND_PAYMENT_FOR_CLOSED_ENTITY)
        self.assertEqual(issue.external_ref, ref)

    def test_success_after_failure_is_flagged_once(self):
        booking = make_booking(make_plot(self.owner), self.renter, status=Booking.STATUS_APPROVED)
        ref = self._pay(KIND_BOOKING, booking, self.renter)
        self.assertTrue(mark_payment_failed(external_ref=ref, message="card declined"))

        self.assertEqual(confirm_payment(external_ref=ref), "flagged")
        self.assertEqual(confirm_payment(external_ref=ref), "flagged")

        self.assertEqual(
            ReconciliationIssue.objects.filter(
                kind=ReconciliationIssue.KIND_PAYMENT_AFTER_TERMINAL_RECORD
            ).count(),
            1,
        )
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_APPROVED)
        self.assertIsNone(booking.paid_at)


class RefundTests(TestCase):
    """
    GUARANTEES:
    - 7+ days -> 100%, 3-6 days -> 50%, under 3 days -> nothing moves
    - A payment is refunded at most once
    - A provider refund that cannot be saved locally is flagged for repair
    """

    def setUp(self):
        self.gateway = FakePaymentGateway()
        self.owner = make_user("owner@grow.test")
        self.renter = make_user("renter@grow.test")
        self.stranger = make_user("stranger@grow.test")
        self.plot = make_plot(self.owner)

    def _paid_booking(self, start_in_days):
        booking = make_booking(
            self.plot,
            self.renter,
            status=Booking.STATUS_APPROVED,
            start_in_days=start_in_days,
        )
        result = initiate_payment(
            kind=KIND_BOOKING, entity_id=booking.id, user=self.renter, gateway=self.gateway
        )
        confirm_payment(external_ref=result["payment_intent_id"])
        return booking

    def _refund(self, booking, user=None):
        return refund_payment(
            kind=KIND_BOOKING, entity_id=booking.id, user=user or self.renter, gateway=self.gateway
        )

    def test_full_refund_once(self):
        booking = self._paid_booking(10)

        outcome = self._refund(booking)
        self.assertTrue(outcome.success)
        self.assertEqual(outcome.percentage, 100)
        self.assertEqual(outcome.refund_amount, 30000)
        self.assertEqual(outcome.message, "Successfully refunded 100% ($300.00)")

        record = PaymentRecord.objects.get(booking=booking)
        self.assertEqual(record.status, PaymentRecord.STATUS_REFUNDED)
        self.assertEqual(record.metadata["refund_id"], outcome.refund_id)
        self.assertEqual(record.metadata["refund_amount"], 30000)

        with self.assertRaises(AlreadyRefundedError):
            self._refund(booking)

        (refund_call,) = self.gateway.calls_named("refund")
        self.assertEqual(refund_call["idempotency_key"], f"refund_{record.id}")
        self.assertEqual(refund_call["payment_intent_id"], record.external_ref)

        # refunds never move the booking itself
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_ACTIVE)

    def test_partial_refund(self):
        booking = self._paid_booking(5)
        outcome = self._refund(booking)
        self.assertEqual(outcome.percentage, 50)
        self.assertEqual(outcome.refund_amount, 15000)

    def test_late_cancellation_gets_nothing(self):
        booking = self._paid_booking(1)
        outcome = self._refund(booking)

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.refund_amount, 0)
        self.assertEqual(
            outcome.message,
            "No refund available - cancellation is less than 3 days before start date",
        )
        self.assertEqual(self.gateway.calls_named("refund"), [])
        self.assertEqual(
            PaymentRecord.objects.get(booking=booking).status, PaymentRecord.STATUS_SUCCEEDED
        )

    def test_owner_may_refund_but_stranger_may_not(self):
        booking = self._paid_booking(10)
        with self.assertRaises(PaymentForbiddenError):
            self._refund(booking, user=self.stranger)
        self.assertTrue(self._refund(booking, user=self.owner).success)

    def test_unpaid_booking_cannot_be_refunded(self):
        booking = make_booking(self.plot, self.renter, status=Booking.STATUS_APPROVED)
        with self.assertRaises(NotPaidError):
            self._refund(booking)

    def test_orders_are_not_refundable(self):
        order = make_order(make_listing(self.owner), self.renter)
        with self.assertRaises(NotRefundableError):
            refund_payment(kind=KIND_ORDER, entity_id=order.id, user=self.renter, gateway=self.gateway)

    def test_unsaved_refund_is_flagged(self):
        booking = self._paid_booking(10)

        with mock.patch.object(PaymentRecord, "save", side_effect=DatabaseError("disk full")):
            with self.assertRaises(DatabaseError):
                self._refund(booking)

        record = PaymentRecord.objects.get(booking=booking)
        self.assertEqual(record.status, PaymentRecord.STATUS_SUCCEEDED)

        issue = ReconciliationIssue.objects.get()
        self.assertEqual(issue.kind, ReconciliationIssue.KIND_REFUND_NOT_PERSISTED)
        self.assertEqual(issue.payment_record_id, record.id)
        self.assertEqual(issue.details["refund_amount"], 30000)
        self.assertTrue(issue.details["refund_id"].startswith("re_fake_"))

    def test_eligibility_preview(self):
        booking = self._paid_booking(5)
        preview = refund_eligibility(kind=KIND_BOOKING, entity_id=booking.id, user=self.renter)
        self.assertEqual(
            {k: preview[k] for k in ("eligible", "refund_percentage", "refund_amount", "original_amount")},
            {"eligible": True, "refund_percentage": 50, "refund_amount": 15000, "original_amount": 30000},
        )

        self._refund(booking)
        preview = refund_eligibility(kind=KIND_BOOKING, entity_id=booking.id, user=self.renter)
        self.assertEqual(preview["eligible"], False)
        self.assertEqual(preview["refunded_amount"], 15000)
