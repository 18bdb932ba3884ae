# listings/tests/test_inventory.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from listings.models import Plot, ProduceListing, Tool
from listings.services.inventory import (
    InsufficientQuantityError,
    InvalidQuantityError,
    ListingNotFoundError,
    ListingUnavailableError,
    ToolUnavailableError,
    hold_tool,
    release_tool,
    reserve_listing_quantity,
    restore_listing_quantity,
)
from transactions.tests.factories import make_listing, make_order, make_rental, make_tool, make_user


class ReserveListingQuantityTests(TestCase):
    """
    GUARANTEES:
    - Reservation is one conditional UPDATE: never below zero
    - Taking the last unit flips the listing to SOLD
    - Failures say why (missing, not available, not enough)
    """

    def setUp(self):
        self.seller = make_user("seller@grow.test")
        self.listing = make_listing(self.seller, quantity=5)

    def test_partial_reservation(self):
        reserve_listing_quantity(listing_id=self.listing.id, quantity=2)
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity, 3)
        self.assertEqual(self.listing.status, ProduceListing.STATUS_AVAILABLE)

    def test_last_units_mark_sold(self):
        reserve_listing_quantity(listing_id=self.listing.id, quantity=5)
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity, 0)
        self.assertEqual(self.listing.status, ProduceListing.STATUS_SOLD)

    def test_second_reservation_cannot_oversell(self):
        reserve_listing_quantity(listing_id=self.listing.id, quantity=4)
        with self.assertRaises(InsufficientQuantityError) as ctx:
            reserve_listing_quantity(listing_id=self.listing.id, quantity=4)
        self.assertEqual(ctx.exception.message, "Only 1 lb available")

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity, 1)

    def test_rejects_bad_quantities(self):
        for qty in (0, -3, True, "2.5", 1.5):
            with self.subTest(qty=qty):
                with self.assertRaises(InvalidQuantityError):
                    reserve_listing_quantity(listing_id=self.listing.id, quantity=qty)

    def test_numeric_string_quantity(self):
        reserve_listing_quantity(listing_id=self.listing.id, quantity=" 3 ")
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity, 2)

    def test_expired_listing_is_unavailable(self):
        ProduceListing.objects.filter(pk=self.listing.pk).update(status=ProduceListing.STATUS_EXPIRED)
        with self.assertRaises(ListingUnavailableError):
            reserve_listing_quantity(listing_id=self.listing.id, quantity=1)

    def test_missing_listing(self):
        with self.assertRaises(ListingNotFoundError):
            reserve_listing_quantity(listing_id="00000000-0000-0000-0000-000000000000", quantity=1)


class RestoreListingQuantityTests(TestCase):
    def setUp(self):
        self.seller = make_user("seller@grow.test")
        self.buyer = make_user("buyer@grow.test")
        self.listing = make_listing(self.seller, quantity=0, status=ProduceListing.STATUS_SOLD)

    def test_restores_once_and_reopens_listing(self):
        order = make_order(self.listing, self.buyer, quantity=3, inventory_decremented=True)

        self.assertTrue(restore_listing_quantity(order=order))
        self.assertFalse(restore_listing_quantity(order=order))

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity, 3)
        self.assertEqual(self.listing.status, ProduceListing.STATUS_AVAILABLE)

    def test_expired_listing_stays_expired(self):
        ProduceListing.objects.filter(pk=self.listing.pk).update(status=ProduceListing.STATUS_EXPIRED)
        order = make_order(self.listing, self.buyer, quantity=3, inventory_decremented=True)

        restore_listing_quantity(order=order)
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity, 3)
        self.assertEqual(self.listing.status, ProduceListing.STATUS_EXPIRED)

    def test_no_reservation_nothing_restored(self):
        order = make_order(self.listing, self.buyer, quantity=3)
        self.assertFalse(restore_listing_quantity(order=order))
        self.listing.refresh_from_db()
        self.assertEqual(self.listing.quantity, 0)


class ToolHoldTests(TestCase):
    def setUp(self):
        self.owner = make_user("owner@grow.test")
        self.tool = make_tool(self.owner)
        self.rental = make_rental(self.tool, make_user("renter@grow.test"))

    def test_hold_and_release(self):
        hold_tool(rental=self.rental)
        self.tool.refresh_from_db()
        self.assertEqual(self.tool.status, Tool.STATUS_RENTED)

        self.assertTrue(release_tool(rental=self.rental))
        self.assertFalse(release_tool(rental=self.rental))
        self.tool.refresh_from_db()
        self.assertEqual(self.tool.status, Tool.STATUS_AVAILABLE)

    def test_cannot_hold_twice(self):
        hold_tool(rental=self.rental)
        other = make_rental(self.tool, make_user("other@grow.test"), start_in_days=40)
        with self.assertRaises(ToolUnavailableError):
            hold_tool(rental=other)


class WeeklyRateCleanTests(TestCase):
    """
    GUARANTEES:
    - A weekly rate is never more than seven daily rates
    - A weekly rate must be positive and needs a daily rate
    """

    def setUp(self):
        self.owner = make_user("owner@grow.test")

    def test_tool_weekly_rate_above_seven_days_fails_clean(self):
        tool = Tool(owner=self.owner, name="Tiller", daily_rate=Decimal("20.00"), weekly_rate=Decimal("500.00"))
        with self.assertRaises(ValidationError):
            tool.clean()

    def test_plot_weekly_rate_checks(self):
        plot = Plot(owner=self.owner, title="Back Field", price_per_month=Decimal("120.00"))
        for daily, weekly in ((None, "50.00"), ("10.00", "0.00"), ("10.00", "70.01")):
            with self.subTest(daily=daily, weekly=weekly):
                plot.daily_rate = Decimal(daily) if daily else None
                plot.weekly_rate = Decimal(weekly)
                with self.assertRaises(ValidationError):
                    plot.clean()

        plot.daily_rate = Decimal("10.00")
        plot.weekly_rate = Decimal("70.00")
        plot.clean()
