# listings/tests/test_api.py

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from listings.models import Plot, Tool
from transactions.tests.factories import make_plot, make_tool, make_user


class ListingApiTests(TestCase):
    """
    GUARANTEES:
    - Any member can list; the creator becomes the owner
    - Only the owner edits a listing
    - Tool status is not client-writable
    """

    def setUp(self):
        self.client = APIClient()
        self.owner = make_user("owner@grow.test")
        self.other = make_user("other@grow.test")

    def test_create_plot_sets_owner(self):
        self.client.force_authenticate(user=self.owner)
        res = self.client.post(
            "/api/listings/plots/",
            {"title": "Back Field", "price_per_month": "120.00"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(Plot.objects.get(pk=res.data["id"]).owner_id, self.owner.id)

    def test_weekly_rate_needs_daily_rate(self):
        self.client.force_authenticate(user=self.owner)
        res = self.client.post(
            "/api/listings/plots/",
            {"title": "Back Field", "price_per_month": "120.00", "weekly_rate": "50.00"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data, {"error": "weekly_rate requires a daily_rate"})

    def test_weekly_rate_above_seven_daily_rates_rejected(self):
        self.client.force_authenticate(user=self.owner)
        res = self.client.post(
            "/api/listings/tools/",
            {"name": "Tiller", "daily_rate": "20.00", "weekly_rate": "500.00"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            res.data, {"error": "weekly_rate cannot exceed 7 days at the daily_rate"}
        )
        self.assertFalse(Tool.objects.filter(owner=self.owner).exists())

    def test_weekly_rate_must_be_positive(self):
        self.client.force_authenticate(user=self.owner)
        res = self.client.post(
            "/api/listings/plots/",
            {
                "title": "Back Field",
                "price_per_month": "120.00",
                "daily_rate": "10.00",
                "weekly_rate": "0.00",
            },
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data, {"error": "weekly_rate must be greater than zero"})

    def test_weekly_rate_at_seven_daily_rates_accepted(self):
        self.client.force_authenticate(user=self.owner)
        res = self.client.post(
            "/api/listings/tools/",
            {"name": "Tiller", "daily_rate": "20.00", "weekly_rate": "140.00"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)

    def test_only_owner_can_edit(self):
        plot = make_plot(self.owner)
        self.client.force_authenticate(user=self.other)
        res = self.client.patch(f"/api/listings/plots/{plot.id}/", {"title": "Mine now"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.owner)
        res = self.client.patch(f"/api/listings/plots/{plot.id}/", {"title": "Renamed"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["title"], "Renamed")

    def test_tool_status_is_read_only(self):
        tool = make_tool(self.owner)
        self.client.force_authenticate(user=self.owner)
        self.client.patch(f"/api/listings/tools/{tool.id}/", {"status": "RENTED"}, format="json")
        tool.refresh_from_db()
        self.assertEqual(tool.status, Tool.STATUS_AVAILABLE)
