# users/tests/test_users.py

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from transactions.models import KIND_BOOKING, KIND_ORDER
from transactions.signals import transactable_completed
from users.signals import award_points

User = get_user_model()


class UserManagerTests(TestCase):
    def test_username_derived_from_email(self):
        first = User.objects.create_user(email="Grower@Grow.test", password="pass")
        second = User.objects.create_user(email="grower@other.test", password="pass")

        self.assertEqual(first.username, "grower")
        self.assertEqual(second.username, "grower2")
        self.assertEqual(first.email, "Grower@grow.test")

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email="", password="pass")


class CompletionRewardTests(TestCase):
    """
    GUARANTEES:
    - A completed transaction credits both parties
    - Credits are F() increments and never go through a stale instance
    """

    def setUp(self):
        self.owner = User.objects.create_user(email="owner@grow.test", password="pass")
        self.renter = User.objects.create_user(email="renter@grow.test", password="pass")

    def _complete(self, kind):
        transactable_completed.send(
            sender=None,
            kind=kind,
            instance=None,
            owner_id=self.owner.id,
            counterparty_id=self.renter.id,
        )

    def test_points_by_kind(self):
        self._complete(KIND_BOOKING)
        self._complete(KIND_ORDER)

        self.owner.refresh_from_db()
        self.renter.refresh_from_db()
        self.assertEqual(self.owner.total_points, 35)
        self.assertEqual(self.renter.total_points, 35)

    def test_stale_instance_does_not_lose_points(self):
        stale = User.objects.get(pk=self.owner.pk)
        award_points(user_ids={self.owner.id}, points=5)
        stale.first_name = "Stale"
        stale.save(update_fields=["first_name"])

        self.owner.refresh_from_db()
        self.assertEqual(self.owner.total_points, 5)

    def test_zero_points_is_noop(self):
        self.assertEqual(award_points(user_ids={self.owner.id}, points=0), 0)


class AuthApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_register_login_me(self):
        res = self.client.post(
            "/api/auth/register/",
            {"email": "new@grow.test", "password": "a-Strong-pass-123"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertIn("access", res.data)

        res = self.client.post(
            "/api/auth/login/",
            {"email": "new@grow.test", "password": "a-Strong-pass-123"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {res.data['access']}")
        me = self.client.get("/api/auth/me/")
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data["email"], "new@grow.test")
        self.assertEqual(me.data["total_points"], 0)

    def test_bad_credentials(self):
        User.objects.create_user(email="user@grow.test", password="pass")
        res = self.client.post(
            "/api/auth/login/",
            {"email": "user@grow.test", "password": "wrong"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(res.data, {"error": "Invalid credentials"})
