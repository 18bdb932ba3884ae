"""
PATH: users/models/user.py

CUSTOM USER MODEL

GrowShare members play every marketplace role at once: the same account can
own a plot, rent out tools, sell produce and book someone else's plot.
Per-transaction roles (owner vs counterparty) are resolved at request time
from the transaction itself, never stored on the user.

Payments:
- stripe_customer_id: Stripe customer for the paying side
- stripe_connect_id:  Stripe Connect account for the receiving side (payouts)
- stripe_onboarding_complete: set from the account.updated webhook

Gamification:
- total_points is only ever mutated with F() increments (see users/signals.py).
"""

from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models


# ---------------- USER MANAGER ----------------
class UserManager(BaseUserManager):
    def _unique_username(self, base: str) -> str:
        base = (base or "user").strip().lower()
        candidate = base
        i = 1
        while self.model.objects.filter(username__iexact=candidate).exists():
            i += 1
            candidate = f"{base}{i}"
        return candidate

    def create_user(self, email=None, password=None, **extra_fields):
        """
        Rules:
        - email is required (canonical identity)
        - username is derived from the email local-part when missing
        """
        email = (email or extra_fields.pop("email", None) or "").strip()
        if not email:
            raise ValueError("Users must have an email address")

        email = self.normalize_email(email)

        username = (extra_fields.get("username") or "").strip()
        if not username:
            username = self._unique_username(email.split("@")[0])

        extra_fields["username"] = username
        extra_fields.setdefault("is_active", True)

        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.full_clean(exclude=["password"])
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        if not password:
            raise ValueError("Superuser must have a password")

        extra_fields.setdefault("role", User.ROLE_ADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True")

        return self.create_user(email=email, password=password, **extra_fields)


# ---------------- USER MODEL ----------------
class User(AbstractBaseUser, PermissionsMixin):
    ROLE_MEMBER = "member"
    ROLE_ADMIN = "admin"

    ROLE_CHOICES = [
        (ROLE_MEMBER, "Member"),
        (ROLE_ADMIN, "Admin"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    username = models.CharField(max_length=150, unique=True)
    email = models.EmailField(unique=True)

    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_MEMBER)

    # Stripe
    stripe_customer_id = models.CharField(max_length=64, blank=True, default="")
    stripe_connect_id = models.CharField(max_length=64, blank=True, default="")
    stripe_onboarding_complete = models.BooleanField(default=False)

    # Gamification
    total_points = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["stripe_connect_id"], name="user_connect_idx"),
        ]

    def clean(self):
        if self.email:
            self.email = self.__class__.objects.normalize_email(self.email).strip()
        if not self.email:
            raise ValidationError("User must have an email address")

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.username or self.email

    def __str__(self):
        return f"{self.email} ({self.role})"
