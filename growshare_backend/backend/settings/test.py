# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS

- In-memory SQLite
- Fast password hashing
- Payment provider replaced by the in-process fake gateway
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import PAYMENTS

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PAYMENTS = {
    **PAYMENTS,
    "GATEWAY": "payments.tests.fakes.FakePaymentGateway",
    "STRIPE": {
        **PAYMENTS["STRIPE"],
        "SECRET_KEY": "sk_test_dummy",
        "WEBHOOK_SECRET": "whsec_test_dummy",
    },
}
