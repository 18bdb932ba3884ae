"""
PATH: payments/models/__init__.py
"""

from .payment_record import PaymentRecord
from .reconciliation_issue import ReconciliationIssue
from .webhook_event import WebhookEvent

__all__ = ["PaymentRecord", "ReconciliationIssue", "WebhookEvent"]
