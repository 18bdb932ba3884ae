# payments/models/reconciliation_issue.py

from django.db import models


class ReconciliationIssue(models.Model):
    """
    Money moved at the provider but local state could not follow.

    Rows are created in their own transaction so they survive the rollback
    of the operation that detected the problem.
    """

    KIND_REFUND_NOT_PERSISTED = "REFUND_NOT_PERSISTED"
    KIND_PAYMENT_FOR_CLOSED_ENTITY = "PAYMENT_FOR_CLOSED_ENTITY"
    KIND_PAYMENT_AFTER_TERMINAL_RECORD = "PAYMENT_AFTER_TERMINAL_RECORD"

    KIND_CHOICES = [
        (KIND_REFUND_NOT_PERSISTED, "Refund sent but not persisted"),
        (KIND_PAYMENT_FOR_CLOSED_ENTITY, "Payment for a closed transaction"),
        (KIND_PAYMENT_AFTER_TERMINAL_RECORD, "Payment after failed/cancelled record"),
    ]

    kind = models.CharField(max_length=40, choices=KIND_CHOICES)
    payment_record = models.ForeignKey(
        "payments.PaymentRecord",
        on_delete=models.PROTECT,
        related_name="reconciliation_issues",
        null=True,
        blank=True,
    )
    external_ref = models.CharField(max_length=128, blank=True, default="")
    details = models.JSONField(default=dict, blank=True)

    resolved = models.BooleanField(default=False)
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["resolved", "kind"], name="recon_resolved_kind_idx"),
        ]

    def __str__(self):
        return f"{self.kind} {self.external_ref} | {'resolved' if self.resolved else 'open'}"
