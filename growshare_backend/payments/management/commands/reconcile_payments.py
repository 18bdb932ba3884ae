# payments/management/commands/reconcile_payments.py

from __future__ import annotations

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from payments.models import PaymentRecord, ReconciliationIssue


class Command(BaseCommand):
    help = (
        "List unresolved payment reconciliation issues. With --apply, re-persist "
        "refunds that the provider accepted but the database never recorded."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--apply",
            action="store_true",
            help="Repair REFUND_NOT_PERSISTED issues and mark them resolved.",
        )

    def handle(self, *args, **options):
        apply = bool(options.get("apply"))

        issues = list(
            ReconciliationIssue.objects.filter(resolved=False)
            .select_related("payment_record")
            .order_by("created_at")
        )

        if not issues:
            self.stdout.write("No unresolved reconciliation issues.")
            return

        repaired = 0
        manual = 0

        for issue in issues:
            self.stdout.write(
                f"{issue.kind:<30} ref={issue.external_ref or '-'} "
                f"record={issue.payment_record_id or '-'} details={issue.details}"
            )

            if issue.kind != ReconciliationIssue.KIND_REFUND_NOT_PERSISTED:
                manual += 1
                continue

            if apply:
                self._repair_refund(issue)
                repaired += 1

        self.stdout.write("\n--- Summary ---")
        self.stdout.write(f"Unresolved:        {len(issues)}")
        self.stdout.write(f"Refunds repaired:  {repaired}")
        self.stdout.write(f"Needs manual work: {manual}")

        if not apply:
            self.stdout.write("\nDRY RUN (use --apply to repair refunds).")

    @transaction.atomic
    def _repair_refund(self, issue: ReconciliationIssue) -> None:
        now = timezone.now()
        details = issue.details or {}

        record = PaymentRecord.objects.select_for_update().get(pk=issue.payment_record_id)
        if record.status != PaymentRecord.STATUS_REFUNDED:
            refunded_at = parse_datetime(details.get("refunded_at") or "") or now
            amount = int(details.get("refund_amount") or 0)
            record.status = PaymentRecord.STATUS_REFUNDED
            record.refunded_at = refunded_at
            record.metadata = {
                **(record.metadata or {}),
                "refund_id": details.get("refund_id"),
                "refund_amount": amount,
                "refund_percentage": round(amount * 100 / record.amount) if record.amount else 0,
                "refunded_at": refunded_at.isoformat(),
                "reconciled": True,
            }
            record.save(update_fields=["status", "refunded_at", "metadata", "updated_at"])

        issue.resolved = True
        issue.resolved_at = now
        issue.save(update_fields=["resolved", "resolved_at"])
        self.stdout.write(self.style.SUCCESS(f"  repaired record {record.id}"))
