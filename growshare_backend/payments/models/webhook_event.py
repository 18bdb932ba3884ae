# payments/models/webhook_event.py

from django.db import models


class WebhookEvent(models.Model):
    """
    Idempotency log for provider webhook deliveries (keyed by event id).

    A PROCESSED / IGNORED event is acknowledged without reprocessing.
    A FAILED event is retried on the next delivery.
    """

    OUTCOME_RECEIVED = "RECEIVED"
    OUTCOME_PROCESSED = "PROCESSED"
    OUTCOME_IGNORED = "IGNORED"
    OUTCOME_FAILED = "FAILED"

    OUTCOME_CHOICES = [
        (OUTCOME_RECEIVED, "Received"),
        (OUTCOME_PROCESSED, "Processed"),
        (OUTCOME_IGNORED, "Ignored"),
        (OUTCOME_FAILED, "Failed"),
    ]

    FINAL_OUTCOMES = (OUTCOME_PROCESSED, OUTCOME_IGNORED)

    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100)
    outcome = models.CharField(max_length=16, choices=OUTCOME_CHOICES, default=OUTCOME_RECEIVED)
    error_message = models.TextField(blank=True, default="")

    received_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-received_at"]

    def __str__(self):
        return f"{self.event_type} {self.event_id} | {self.outcome}"
