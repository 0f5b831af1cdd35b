from django.db import models
import uuid


class WebhookOutcome(models.TextChoices):
    RECEIVED = 'received', 'Received'
    PROCESSED = 'processed', 'Processed'
    IGNORED = 'ignored', 'Ignored'
    FAILED = 'failed', 'Failed'


class PaystackWebhookEvent(models.Model):
    """Every signed Paystack webhook delivery, kept for reconciliation."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    event = models.CharField(max_length=64)
    reference = models.CharField(max_length=128, blank=True, db_index=True)
    payment_type = models.CharField(max_length=32, blank=True)

    outcome = models.CharField(
        max_length=20,
        choices=WebhookOutcome.choices,
        default=WebhookOutcome.RECEIVED
    )
    detail = models.CharField(max_length=255, blank=True)

    received_at = models.DateTimeField(auto_now_add=True)
    raw_data = models.JSONField(blank=True, null=True)

    class Meta:
        db_table = 'paystack_webhook_events'
        indexes = [
            models.Index(fields=['event', 'received_at'], name='paystack_we_event_5b2e9d_idx'),
        ]
        ordering = ['-received_at']

    def __str__(self):
        return f"{self.event} {self.reference} ({self.outcome})"
