from django.conf import settings
from django.db import models
import uuid

from apps.accounts.models import Plan


class SubscriptionStatus(models.TextChoices):
    INACTIVE = 'inactive', 'Inactive'
    ACTIVE = 'active', 'Active'
    CANCELLED = 'cancelled', 'Cancelled'
    EXPIRED = 'expired', 'Expired'
    BILLING_ISSUE = 'billing_issue', 'Billing issue'


class LogVerification(models.TextChoices):
    VERIFIED = 'verified', 'Verified'
    UNVERIFIED = 'unverified', 'Unverified'
    NOT_REQUIRED = 'not_required', 'Not required'


class Subscription(models.Model):
    """Latest RevenueCat state of a user's premium subscription."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='subscription'
    )

    status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.INACTIVE
    )
    plan = models.CharField(max_length=20, choices=Plan.choices, default=Plan.FREE)

    # RevenueCat details
    app_user_id = models.CharField(max_length=255, blank=True)
    product_id = models.CharField(max_length=255, blank=True)
    entitlement_id = models.CharField(max_length=100, blank=True)
    store = models.CharField(max_length=50, blank=True)
    environment = models.CharField(max_length=20, blank=True)
    period_type = models.CharField(max_length=20, blank=True)
    purchased_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    will_renew = models.BooleanField(default=False)
    billing_issue_detected_at = models.DateTimeField(null=True, blank=True)

    last_event_type = models.CharField(max_length=50, blank=True)
    last_synced_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'subscriptions'

    def __str__(self):
        return f"{self.user} - {self.plan} ({self.status})"

    @property
    def is_active(self):
        return self.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED,
                               SubscriptionStatus.BILLING_ISSUE) and self.plan != Plan.FREE


class SubscriptionLog(models.Model):
    """Append-only audit trail of processed RevenueCat events and syncs."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='subscription_logs'
    )

    event_type = models.CharField(max_length=50)
    event_id = models.CharField(max_length=100, blank=True, db_index=True)
    verification_status = models.CharField(
        max_length=20,
        choices=LogVerification.choices,
        default=LogVerification.NOT_REQUIRED
    )
    status = models.CharField(max_length=20, blank=True)
    plan = models.CharField(max_length=20, blank=True)
    detail = models.CharField(max_length=255, blank=True)
    event_data = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'subscription_logs'
        indexes = [
            models.Index(fields=['user', 'created_at'], name='subscriptio_user_id_4d1b7e_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.event_type} for {self.user_id} ({self.verification_status})"
