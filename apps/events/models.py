from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
import uuid


class OrganiserStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    ACTIVE = 'active', 'Active'
    SUSPENDED = 'suspended', 'Suspended'
    REJECTED = 'rejected', 'Rejected'


class EventStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    PENDING_PAYMENT = 'pending_payment', 'Pending payment'
    PUBLISHED = 'published', 'Published'
    CANCELLED = 'cancelled', 'Cancelled'


class EventType(models.TextChoices):
    FREE = 'free', 'Free'
    PAID = 'paid', 'Paid'


class EventCategory(models.TextChoices):
    CONFERENCE = 'conference', 'Conference'
    WORKSHOP = 'workshop', 'Workshop'
    NETWORKING = 'networking', 'Networking'
    SEMINAR = 'seminar', 'Seminar'
    SOCIAL = 'social', 'Social'
    SPORTS = 'sports', 'Sports'
    MUSIC = 'music', 'Music'
    BUSINESS = 'business', 'Business'
    OTHER = 'other', 'Other'


class Visibility(models.TextChoices):
    PUBLIC = 'public', 'Public'
    PRIVATE = 'private', 'Private'


class RegistrationStatus(models.TextChoices):
    REGISTERED = 'registered', 'Registered'
    PENDING_PAYMENT = 'pending_payment', 'Pending payment'
    CANCELLED = 'cancelled', 'Cancelled'


class PaymentStatus(models.TextChoices):
    NOT_REQUIRED = 'not_required', 'Not required'
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'
    ABANDONED = 'abandoned', 'Abandoned'


class TicketType(models.TextChoices):
    FREE = 'free', 'Free'
    PAID = 'paid', 'Paid'
    ATTENDEE = 'attendee', 'Bulk attendee'


class TicketStatus(models.TextChoices):
    PENDING_PAYMENT = 'pending_payment', 'Pending payment'
    ACTIVE = 'active', 'Active'
    CANCELLED = 'cancelled', 'Cancelled'


class BulkRegistrationStatus(models.TextChoices):
    PENDING_PAYMENT = 'pending_payment', 'Pending payment'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'
    CANCELLED = 'cancelled', 'Cancelled'


class EventOrganiser(models.Model):
    """Organiser profile; an active one may create paid events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='organiser_profile'
    )

    business_name = models.CharField(max_length=200)
    business_email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)

    # Payout details
    bank_code = models.CharField(max_length=20, blank=True)
    bank_name = models.CharField(max_length=100, blank=True)
    account_number = models.CharField(max_length=32, blank=True)
    account_holder = models.CharField(max_length=200, blank=True)
    paystack_subaccount_code = models.CharField(max_length=64, blank=True)

    status = models.CharField(
        max_length=20,
        choices=OrganiserStatus.choices,
        default=OrganiserStatus.PENDING
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'event_organisers'

    def __str__(self):
        return f"{self.business_name} ({self.status})"

    @property
    def is_active(self):
        return self.status == OrganiserStatus.ACTIVE

    @property
    def can_receive_split_payments(self):
        return self.is_active and bool(self.paystack_subaccount_code)


class Event(models.Model):
    """An event listing; paid events need a publishing fee or credit to go live."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organiser = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='events'
    )

    title = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(
        max_length=20,
        choices=EventCategory.choices,
        default=EventCategory.OTHER
    )
    event_type = models.CharField(
        max_length=10,
        choices=EventType.choices,
        default=EventType.FREE
    )
    ticket_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    currency = models.CharField(max_length=3, default='ZAR')
    image_url = models.URLField(blank=True)

    # When & where
    event_date = models.DateTimeField()
    end_date = models.DateTimeField(null=True, blank=True)
    location = models.CharField(max_length=255)
    city = models.CharField(max_length=100)

    # Capacity (0 = unlimited)
    max_attendees = models.PositiveIntegerField(default=0)
    current_attendees = models.PositiveIntegerField(default=0)
    allow_bulk_registrations = models.BooleanField(default=False)

    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.DRAFT
    )
    visibility = models.CharField(
        max_length=10,
        choices=Visibility.choices,
        default=Visibility.PUBLIC
    )

    # Publishing payment
    payment_reference = models.CharField(max_length=128, unique=True, null=True, blank=True)
    payment_url = models.URLField(max_length=500, blank=True)
    listing_fee = models.PositiveIntegerField(null=True, blank=True, help_text='Cents')
    credit_applied = models.CharField(max_length=20, blank=True)
    payment_initiated_at = models.DateTimeField(null=True, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'events'
        indexes = [
            models.Index(fields=['status', 'event_date'], name='events_status_2c6f1d_idx'),
            models.Index(fields=['organiser', 'status'], name='events_organis_8a4b3e_idx'),
            models.Index(fields=['city'], name='events_city_5d1e7a_idx'),
            models.Index(fields=['category'], name='events_categor_9f2c4b_idx'),
        ]
        ordering = ['event_date']

    def __str__(self):
        return f"{self.title} ({self.status})"

    @property
    def is_paid(self):
        return self.ticket_price > 0

    @property
    def is_published(self):
        return self.status == EventStatus.PUBLISHED

    def has_capacity_for(self, quantity=1):
        """Whether ``quantity`` more attendees fit; 0 max means unlimited."""
        if self.max_attendees == 0:
            return True
        return self.current_attendees + quantity <= self.max_attendees

    def remaining_capacity(self):
        if self.max_attendees == 0:
            return None
        return max(0, self.max_attendees - self.current_attendees)


class EventRegistration(models.Model):
    """A single user's registration for an event."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='registrations')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='event_registrations'
    )

    status = models.CharField(
        max_length=20,
        choices=RegistrationStatus.choices,
        default=RegistrationStatus.REGISTERED
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.NOT_REQUIRED
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    payment_reference = models.CharField(max_length=128, unique=True, null=True, blank=True)
    payment_url = models.URLField(max_length=500, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'event_registrations'
        indexes = [
            models.Index(fields=['event', 'user', 'status'], name='event_regis_event_i_3b7a2c_idx'),
            models.Index(fields=['payment_reference'], name='event_regis_payment_6e1d9f_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user} -> {self.event.title} ({self.status})"


class BulkRegistration(models.Model):
    """One payment covering several attendee tickets."""

    MIN_QUANTITY = 2
    MAX_QUANTITY = 50

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='bulk_registrations')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='bulk_registrations'
    )

    quantity = models.PositiveIntegerField()
    attendee_details = models.JSONField(default=list)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    status = models.CharField(
        max_length=20,
        choices=BulkRegistrationStatus.choices,
        default=BulkRegistrationStatus.PENDING_PAYMENT
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )
    payment_reference = models.CharField(max_length=128, unique=True, null=True, blank=True)
    payment_url = models.URLField(max_length=500, blank=True)
    failure_reason = models.CharField(max_length=255, blank=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bulk_registrations'
        indexes = [
            models.Index(fields=['user', 'created_at'], name='bulk_regist_user_id_4c8e1a_idx'),
            models.Index(fields=['event', 'status'], name='bulk_regist_event_i_7d2f5b_idx'),
            models.Index(fields=['payment_reference'], name='bulk_regist_payment_1a9c3e_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.quantity} tickets for {self.event.title} ({self.status})"


class Ticket(models.Model):
    """Admission to an event, from a single or a bulk registration."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='tickets')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='tickets'
    )
    registration = models.ForeignKey(
        EventRegistration,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='tickets'
    )
    bulk_registration = models.ForeignKey(
        BulkRegistration,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='tickets'
    )

    attendee_name = models.CharField(max_length=200)
    attendee_email = models.EmailField()
    attendee_phone = models.CharField(max_length=32, blank=True)
    attendee_index = models.PositiveSmallIntegerField(null=True, blank=True)

    ticket_type = models.CharField(max_length=10, choices=TicketType.choices, default=TicketType.FREE)
    status = models.CharField(
        max_length=20,
        choices=TicketStatus.choices,
        default=TicketStatus.ACTIVE
    )

    checked_in = models.BooleanField(default=False)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_in_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tickets'
        indexes = [
            models.Index(fields=['event', 'status'], name='tickets_event_i_2e5b8c_idx'),
            models.Index(fields=['user', 'created_at'], name='tickets_user_id_9a3d1f_idx'),
            models.Index(fields=['bulk_registration', 'attendee_index'], name='tickets_bulk_re_6c4e2a_idx'),
        ]
        ordering = ['attendee_index', 'created_at']

    def __str__(self):
        return f"{self.attendee_name} @ {self.event.title} ({self.status})"


class CheckInToken(models.Model):
    """Verification token embedded in a ticket's check-in QR code."""

    VALIDITY_HOURS = 24

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    token = models.CharField(max_length=64, unique=True)
    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name='check_in_tokens')
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name='check_in_tokens')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='check_in_tokens'
    )

    issued_timestamp = models.BigIntegerField(help_text='Unix ms embedded in the QR payload')
    expires_at = models.DateTimeField()
    used = models.BooleanField(default=False)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_in_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'check_in_tokens'

    def __str__(self):
        return f"Check-in token for ticket {self.ticket_id}"


class ListingCreditBucket(models.Model):
    """Free paid-event publishes available to a user in one calendar month."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='listing_credit_buckets'
    )
    period = models.CharField(max_length=7, help_text='YYYY-MM')
    tier = models.CharField(max_length=20)
    credits_allocated = models.PositiveIntegerField(default=0)
    credits_used = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'listing_credit_buckets'
        unique_together = [['user', 'period']]

    def __str__(self):
        return f"{self.user} {self.period}: {self.credits_used}/{self.credits_allocated}"

    @property
    def credits_remaining(self):
        return max(0, self.credits_allocated - self.credits_used)
