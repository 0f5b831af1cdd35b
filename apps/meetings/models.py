from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from datetime import timedelta
import uuid


class BookingSource(models.TextChoices):
    PUBLIC = 'public', 'Public booking page'
    OWNER = 'owner', 'Added by owner'


class BookingStatus(models.TextChoices):
    CONFIRMED = 'confirmed', 'Confirmed'
    CANCELLED = 'cancelled', 'Cancelled'


class Booking(models.Model):
    """A meeting on a calendar owner's calendar."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='bookings'
    )

    # Booker
    booker_name = models.CharField(max_length=150)
    booker_email = models.EmailField(max_length=255, blank=True)
    booker_phone = models.CharField(max_length=30, blank=True)
    message = models.TextField(blank=True)

    starts_at = models.DateTimeField()
    duration = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    location = models.CharField(max_length=255, default='Online meeting')

    source = models.CharField(max_length=20, choices=BookingSource.choices, default=BookingSource.PUBLIC)
    status = models.CharField(max_length=20, choices=BookingStatus.choices, default=BookingStatus.CONFIRMED)
    cancellation_token = models.CharField(max_length=64, unique=True, null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['starts_at']
        indexes = [
            models.Index(fields=['owner', 'starts_at'], name='bookings_owner_i_5e8d2c_idx'),
        ]

    def __str__(self):
        return f"{self.booker_name} with {self.owner} at {self.starts_at:%Y-%m-%d %H:%M}"

    @property
    def ends_at(self):
        return self.starts_at + timedelta(minutes=self.duration)
