from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models
import uuid


DEFAULT_COLOR_SCHEME = '#1B2B5B'

hex_color_validator = RegexValidator(
    regex=r'^#[0-9A-Fa-f]{6}$',
    message='Color must be a hex value like #1B2B5B'
)


class Card(models.Model):
    """A digital business card. Users address their cards by position."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='cards'
    )
    position = models.PositiveIntegerField(default=0)

    name = models.CharField(max_length=100, blank=True)
    surname = models.CharField(max_length=100, blank=True)
    occupation = models.CharField(max_length=150, blank=True)
    company = models.CharField(max_length=150)
    email = models.EmailField(max_length=255)
    phone = models.CharField(max_length=30)
    socials = models.JSONField(default=dict, blank=True)

    color_scheme = models.CharField(
        max_length=7,
        default=DEFAULT_COLOR_SCHEME,
        validators=[hex_color_validator]
    )
    profile_image = models.URLField(max_length=500, blank=True)
    company_logo = models.URLField(max_length=500, blank=True)

    number_of_scan = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'cards'
        ordering = ['position', 'created_at']
        indexes = [
            models.Index(fields=['user', 'position'], name='cards_user_id_8f3c2a_idx'),
        ]

    def __str__(self):
        return f"{self.full_name or self.company} ({self.user})"

    @property
    def full_name(self):
        return f"{self.name} {self.surname}".strip()


class Contact(models.Model):
    """Details someone left for a card owner after scanning one of their cards."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='contacts'
    )
    card = models.ForeignKey(
        Card,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='contacts'
    )
    card_index = models.PositiveIntegerField(default=0)

    name = models.CharField(max_length=100)
    surname = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=30)
    email = models.EmailField(max_length=255, blank=True)
    company = models.CharField(max_length=150, blank=True)
    how_we_met = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'contacts'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='contacts_owner_i_4b7d1e_idx'),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.owner})"

    @property
    def full_name(self):
        return f"{self.name} {self.surname}".strip()
