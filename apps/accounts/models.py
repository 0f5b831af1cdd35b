from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone
import uuid


class Plan(models.TextChoices):
    FREE = 'free', 'Free'
    PREMIUM = 'premium', 'Premium'
    ENTERPRISE = 'enterprise', 'Enterprise'


class OAuthProvider(models.TextChoices):
    NONE = '', 'Password'
    GOOGLE = 'google', 'Google'
    LINKEDIN = 'linkedin', 'LinkedIn'


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('email_verified', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """Card owner, event organiser/attendee and calendar owner."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=255, db_index=True)
    display_name = models.CharField(max_length=100, blank=True)

    # Authentication & verification
    email_verified = models.BooleanField(default=False)
    verification_token = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    password_reset_token = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    password_reset_sent_at = models.DateTimeField(null=True, blank=True)
    oauth_provider = models.CharField(
        max_length=20,
        choices=OAuthProvider.choices,
        default=OAuthProvider.NONE,
        blank=True,
    )
    oauth_subject = models.CharField(max_length=255, blank=True)

    # Plan & subscription (kept in sync by the subscriptions app)
    plan = models.CharField(max_length=20, choices=Plan.choices, default=Plan.FREE)
    subscription_status = models.CharField(max_length=30, blank=True)
    revenuecat_app_user_id = models.CharField(max_length=255, blank=True, db_index=True)

    # Paid event publishing
    welcome_credit_used = models.BooleanField(default=False)

    # Calendar booking preferences, merged over defaults by the meetings app
    calendar_preferences = models.JSONField(default=dict, blank=True)

    # Permissions
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    last_login = models.DateTimeField(null=True, blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['created_at'], name='users_created_7e3a1c_idx'),
        ]

    def __str__(self):
        return self.email

    def get_display_name(self):
        """Return display name or email prefix."""
        return self.display_name or self.email.split('@')[0]

    @property
    def is_premium(self):
        return self.plan in (Plan.PREMIUM, Plan.ENTERPRISE)

    def anonymize(self):
        """Anonymize personal data and deactivate the account."""
        self.email = f"deleted_{self.id}@anonymized.local"
        self.display_name = "Deleted User"
        self.is_active = False
        self.deleted_at = timezone.now()
        self.oauth_subject = ''
        self.calendar_preferences = {}
        self.verification_token = None
        self.password_reset_token = None
        self.set_unusable_password()
        self.save()
