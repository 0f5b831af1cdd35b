import pytest
from datetime import datetime, time, timedelta, timezone as dt_timezone

from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User
from apps.meetings.models import Booking, BookingSource


def future_weekday(weekday=0, min_days=3):
    """First date at least ``min_days`` ahead falling on ``weekday`` (0 = Monday)."""
    day = timezone.now().date() + timedelta(days=min_days)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


def at(day, hour, minute=0, tz=dt_timezone.utc):
    return datetime.combine(day, time(hour, minute), tzinfo=tz)


def add_booking(owner, starts_at, duration=30, **overrides):
    fields = {
        'owner': owner,
        'booker_name': 'Existing Booker',
        'booker_email': 'existing@example.com',
        'booker_phone': '+27820001111',
        'starts_at': starts_at,
        'duration': duration,
        'source': BookingSource.PUBLIC,
    }
    fields.update(overrides)
    return Booking.objects.create(**fields)


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def calendar_owner(db):
    """User whose public calendar is booked, on default preferences."""
    return User.objects.create_user(
        email='calendar@example.com',
        password='TestPass123!',
        display_name='Naledi Dube',
        email_verified=True,
    )


@pytest.fixture
def owner_client(calendar_owner):
    client = APIClient()
    refresh = RefreshToken.for_user(calendar_owner)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def monday():
    return future_weekday(0)


@pytest.fixture
def booking_data(monday):
    return {
        'name': 'Kagiso Molefe',
        'email': 'kagiso@example.com',
        'phone': '+27821112222',
        'message': 'Intro call',
        'date': monday.isoformat(),
        'time': '10:00',
        'duration': 30,
    }
