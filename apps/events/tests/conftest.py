import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User
from apps.events.models import Event, EventOrganiser, EventStatus, EventType, OrganiserStatus
from apps.payments.services import VerificationStatus


PAYSTACK_CLIENT_PATHS = [
    'apps.events.services.event_management.get_paystack_client',
    'apps.events.services.organisers.get_paystack_client',
    'apps.events.services.registrations.get_paystack_client',
    'apps.events.services.bulk_registration.get_paystack_client',
    'apps.payments.services.webhooks.get_paystack_client',
]


def make_verification(status=VerificationStatus.SUCCESS, amount=0, reference='ref', metadata=None):
    """Build a verify_transaction() result."""
    return {
        'verified': status == VerificationStatus.SUCCESS,
        'status': status,
        'amount': amount,
        'reference': reference,
        'metadata': metadata or {},
        'message': '',
        'data': {},
    }


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def organiser_user(db):
    """Create and return the user who organises events."""
    return User.objects.create_user(
        email='organiser@example.com',
        password='TestPass123!',
        display_name='Event Organiser',
        email_verified=True,
    )


@pytest.fixture
def attendee_user(db):
    """Create and return a user who buys tickets."""
    return User.objects.create_user(
        email='attendee@example.com',
        password='TestPass123!',
        display_name='Ticket Buyer',
        email_verified=True,
    )


@pytest.fixture
def other_user(db):
    """Create and return an unrelated user."""
    return User.objects.create_user(
        email='other@example.com',
        password='TestPass123!',
        display_name='Other User',
        email_verified=True,
    )


@pytest.fixture
def active_organiser(organiser_user):
    """Approved organiser profile with a Paystack subaccount."""
    return EventOrganiser.objects.create(
        user=organiser_user,
        business_name='Cape Events',
        business_email='organiser@example.com',
        bank_code='058',
        account_number='0123456789',
        paystack_subaccount_code='ACCT_test123',
        status=OrganiserStatus.ACTIVE,
    )


@pytest.fixture
def organiser_client(organiser_user):
    """API client authenticated as the organiser."""
    return _client_for(organiser_user)


@pytest.fixture
def attendee_client(attendee_user):
    """API client authenticated as the attendee."""
    return _client_for(attendee_user)


@pytest.fixture
def other_client(other_user):
    """API client authenticated as an unrelated user."""
    return _client_for(other_user)


def _event(organiser, **overrides):
    fields = {
        'organiser': organiser,
        'title': 'Networking Breakfast',
        'description': 'Meet local founders',
        'event_date': timezone.now() + timedelta(days=14),
        'location': 'V&A Waterfront',
        'city': 'Cape Town',
        'max_attendees': 20,
        'allow_bulk_registrations': True,
        'status': EventStatus.PUBLISHED,
        'published_at': timezone.now(),
    }
    fields.update(overrides)
    return Event.objects.create(**fields)


@pytest.fixture
def free_event(organiser_user):
    """Published free event with room for 20."""
    return _event(organiser_user)


@pytest.fixture
def paid_event(organiser_user, active_organiser):
    """Published paid event (R150 per ticket) with room for 20."""
    return _event(
        organiser_user,
        title='Founders Summit',
        ticket_price=Decimal('150.00'),
        event_type=EventType.PAID,
    )


@pytest.fixture
def draft_paid_event(organiser_user, active_organiser):
    """Paid event that has not been published yet."""
    return _event(
        organiser_user,
        title='Draft Summit',
        ticket_price=Decimal('150.00'),
        event_type=EventType.PAID,
        status=EventStatus.DRAFT,
        published_at=None,
    )


@pytest.fixture
def paystack():
    """
    Patch every Paystack client lookup with one mock.

    initialize_transaction returns a checkout URL and verify_transaction a
    pending result unless a test overrides them.
    """
    client = MagicMock()
    client.initialize_transaction.return_value = {
        'authorization_url': 'https://checkout.paystack.com/abc123',
        'access_code': 'abc123',
    }
    client.verify_transaction.return_value = make_verification(VerificationStatus.PENDING)
    client.create_subaccount.return_value = {'subaccount_code': 'ACCT_new456'}

    patchers = [patch(path, return_value=client) for path in PAYSTACK_CLIENT_PATHS]
    for patcher in patchers:
        patcher.start()
    yield client
    for patcher in patchers:
        patcher.stop()


@pytest.fixture
def attendees():
    """Three valid bulk registration attendees."""
    return [
        {'name': 'Thandi Nkosi', 'email': 'thandi@example.com', 'phone': '+27821234567'},
        {'name': 'Pieter van Wyk', 'email': 'pieter@example.com', 'phone': ''},
        {'name': 'Aisha Patel', 'email': 'aisha@example.com'},
    ]
