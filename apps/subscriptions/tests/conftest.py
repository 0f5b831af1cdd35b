import pytest
from datetime import timedelta
from unittest.mock import MagicMock, patch

from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User


def make_subscriber(expires_in=timedelta(days=30), entitlement='premium',
                    product='xs_premium_monthly', sandbox=False, unsubscribed=False):
    """Build a RevenueCat subscriber record with one entitlement."""
    now = timezone.now()
    if entitlement is None:
        return {'entitlements': {}, 'subscriptions': {}}
    return {
        'entitlements': {
            entitlement: {
                'product_identifier': product,
                'purchase_date': (now - timedelta(days=1)).strftime('%Y-%m-%dT%H:%M:%SZ'),
                'expires_date': (now + expires_in).strftime('%Y-%m-%dT%H:%M:%SZ'),
            },
        },
        'subscriptions': {
            product: {
                'store': 'app_store',
                'period_type': 'normal',
                'is_sandbox': sandbox,
                'unsubscribe_detected_at': now.isoformat() if unsubscribed else None,
            },
        },
    }


def make_event(event_type, app_user_id, event_id='evt_1', **extra):
    """Build a RevenueCat webhook body."""
    event = {
        'id': event_id,
        'type': event_type,
        'app_user_id': str(app_user_id),
        'product_id': 'xs_premium_monthly',
        'entitlement_ids': ['premium'],
        'store': 'APP_STORE',
        'environment': 'PRODUCTION',
        'period_type': 'NORMAL',
        'purchased_at_ms': 1760000000000,
        'expiration_at_ms': 1762600000000,
    }
    event.update(extra)
    return {'api_version': '1.0', 'event': event}


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def subscriber_user(db):
    """Free-plan user who buys premium in the app."""
    return User.objects.create_user(
        email='subscriber@example.com',
        password='TestPass123!',
        display_name='Sipho Dlamini',
        email_verified=True,
    )


@pytest.fixture
def enterprise_user(db):
    """User placed on the enterprise plan by staff."""
    return User.objects.create_user(
        email='enterprise@example.com',
        password='TestPass123!',
        plan='enterprise',
    )


@pytest.fixture
def subscriber_client(subscriber_user):
    """API client authenticated as the subscriber."""
    client = APIClient()
    refresh = RefreshToken.for_user(subscriber_user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def revenuecat():
    """Patch the RevenueCat client; get_subscriber returns an active premium record."""
    client = MagicMock()
    client.get_subscriber.return_value = make_subscriber()
    with patch('apps.subscriptions.services.subscription_updates.get_revenuecat_client',
               return_value=client):
        yield client
