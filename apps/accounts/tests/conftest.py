import jwt
import pytest
from unittest.mock import MagicMock
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, OAuthProvider


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Create and return a test user."""
    return User.objects.create_user(
        email='testuser@example.com',
        password='TestPass123!',
        display_name='Test User',
        email_verified=True,
    )


@pytest.fixture
def user_inactive(db):
    """Create and return an inactive user."""
    return User.objects.create_user(
        email='inactive@example.com',
        password='TestPass123!',
        display_name='Inactive User',
        is_active=False,
    )


@pytest.fixture
def oauth_user(db):
    """User created through Google sign-in, without a password."""
    return User.objects.create_user(
        email='sipho@example.com',
        display_name='Sipho Nkosi',
        email_verified=True,
        oauth_provider=OAuthProvider.GOOGLE,
        oauth_subject='google-sub-1',
    )


@pytest.fixture
def authenticated_client(api_client, user):
    """Return an authenticated API client using JWT."""
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def oauth_settings(settings):
    """Client credentials for both OAuth providers."""
    settings.GOOGLE_OAUTH_CLIENT_ID = 'google-client'
    settings.GOOGLE_OAUTH_CLIENT_SECRET = 'google-secret'
    settings.LINKEDIN_OAUTH_CLIENT_ID = 'linkedin-client'
    settings.LINKEDIN_OAUTH_CLIENT_SECRET = 'linkedin-secret'
    settings.OAUTH_APP_REDIRECT_URI = 'xscard://oauth-callback'
    return settings


def provider_response(payload):
    """Mocked ``requests`` response returning ``payload`` as JSON."""
    response = MagicMock()
    response.json.return_value = payload
    return response


def google_id_token(email='sipho@example.com', sub='google-sub-1', name='Sipho Nkosi'):
    return jwt.encode({'sub': sub, 'email': email, 'name': name}, 'unverified-signing-key-for-tests-only', algorithm='HS256')
