"""
OAuth 2.0 sign-in with Google and LinkedIn.

The app opens ``start`` in a browser with its own random ``state``; the
provider redirects back to ``callback``, where the code is exchanged for the
user's verified email and a local account is fetched or created.
"""

import logging
from urllib.parse import urlencode

import jwt
import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import transaction

from apps.accounts.models import OAuthProvider
from .exceptions import OAuthNotConfiguredError, OAuthStateError, OAuthExchangeError

User = get_user_model()
logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10
STATE_CACHE_PREFIX = 'oauth_state:'

PROVIDERS = {
    OAuthProvider.GOOGLE: {
        'authorize_url': 'https://accounts.google.com/o/oauth2/v2/auth',
        'token_url': 'https://oauth2.googleapis.com/token',
        'client_id_setting': 'GOOGLE_OAUTH_CLIENT_ID',
        'client_secret_setting': 'GOOGLE_OAUTH_CLIENT_SECRET',
        'extra_params': {'access_type': 'offline', 'prompt': 'select_account'},
    },
    OAuthProvider.LINKEDIN: {
        'authorize_url': 'https://www.linkedin.com/oauth/v2/authorization',
        'token_url': 'https://www.linkedin.com/oauth/v2/accessToken',
        'userinfo_url': 'https://api.linkedin.com/v2/userinfo',
        'client_id_setting': 'LINKEDIN_OAUTH_CLIENT_ID',
        'client_secret_setting': 'LINKEDIN_OAUTH_CLIENT_SECRET',
        'extra_params': {},
    },
}


def _credentials(provider: str) -> tuple[str, str]:
    config = PROVIDERS[provider]
    client_id = getattr(settings, config['client_id_setting'], '')
    client_secret = getattr(settings, config['client_secret_setting'], '')
    if not client_id or not client_secret:
        raise OAuthNotConfiguredError(f"{provider} OAuth is not configured on the server")
    return client_id, client_secret


def get_redirect_uri(provider: str) -> str:
    return f"{settings.PUBLIC_BASE_URL}/api/auth/oauth/{provider}/callback/"


def build_authorization_url(*, provider: str, state: str) -> str:
    """
    Remember ``state`` and return the provider consent-screen URL.

    Raises:
        OAuthNotConfiguredError: If the provider has no client credentials
    """
    client_id, _ = _credentials(provider)
    cache.set(f"{STATE_CACHE_PREFIX}{state}", provider, settings.OAUTH_STATE_TTL_SECONDS)

    params = {
        'client_id': client_id,
        'redirect_uri': get_redirect_uri(provider),
        'response_type': 'code',
        'scope': 'openid profile email',
        'state': state,
        **PROVIDERS[provider]['extra_params'],
    }
    return f"{PROVIDERS[provider]['authorize_url']}?{urlencode(params)}"


def consume_state(*, provider: str, state: str) -> None:
    """
    Validate and invalidate a state token; each state is single use.

    Raises:
        OAuthStateError: If the state is unknown, expired or for another provider
    """
    if not state:
        raise OAuthStateError("invalid_state")
    key = f"{STATE_CACHE_PREFIX}{state}"
    stored = cache.get(key)
    cache.delete(key)
    if stored != provider:
        raise OAuthStateError("invalid_state")


def _exchange_code(provider: str, code: str) -> dict:
    client_id, client_secret = _credentials(provider)
    response = requests.post(
        PROVIDERS[provider]['token_url'],
        data={
            'grant_type': 'authorization_code',
            'code': code,
            'client_id': client_id,
            'client_secret': client_secret,
            'redirect_uri': get_redirect_uri(provider),
        },
        headers={'Accept': 'application/json'},
        timeout=REQUEST_TIMEOUT,
    )
    response.raise_for_status()
    return response.json()


def fetch_profile(*, provider: str, code: str) -> dict:
    """
    Exchange the authorization code and return ``{sub, email, name}``.

    Raises:
        OAuthExchangeError: If the provider call fails or returns no email
    """
    try:
        tokens = _exchange_code(provider, code)
        if provider == OAuthProvider.GOOGLE:
            id_token = tokens.get('id_token')
            if not id_token:
                raise OAuthExchangeError("No ID token received from Google")
            # Received directly from Google's token endpoint over TLS
            claims = jwt.decode(id_token, options={'verify_signature': False})
        else:
            response = requests.get(
                PROVIDERS[provider]['userinfo_url'],
                headers={'Authorization': f"Bearer {tokens.get('access_token', '')}"},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            claims = response.json()
    except requests.exceptions.RequestException as e:
        logger.error("%s token exchange failed: %s", provider, e)
        raise OAuthExchangeError(f"{provider} token exchange failed")
    except jwt.PyJWTError as e:
        logger.error("Could not decode %s ID token: %s", provider, e)
        raise OAuthExchangeError("Invalid ID token")

    email = claims.get('email')
    if not email:
        raise OAuthExchangeError("Provider profile has no email")

    return {
        'sub': claims.get('sub', ''),
        'email': email,
        'name': claims.get('name') or email.split('@')[0],
    }


@transaction.atomic
def get_or_create_oauth_user(*, provider: str, profile: dict) -> User:
    """Link the provider identity to the account with the same email."""
    user = User.objects.select_for_update().filter(email__iexact=profile['email']).first()
    if user is None:
        user = User.objects.create_user(
            email=profile['email'],
            display_name=profile['name'][:100],
            email_verified=True,
            oauth_provider=provider,
            oauth_subject=profile['sub'],
        )
        logger.info("Created user %s via %s sign-in", user.id, provider)
        return user

    if not user.oauth_subject:
        user.oauth_provider = provider
        user.oauth_subject = profile['sub']
    user.email_verified = True
    user.save(update_fields=['oauth_provider', 'oauth_subject', 'email_verified', 'updated_at'])
    return user


def complete_oauth_login(*, provider: str, code: str, state: str) -> User:
    """Run the whole callback: state check, code exchange and user lookup."""
    consume_state(provider=provider, state=state)
    if not code:
        raise OAuthStateError("no_code")
    profile = fetch_profile(provider=provider, code=code)
    return get_or_create_oauth_user(provider=provider, profile=profile)
