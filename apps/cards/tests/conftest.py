import pytest
from datetime import datetime, timedelta, timezone as dt_timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, Plan
from apps.cards.services import create_card


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
def owner(db):
    """Free-plan card owner."""
    return User.objects.create_user(
        email='owner@example.com',
        password='TestPass123!',
        display_name='Lerato Mokoena',
        email_verified=True,
    )


@pytest.fixture
def premium_owner(db):
    """Premium-plan card owner."""
    return User.objects.create_user(
        email='premium@example.com',
        password='TestPass123!',
        display_name='Premium Owner',
        plan=Plan.PREMIUM,
    )


@pytest.fixture
def owner_client(owner):
    return _client_for(owner)


@pytest.fixture
def premium_client(premium_owner):
    return _client_for(premium_owner)


def add_card(user, **overrides):
    fields = {
        'name': 'Lerato',
        'surname': 'Mokoena',
        'occupation': 'Product Designer',
        'company': 'Ubuntu Labs',
        'email': 'lerato@ubuntulabs.co.za',
        'phone': '+27825550101',
    }
    fields.update(overrides)
    return create_card(user=user, **fields)


@pytest.fixture
def owner_cards(owner):
    """Two cards for the free-plan owner."""
    return [
        add_card(owner),
        add_card(owner, company='Side Project', occupation='Founder'),
    ]


@pytest.fixture
def premium_cards(premium_owner):
    """Three cards for the premium owner."""
    return [
        add_card(premium_owner, company='Alpha', color_scheme='#FF5733'),
        add_card(premium_owner, company='Beta'),
        add_card(premium_owner, company='Gamma'),
    ]


def _rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _pem_key(key):
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


def _self_signed(key, common_name):
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(dt_timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )


@pytest.fixture
def apple_wallet(settings, tmp_path):
    """Self-signed pass certificate and WWDR certificate on disk."""
    pass_key = _rsa_key()
    wwdr_key = _rsa_key()

    cert_path = tmp_path / 'pass_cert.pem'
    key_path = tmp_path / 'pass_key.pem'
    wwdr_path = tmp_path / 'wwdr.cer'
    cert_path.write_bytes(_self_signed(pass_key, 'Pass Type ID').public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(_pem_key(pass_key))
    wwdr_path.write_bytes(_self_signed(wwdr_key, 'Apple WWDR').public_bytes(serialization.Encoding.DER))

    settings.WALLET_MOCK_MODE = False
    settings.APPLE_PASS_TYPE_IDENTIFIER = 'pass.com.xscard.test'
    settings.APPLE_TEAM_IDENTIFIER = 'TEAM123456'
    settings.APPLE_PASS_CERT_PATH = str(cert_path)
    settings.APPLE_PASS_KEY_PATH = str(key_path)
    settings.APPLE_PASS_KEY_PASSWORD = ''
    settings.APPLE_WWDR_CERT_PATH = str(wwdr_path)
    return settings


@pytest.fixture
def google_wallet(settings):
    """Service account key for signing save JWTs; returns its public key."""
    key = _rsa_key()
    settings.WALLET_MOCK_MODE = False
    settings.GOOGLE_WALLET_ISSUER_ID = '3388000000012345678'
    settings.GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL = 'wallet@xscard-test.iam.gserviceaccount.com'
    settings.GOOGLE_WALLET_PRIVATE_KEY = _pem_key(key).decode()
    return key.public_key()


@pytest.fixture
def wallet_unconfigured(settings):
    settings.WALLET_MOCK_MODE = False
    settings.APPLE_PASS_CERT_PATH = ''
    settings.APPLE_PASS_KEY_PATH = ''
    settings.APPLE_WWDR_CERT_PATH = ''
    settings.GOOGLE_WALLET_ISSUER_ID = ''
    settings.GOOGLE_WALLET_PRIVATE_KEY = ''
    return settings


@pytest.fixture
def wallet_mock_mode(settings):
    settings.WALLET_MOCK_MODE = True
    return settings
