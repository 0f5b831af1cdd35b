"""
Apple Wallet and Google Wallet passes for business cards.

Apple passes are ``.pkpass`` zip bundles whose ``manifest.json`` is signed
with the pass certificate (PKCS#7, detached). Google passes are a save URL
carrying an RS256 JWT signed with the service account key.
"""

import hashlib
import json
import logging
import os
import re
import time
import zipfile
from io import BytesIO

import jwt
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs7
from django.conf import settings
from PIL import Image

from apps.accounts.models import Plan
from ..models import Card, DEFAULT_COLOR_SCHEME
from .card_management import get_card
from .contact_sharing import save_contact_url
from .exceptions import WalletNotConfiguredError, WalletPassError

logger = logging.getLogger(__name__)

IOS = 'ios'
ANDROID = 'android'
PLATFORMS = (IOS, ANDROID)

PKPASS_CONTENT_TYPE = 'application/vnd.apple.pkpass'
GOOGLE_SAVE_URL = 'https://pay.google.com/gp/v/save/'

FOREGROUND_COLOR = '#FFFFFF'

# Apple requires icon.png; the @2x/@3x variants are used on retina screens
ICON_SIZES = {'icon.png': 29, 'icon@2x.png': 58, 'icon@3x.png': 87}


def detect_platform(user_agent: str) -> str:
    """Wallet platform for a device, ``ios`` unless it is an Android phone."""
    agent = (user_agent or '').lower()
    if 'iphone' in agent or 'ipad' in agent:
        return IOS
    if 'android' in agent:
        return ANDROID
    return IOS


def hex_to_rgb(color: str) -> str:
    value = (color or DEFAULT_COLOR_SCHEME).lstrip('#')
    red, green, blue = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return f'rgb({red}, {green}, {blue})'


def pass_template(card: Card, plan: str) -> dict:
    """
    Colours and branding for a pass.

    Premium and enterprise plans get the card's own colour scheme; free
    plans get the basic XS Card template.
    """
    if plan in (Plan.PREMIUM, Plan.ENTERPRISE):
        return {
            'id': 'premium',
            'background_color': card.color_scheme or DEFAULT_COLOR_SCHEME,
            'foreground_color': FOREGROUND_COLOR,
            'description': 'Premium Digital Business Card',
        }
    return {
        'id': 'basic',
        'background_color': DEFAULT_COLOR_SCHEME,
        'foreground_color': FOREGROUND_COLOR,
        'description': 'Digital Business Card',
    }


def _pass_fields(card: Card) -> dict:
    return {
        'header': [('company', 'Company', card.company)],
        'primary': [('name', 'Name', card.full_name or card.company)],
        'secondary': [
            ('position', 'Title', card.occupation or 'N/A'),
            ('email', 'Email', card.email or 'N/A'),
        ],
        'auxiliary': [('phone', 'Phone', card.phone or 'N/A')],
    }


def build_pass_json(*, card: Card, user_id, index: int, template: dict) -> dict:
    """The ``pass.json`` of an Apple generic pass."""
    fields = _pass_fields(card)
    url = save_contact_url(user_id, index)

    def _as_pass_fields(items):
        return [{'key': key, 'label': label, 'value': value} for key, label, value in items]

    return {
        'formatVersion': 1,
        'passTypeIdentifier': settings.APPLE_PASS_TYPE_IDENTIFIER or 'pass.com.xscard.businesscard',
        'teamIdentifier': settings.APPLE_TEAM_IDENTIFIER or 'MOCKTEAMID',
        'serialNumber': f'{user_id}-{index}',
        'organizationName': 'XS Card',
        'description': template['description'],
        'logoText': 'XS Card',
        'foregroundColor': hex_to_rgb(template['foreground_color']),
        'backgroundColor': hex_to_rgb(template['background_color']),
        'labelColor': hex_to_rgb(template['foreground_color']),
        'generic': {
            'headerFields': _as_pass_fields(fields['header']),
            'primaryFields': _as_pass_fields(fields['primary']),
            'secondaryFields': _as_pass_fields(fields['secondary']),
            'auxiliaryFields': _as_pass_fields(fields['auxiliary']),
        },
        'barcodes': [{
            'message': url,
            'format': 'PKBarcodeFormatQR',
            'messageEncoding': 'iso-8859-1',
            'altText': 'Scan to save contact',
        }],
    }


def _icon_png(color: str, size: int) -> bytes:
    buffer = BytesIO()
    Image.new('RGB', (size, size), color).save(buffer, format='PNG')
    return buffer.getvalue()


def apple_configured() -> bool:
    paths = [settings.APPLE_PASS_CERT_PATH, settings.APPLE_PASS_KEY_PATH, settings.APPLE_WWDR_CERT_PATH]
    return bool(
        settings.APPLE_PASS_TYPE_IDENTIFIER
        and settings.APPLE_TEAM_IDENTIFIER
        and all(path and os.path.exists(path) for path in paths)
    )


def google_configured() -> bool:
    return bool(
        settings.GOOGLE_WALLET_ISSUER_ID
        and settings.GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL
        and settings.GOOGLE_WALLET_PRIVATE_KEY
    )


def _load_certificate(path: str):
    with open(path, 'rb') as f:
        data = f.read()
    # Apple ships the WWDR certificate as DER
    if data.lstrip().startswith(b'-----BEGIN'):
        return x509.load_pem_x509_certificate(data)
    return x509.load_der_x509_certificate(data)


def sign_manifest(manifest: bytes) -> bytes:
    """
    Detached PKCS#7 signature of ``manifest.json``.

    Raises:
        WalletPassError: If the certificates cannot be loaded or used
    """
    password = settings.APPLE_PASS_KEY_PASSWORD.encode() if settings.APPLE_PASS_KEY_PASSWORD else None
    try:
        certificate = _load_certificate(settings.APPLE_PASS_CERT_PATH)
        wwdr = _load_certificate(settings.APPLE_WWDR_CERT_PATH)
        with open(settings.APPLE_PASS_KEY_PATH, 'rb') as f:
            key = serialization.load_pem_private_key(f.read(), password=password)

        return (
            pkcs7.PKCS7SignatureBuilder()
            .set_data(manifest)
            .add_signer(certificate, key, hashes.SHA256())
            .add_certificate(wwdr)
            .sign(
                serialization.Encoding.DER,
                [pkcs7.PKCS7Options.DetachedSignature, pkcs7.PKCS7Options.Binary],
            )
        )
    except (OSError, ValueError, TypeError) as e:
        logger.error("Signing Apple Wallet pass failed: %s", e)
        raise WalletPassError(f"Could not sign Apple Wallet pass: {e}")


def build_pkpass(pass_json: dict, background_color: str, signed: bool = True) -> bytes:
    """
    Zip ``pass.json``, icons and the manifest into a ``.pkpass`` bundle.

    Unsigned bundles (mock mode) carry no ``signature`` file.
    """
    files = {'pass.json': json.dumps(pass_json, indent=2).encode('utf-8')}
    for name, size in ICON_SIZES.items():
        files[name] = _icon_png(background_color, size)

    manifest = json.dumps(
        {name: hashlib.sha1(content).hexdigest() for name, content in files.items()},
        indent=2,
    ).encode('utf-8')
    files['manifest.json'] = manifest
    if signed:
        files['signature'] = sign_manifest(manifest)

    buffer = BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as bundle:
        for name, content in files.items():
            bundle.writestr(name, content)
    return buffer.getvalue()


def _object_id(user_id, index: int) -> str:
    suffix = re.sub(r'[^\w.-]', '_', f'{user_id}_{index}')
    return f'{settings.GOOGLE_WALLET_ISSUER_ID or "mock"}.{suffix}'


def build_generic_object(*, card: Card, user_id, index: int, template: dict) -> dict:
    """Google Wallet ``genericObject`` for a card."""
    issuer_id = settings.GOOGLE_WALLET_ISSUER_ID or 'mock'
    fields = _pass_fields(card)

    def _localized(value):
        return {'defaultValue': {'language': 'en-US', 'value': value}}

    return {
        'id': _object_id(user_id, index),
        'classId': f'{issuer_id}.{settings.GOOGLE_WALLET_CLASS_SUFFIX}',
        'genericType': 'GENERIC_TYPE_UNSPECIFIED',
        'hexBackgroundColor': template['background_color'],
        'cardTitle': _localized('XS Card'),
        'header': _localized(card.full_name or card.company),
        'subheader': _localized(card.occupation or card.company),
        'textModulesData': [
            {'id': key, 'header': label, 'body': value}
            for key, label, value in fields['header'] + fields['secondary'] + fields['auxiliary']
        ],
        'barcode': {
            'type': 'QR_CODE',
            'value': save_contact_url(user_id, index),
            'alternateText': 'Scan to save contact',
        },
    }


def google_save_url(generic_object: dict) -> str:
    """
    Sign a save-to-wallet JWT for ``generic_object``.

    Raises:
        WalletPassError: If the service account key cannot sign
    """
    claims = {
        'iss': settings.GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL,
        'aud': 'google',
        'typ': 'savetoandroidpay',
        'iat': int(time.time()),
        'origins': [],
        'payload': {'genericObjects': [generic_object]},
    }
    try:
        token = jwt.encode(claims, settings.GOOGLE_WALLET_PRIVATE_KEY, algorithm='RS256')
    except (ValueError, TypeError, jwt.PyJWTError) as e:
        logger.error("Signing Google Wallet JWT failed: %s", e)
        raise WalletPassError(f"Could not sign Google Wallet pass: {e}")
    return f'{GOOGLE_SAVE_URL}{token}'


def generate_wallet_pass(*, user, index: int, platform: str) -> dict:
    """
    Build a wallet pass for the caller's card at ``index``.

    Returns:
        dict with ``platform`` and ``mock``. iOS results carry ``content``
        (the pkpass bytes), ``content_type`` and ``filename``; Android
        results carry ``save_url``, or the unsigned ``object`` in mock mode.

    Raises:
        CardNotFoundError: If the index is out of range
        WalletNotConfiguredError: If the platform has no credentials
        WalletPassError: If signing fails
    """
    card = get_card(user_id=user.id, index=index)
    template = pass_template(card, user.plan)
    mock = settings.WALLET_MOCK_MODE

    if platform == ANDROID:
        generic_object = build_generic_object(card=card, user_id=user.id, index=index, template=template)
        if mock:
            logger.info("Mock Google Wallet pass for card %s", card.id)
            return {'platform': ANDROID, 'mock': True, 'object': generic_object}
        if not google_configured():
            raise WalletNotConfiguredError("Google Wallet is not configured")
        logger.info("Google Wallet pass issued for card %s", card.id)
        return {'platform': ANDROID, 'mock': False, 'save_url': google_save_url(generic_object)}

    if not mock and not apple_configured():
        raise WalletNotConfiguredError("Apple Wallet is not configured")

    pass_json = build_pass_json(card=card, user_id=user.id, index=index, template=template)
    content = build_pkpass(pass_json, template['background_color'], signed=not mock)
    logger.info("%s Apple Wallet pass issued for card %s", 'Mock' if mock else 'Signed', card.id)

    filename = '_'.join(filter(None, [card.name, card.surname])) or 'card'
    return {
        'platform': IOS,
        'mock': mock,
        'content': content,
        'content_type': PKPASS_CONTENT_TYPE,
        'filename': f'{filename}_{index}.pkpass',
    }


def preview_wallet_pass(*, user, index: int) -> dict:
    """Field layout, colours and barcode of the pass without building it."""
    card = get_card(user_id=user.id, index=index)
    template = pass_template(card, user.plan)
    fields = _pass_fields(card)

    return {
        'mock_mode': settings.WALLET_MOCK_MODE,
        'plan': user.plan,
        'template': template,
        'fields': [
            {'key': key, 'label': label, 'value': value}
            for group in ('header', 'primary', 'secondary', 'auxiliary')
            for key, label, value in fields[group]
        ],
        'barcode': {'type': 'QR_CODE', 'value': save_contact_url(user.id, index)},
        'platforms': {IOS: apple_configured(), ANDROID: google_configured()},
    }
