"""
Paystack REST API integration.

Amounts sent to and received from Paystack are in the currency's minor unit
(cents for ZAR).
"""

import hashlib
import hmac
import json
import logging
import secrets
import time
from decimal import Decimal, ROUND_HALF_UP

import requests
from django.conf import settings

from .exceptions import PaystackError, PaystackNotConfiguredError

logger = logging.getLogger(__name__)


class VerificationStatus:
    SUCCESS = 'success'
    PENDING = 'pending'
    ABANDONED = 'abandoned'
    FAILED = 'failed'
    ERROR = 'error'


FAILED_STATUSES = {'failed', 'reversed', 'cancelled'}


def to_minor_units(amount) -> int:
    """Convert a major-unit Decimal amount (e.g. 150.50) to cents."""
    return int((Decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def generate_reference(prefix: str, object_id) -> str:
    """Reference of the form ``<prefix>_<8 id chars>_<unix ms>_<6 random>``."""
    short_id = str(object_id).replace('-', '')[:8]
    return f"{prefix}_{short_id}_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


def split_payment_params(organiser) -> dict:
    """
    Paystack split parameters routing ticket revenue to the organiser.

    Empty when split payments are disabled or the organiser has no active
    subaccount; the platform then collects the full amount.
    """
    if not settings.PAYSTACK_USE_SUBACCOUNTS or organiser is None:
        return {}
    if not organiser.can_receive_split_payments:
        return {}
    return {
        'subaccount': organiser.paystack_subaccount_code,
        'transaction_charge': settings.PAYSTACK_TRANSACTION_CHARGE,
    }


def map_transaction_status(data: dict) -> str:
    """Collapse a Paystack transaction status into a verification status."""
    paystack_status = (data.get('status') or '').lower()
    if paystack_status == 'success':
        if (data.get('amount') or 0) > 0:
            return VerificationStatus.SUCCESS
        return VerificationStatus.FAILED
    if paystack_status == 'abandoned':
        return VerificationStatus.ABANDONED
    if paystack_status in FAILED_STATUSES:
        return VerificationStatus.FAILED
    # 'pending', 'ongoing', 'processing', 'queued' and anything new
    return VerificationStatus.PENDING


def parse_metadata(data: dict) -> dict:
    """Paystack returns metadata as given, which may be a JSON string."""
    metadata = data.get('metadata') or {}
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except ValueError:
            return {}
    return metadata if isinstance(metadata, dict) else {}


class PaystackClient:
    """Thin wrapper over the Paystack transaction and subaccount endpoints."""

    def __init__(self, secret_key=None, base_url=None, timeout=None):
        self.secret_key = secret_key if secret_key is not None else settings.PAYSTACK_SECRET_KEY
        self.base_url = (base_url or settings.PAYSTACK_BASE_URL).rstrip('/')
        self.timeout = timeout or settings.PAYSTACK_TIMEOUT

    def _headers(self):
        if not self.secret_key:
            raise PaystackNotConfiguredError("Paystack secret key is not configured")
        return {
            'Authorization': f'Bearer {self.secret_key}',
            'Content-Type': 'application/json',
        }

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Paystack %s %s failed: %s", method, path, e)
            raise PaystackError(f"Paystack request failed: {e}")
        except ValueError:
            raise PaystackError("Paystack returned an invalid response")

        if not body.get('status'):
            raise PaystackError(body.get('message') or 'Paystack rejected the request')
        return body.get('data') or {}

    def initialize_transaction(
        self,
        *,
        email: str,
        amount: int,
        reference: str,
        callback_url: str,
        metadata: dict,
        currency: str = None,
        subaccount: str = None,
        transaction_charge: int = None,
    ) -> dict:
        """
        Start a hosted checkout.

        Args:
            email: Payer's email
            amount: Amount in cents
            reference: Unique transaction reference
            callback_url: Where Paystack sends the payer afterwards
            metadata: Echoed back on verify and in webhooks
            subaccount: Organiser subaccount code for split payments
            transaction_charge: Flat platform fee in cents when splitting

        Returns:
            Paystack ``data`` with ``authorization_url``, ``access_code`` and ``reference``

        Raises:
            PaystackError: If the call fails or is rejected
        """
        payload = {
            'email': email,
            'amount': amount,
            'reference': reference,
            'callback_url': callback_url,
            'currency': currency or settings.PAYSTACK_CURRENCY,
            'metadata': metadata,
        }
        if subaccount:
            payload['subaccount'] = subaccount
            if transaction_charge is not None:
                payload['transaction_charge'] = transaction_charge

        data = self._request('POST', '/transaction/initialize', json=payload)
        logger.info("Initialized Paystack transaction %s for %s cents", reference, amount)
        return data

    def verify_transaction(self, reference: str) -> dict:
        """
        Verify a transaction by reference.

        Never raises for network problems: those come back with
        ``verified=False`` and status ``error`` so callers can retry later.

        Returns:
            dict with ``verified``, ``status``, ``amount``, ``reference``,
            ``metadata`` and the raw ``data``
        """
        try:
            data = self._request('GET', f'/transaction/verify/{reference}')
        except PaystackError as e:
            return {
                'verified': False,
                'status': VerificationStatus.ERROR,
                'amount': 0,
                'reference': reference,
                'metadata': {},
                'message': str(e),
                'data': {},
            }

        result_status = map_transaction_status(data)
        return {
            'verified': result_status == VerificationStatus.SUCCESS,
            'status': result_status,
            'amount': data.get('amount') or 0,
            'reference': data.get('reference') or reference,
            'metadata': parse_metadata(data),
            'message': data.get('gateway_response', ''),
            'data': data,
        }

    def create_subaccount(
        self,
        *,
        business_name: str,
        settlement_bank: str,
        account_number: str,
        percentage_charge: float,
        primary_contact_email: str = '',
    ) -> dict:
        """Create a settlement subaccount for an organiser."""
        payload = {
            'business_name': business_name,
            'settlement_bank': settlement_bank,
            'account_number': account_number,
            'percentage_charge': percentage_charge,
        }
        if primary_contact_email:
            payload['primary_contact_email'] = primary_contact_email
        return self._request('POST', '/subaccount', json=payload)


def verify_webhook_signature(payload: bytes, signature: str, secret_key: str = None) -> bool:
    """Check ``x-paystack-signature`` (HMAC-SHA512 of the raw body)."""
    secret_key = secret_key if secret_key is not None else settings.PAYSTACK_SECRET_KEY
    if not signature or not secret_key:
        return False
    expected = hmac.new(secret_key.encode('utf-8'), payload, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)


def get_paystack_client() -> PaystackClient:
    return PaystackClient()


def get_callback_url() -> str:
    """Where Paystack redirects the payer after checkout."""
    return f"{settings.PUBLIC_BASE_URL}/api/payments/paystack/callback/"
