"""
RevenueCat REST API integration.

Webhook bodies are never trusted for granting premium: purchases are
re-checked against the subscriber record before the plan changes.
"""

import logging
from datetime import timezone as dt_timezone
from urllib.parse import quote

import requests
from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .exceptions import RevenueCatError, RevenueCatNotConfiguredError

logger = logging.getLogger(__name__)


class RevenueCatClient:
    """Read access to RevenueCat subscriber records."""

    def __init__(self, secret_key=None, base_url=None, timeout=None):
        self.secret_key = secret_key if secret_key is not None else settings.REVENUECAT_SECRET_KEY
        self.base_url = (base_url or settings.REVENUECAT_API_URL).rstrip('/')
        self.timeout = timeout or settings.REVENUECAT_TIMEOUT

    def _headers(self):
        if not self.secret_key:
            raise RevenueCatNotConfiguredError("RevenueCat secret key is not configured")
        return {
            'Authorization': f'Bearer {self.secret_key}',
            'Accept': 'application/json',
            'X-Platform': 'server',
        }

    def get_subscriber(self, app_user_id: str) -> dict:
        """
        Fetch the subscriber record for ``app_user_id``.

        Returns:
            The ``subscriber`` object with its ``entitlements``

        Raises:
            RevenueCatError: If the call fails
        """
        url = f"{self.base_url}/subscribers/{quote(str(app_user_id), safe='')}"
        try:
            response = requests.get(url, headers=self._headers(), timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("RevenueCat subscriber lookup for %s failed: %s", app_user_id, e)
            raise RevenueCatError(f"RevenueCat request failed: {e}")
        except ValueError:
            raise RevenueCatError("RevenueCat returned an invalid response")

        return body.get('subscriber') or {}


def entitlement_state(subscriber: dict, entitlement_id: str = None, now=None) -> dict:
    """
    Whether ``entitlement_id`` is active on a subscriber record.

    Returns:
        dict with ``is_active`` and, when the entitlement exists, its
        product, dates, store and renewal details. Inactive results carry a
        ``reason`` of ``NO_ENTITLEMENT`` or ``EXPIRED``.
    """
    entitlement_id = entitlement_id or settings.REVENUECAT_ENTITLEMENT_ID
    now = now or timezone.now()
    entitlement = (subscriber.get('entitlements') or {}).get(entitlement_id)
    if not entitlement:
        return {'is_active': False, 'reason': 'NO_ENTITLEMENT', 'entitlement_id': entitlement_id}

    product_id = entitlement.get('product_identifier') or ''
    product = (subscriber.get('subscriptions') or {}).get(product_id) or {}
    expires_at = _parse(entitlement.get('expires_date'))

    state = {
        'is_active': expires_at is None or expires_at > now,
        'entitlement_id': entitlement_id,
        'product_id': product_id,
        'purchased_at': _parse(entitlement.get('purchase_date')),
        'expires_at': expires_at,
        'store': product.get('store', ''),
        'period_type': product.get('period_type', ''),
        'environment': 'sandbox' if product.get('is_sandbox') else 'production',
        'will_renew': bool(product) and not product.get('unsubscribe_detected_at'),
    }
    if not state['is_active']:
        state['reason'] = 'EXPIRED'
    return state


def _parse(value):
    if not value:
        return None
    parsed = parse_datetime(value)
    if parsed is not None and timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def get_revenuecat_client() -> RevenueCatClient:
    return RevenueCatClient()
