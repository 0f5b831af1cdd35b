import hashlib
import hmac
import json

import pytest
from django.urls import reverse

from apps.events.tests.conftest import (  # noqa: F401
    api_client,
    organiser_user,
    attendee_user,
    active_organiser,
    free_event,
    paid_event,
    draft_paid_event,
    paystack,
    attendees,
)


def sign(body: bytes, secret: str = 'sk_test_secret') -> str:
    return hmac.new(secret.encode('utf-8'), body, hashlib.sha512).hexdigest()


@pytest.fixture
def post_webhook(api_client):
    """POST a correctly signed webhook body."""
    def _post(payload):
        body = json.dumps(payload).encode('utf-8')
        return api_client.generic(
            'POST',
            reverse('payments:paystack-webhook'),
            body,
            content_type='application/json',
            HTTP_X_PAYSTACK_SIGNATURE=sign(body),
        )
    return _post
