"""
Applying RevenueCat webhook events and manual syncs.

Every change goes through apply_subscription_state(), which updates the
user, their Subscription and the audit log in one transaction.
"""

import hmac
import logging
from datetime import datetime, timezone as dt_timezone
from uuid import UUID

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import Plan
from apps.subscriptions.models import (
    LogVerification,
    Subscription,
    SubscriptionLog,
    SubscriptionStatus,
)
from .exceptions import InvalidWebhookPayloadError, SubscriberNotFoundError
from .revenuecat import entitlement_state, get_revenuecat_client

User = get_user_model()
logger = logging.getLogger(__name__)


class EventType:
    INITIAL_PURCHASE = 'INITIAL_PURCHASE'
    RENEWAL = 'RENEWAL'
    PRODUCT_CHANGE = 'PRODUCT_CHANGE'
    UNCANCELLATION = 'UNCANCELLATION'
    CANCELLATION = 'CANCELLATION'
    EXPIRATION = 'EXPIRATION'
    BILLING_ISSUE = 'BILLING_ISSUE'
    MANUAL_SYNC = 'MANUAL_SYNC'


# Events that grant premium and so must be confirmed with RevenueCat first
VERIFIED_EVENTS = {
    EventType.INITIAL_PURCHASE,
    EventType.RENEWAL,
    EventType.PRODUCT_CHANGE,
    EventType.UNCANCELLATION,
}


class Outcome:
    PROCESSED = 'processed'
    UNVERIFIED = 'unverified'
    LOGGED = 'logged'
    DUPLICATE = 'duplicate'


DETAIL_FIELDS = (
    'product_id', 'entitlement_id', 'store', 'environment', 'period_type',
    'purchased_at', 'expires_at', 'will_renew', 'billing_issue_detected_at',
)


def verify_webhook_authorization(header: str) -> bool:
    """Check the ``Authorization`` header when a webhook token is configured."""
    token = settings.REVENUECAT_WEBHOOK_AUTH_TOKEN
    if not token:
        return True
    return hmac.compare_digest(header or '', f'Bearer {token}')


def parse_webhook_event(body) -> dict:
    """
    Extract the ``event`` object of a webhook body.

    Raises:
        InvalidWebhookPayloadError: If the type or app user id is missing
    """
    event = body.get('event') if isinstance(body, dict) else None
    if not isinstance(event, dict):
        raise InvalidWebhookPayloadError("Webhook body has no event")
    if not event.get('type'):
        raise InvalidWebhookPayloadError("Webhook event has no type")
    if not (event.get('app_user_id') or event.get('original_app_user_id')):
        raise InvalidWebhookPayloadError("Webhook event has no app_user_id")
    return event


def find_subscriber(app_user_id: str):
    """
    User behind a RevenueCat app user id.

    The app logs in to RevenueCat with the user's id; a stored
    ``revenuecat_app_user_id`` takes precedence.
    """
    user = User.objects.filter(revenuecat_app_user_id=app_user_id).first()
    if user is not None:
        return user
    try:
        user_id = UUID(str(app_user_id))
    except ValueError:
        raise SubscriberNotFoundError(f"No user for app user id {app_user_id}")
    user = User.objects.filter(id=user_id).first()
    if user is None:
        raise SubscriberNotFoundError(f"No user for app user id {app_user_id}")
    return user


def _from_ms(value):
    if not value:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=dt_timezone.utc)


def _event_details(event: dict) -> dict:
    entitlement_ids = event.get('entitlement_ids') or []
    return {
        'product_id': event.get('product_id') or '',
        'entitlement_id': entitlement_ids[0] if entitlement_ids else (event.get('entitlement_id') or ''),
        'store': event.get('store') or '',
        'environment': (event.get('environment') or '').lower(),
        'period_type': (event.get('period_type') or '').lower(),
        'purchased_at': _from_ms(event.get('purchased_at_ms')),
        'expires_at': _from_ms(event.get('expiration_at_ms')),
    }


def _log_data(details: dict) -> dict:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in details.items()
    }


@transaction.atomic
def apply_subscription_state(
    *,
    user_id,
    app_user_id: str,
    event_type: str,
    status: str,
    plan: str,
    details: dict,
    verification: str,
    event_id: str = '',
) -> Subscription:
    """
    Write a subscription state change.

    Enterprise plans are assigned by staff and are never changed here.
    """
    user = User.objects.select_for_update().get(id=user_id)
    if user.plan == Plan.ENTERPRISE:
        plan = Plan.ENTERPRISE

    subscription, _ = Subscription.objects.select_for_update().get_or_create(user=user)
    subscription.status = status
    subscription.plan = plan
    subscription.app_user_id = app_user_id
    for field in DETAIL_FIELDS:
        if details.get(field) is not None:
            setattr(subscription, field, details[field])
    subscription.last_event_type = event_type
    subscription.last_synced_at = timezone.now()
    subscription.save()

    user.plan = plan
    user.subscription_status = status
    if not user.revenuecat_app_user_id:
        user.revenuecat_app_user_id = app_user_id
    user.save(update_fields=['plan', 'subscription_status', 'revenuecat_app_user_id', 'updated_at'])

    SubscriptionLog.objects.create(
        user=user,
        event_type=event_type,
        event_id=event_id,
        verification_status=verification,
        status=status,
        plan=plan,
        event_data=_log_data(details),
    )

    logger.info("Subscription of user %s now %s/%s after %s", user.id, plan, status, event_type)
    return subscription


def _log_only(user, event_type, event_id, verification, detail, details):
    SubscriptionLog.objects.create(
        user=user,
        event_type=event_type,
        event_id=event_id,
        verification_status=verification,
        detail=detail[:255],
        event_data=_log_data(details),
    )


def process_revenuecat_event(body) -> dict:
    """
    Apply one RevenueCat webhook delivery.

    Returns:
        dict with ``event_type`` and ``outcome``; a processed event also
        carries the resulting ``status`` and ``plan``

    Raises:
        InvalidWebhookPayloadError: If the body is malformed
        SubscriberNotFoundError: If the app user id matches no user
        RevenueCatError: If a purchase could not be verified because
            RevenueCat was unreachable
    """
    event = parse_webhook_event(body)
    event_type = event['type']
    app_user_id = str(event.get('app_user_id') or event.get('original_app_user_id'))
    event_id = str(event.get('id') or '')
    user = find_subscriber(app_user_id)

    if event_id and (
        SubscriptionLog.objects
        .filter(event_id=event_id)
        .exclude(verification_status=LogVerification.UNVERIFIED)
        .exists()
    ):
        logger.info("RevenueCat event %s already processed", event_id)
        return {'event_type': event_type, 'outcome': Outcome.DUPLICATE}

    details = _event_details(event)

    if event_type in VERIFIED_EVENTS:
        subscriber = get_revenuecat_client().get_subscriber(app_user_id)
        state = entitlement_state(subscriber)
        if not state['is_active']:
            logger.warning("RevenueCat %s for %s not backed by an active entitlement (%s)",
                           event_type, app_user_id, state['reason'])
            _log_only(user, event_type, event_id, LogVerification.UNVERIFIED, state['reason'], details)
            return {'event_type': event_type, 'outcome': Outcome.UNVERIFIED}
        details.update({key: value for key, value in state.items() if key in DETAIL_FIELDS})
        status, plan, verification = SubscriptionStatus.ACTIVE, Plan.PREMIUM, LogVerification.VERIFIED

    elif event_type == EventType.CANCELLATION:
        # Access continues until the paid period expires
        details['will_renew'] = False
        status, plan, verification = SubscriptionStatus.CANCELLED, user.plan, LogVerification.NOT_REQUIRED

    elif event_type == EventType.EXPIRATION:
        details['will_renew'] = False
        status, plan, verification = SubscriptionStatus.EXPIRED, Plan.FREE, LogVerification.NOT_REQUIRED

    elif event_type == EventType.BILLING_ISSUE:
        details['billing_issue_detected_at'] = timezone.now()
        status, plan, verification = SubscriptionStatus.BILLING_ISSUE, user.plan, LogVerification.NOT_REQUIRED

    else:
        logger.info("RevenueCat event %s for %s logged only", event_type, app_user_id)
        _log_only(user, event_type, event_id, LogVerification.NOT_REQUIRED, 'Unhandled event type', details)
        return {'event_type': event_type, 'outcome': Outcome.LOGGED}

    subscription = apply_subscription_state(
        user_id=user.id,
        app_user_id=app_user_id,
        event_type=event_type,
        status=status,
        plan=plan,
        details=details,
        verification=verification,
        event_id=event_id,
    )
    return {
        'event_type': event_type,
        'outcome': Outcome.PROCESSED,
        'status': subscription.status,
        'plan': subscription.plan,
    }


def sync_subscription(*, user) -> Subscription:
    """
    Re-read the user's entitlement from RevenueCat and store it.

    Raises:
        RevenueCatError: If RevenueCat is unreachable
    """
    app_user_id = user.revenuecat_app_user_id or str(user.id)
    state = entitlement_state(get_revenuecat_client().get_subscriber(app_user_id))

    if state['is_active']:
        status, plan = SubscriptionStatus.ACTIVE, Plan.PREMIUM
    elif state['reason'] == 'EXPIRED':
        status, plan = SubscriptionStatus.EXPIRED, Plan.FREE
    else:
        status, plan = SubscriptionStatus.INACTIVE, Plan.FREE

    return apply_subscription_state(
        user_id=user.id,
        app_user_id=app_user_id,
        event_type=EventType.MANUAL_SYNC,
        status=status,
        plan=plan,
        details={key: value for key, value in state.items() if key in DETAIL_FIELDS},
        verification=LogVerification.VERIFIED,
    )


def get_subscription_status(*, user) -> dict:
    subscription = Subscription.objects.filter(user=user).first()
    return {
        'plan': user.plan,
        'subscription_status': user.subscription_status or SubscriptionStatus.INACTIVE,
        'is_premium': user.is_premium,
        'subscription': subscription,
    }
