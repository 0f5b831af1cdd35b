import pytest
from datetime import timedelta
from unittest.mock import patch, MagicMock

import requests
from django.test import override_settings

from apps.accounts.models import Plan
from apps.subscriptions.models import (
    LogVerification,
    Subscription,
    SubscriptionLog,
    SubscriptionStatus,
)
from apps.subscriptions.services import (
    RevenueCatClient,
    entitlement_state,
    verify_webhook_authorization,
    parse_webhook_event,
    find_subscriber,
    process_revenuecat_event,
    sync_subscription,
    get_subscription_status,
    Outcome,
    InvalidWebhookPayloadError,
    SubscriberNotFoundError,
    RevenueCatError,
    RevenueCatNotConfiguredError,
)
from apps.subscriptions.tests.conftest import make_event, make_subscriber


class TestRevenueCatClient:
    """Tests for the subscriber lookup."""

    @patch('apps.subscriptions.services.revenuecat.requests.get')
    def test_get_subscriber(self, mock_get):
        response = MagicMock()
        response.json.return_value = {'subscriber': {'entitlements': {}}}
        mock_get.return_value = response

        client = RevenueCatClient(secret_key='rc_key', base_url='https://rc.test/v1/', timeout=5)
        subscriber = client.get_subscriber('user 1')

        assert subscriber == {'entitlements': {}}
        args, kwargs = mock_get.call_args
        assert args[0] == 'https://rc.test/v1/subscribers/user%201'
        assert kwargs['headers']['Authorization'] == 'Bearer rc_key'
        assert kwargs['timeout'] == 5

    @patch('apps.subscriptions.services.revenuecat.requests.get')
    def test_network_error(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError('down')

        with pytest.raises(RevenueCatError):
            RevenueCatClient(secret_key='rc_key').get_subscriber('abc')

    def test_missing_key(self):
        with pytest.raises(RevenueCatNotConfiguredError):
            RevenueCatClient(secret_key='').get_subscriber('abc')


class TestEntitlementState:
    """Tests for reading the premium entitlement."""

    def test_active(self):
        state = entitlement_state(make_subscriber(sandbox=True))

        assert state['is_active'] is True
        assert state['product_id'] == 'xs_premium_monthly'
        assert state['store'] == 'app_store'
        assert state['environment'] == 'sandbox'
        assert state['will_renew'] is True
        assert 'reason' not in state

    def test_expired(self):
        state = entitlement_state(make_subscriber(expires_in=timedelta(days=-1)))

        assert state['is_active'] is False
        assert state['reason'] == 'EXPIRED'

    def test_missing_entitlement(self):
        state = entitlement_state(make_subscriber(entitlement=None))

        assert state['is_active'] is False
        assert state['reason'] == 'NO_ENTITLEMENT'

    def test_other_entitlement_ignored(self):
        state = entitlement_state(make_subscriber(entitlement='pro'))

        assert state['is_active'] is False

    def test_unsubscribed_will_not_renew(self):
        state = entitlement_state(make_subscriber(unsubscribed=True))

        assert state['is_active'] is True
        assert state['will_renew'] is False


class TestWebhookParsing:
    """Tests for webhook authorization and body checks."""

    def test_authorization(self):
        assert verify_webhook_authorization('Bearer rc_webhook_token')
        assert not verify_webhook_authorization('Bearer wrong')
        assert not verify_webhook_authorization('')

    @override_settings(REVENUECAT_WEBHOOK_AUTH_TOKEN='')
    def test_no_token_configured(self):
        assert verify_webhook_authorization('')

    def test_missing_event(self):
        with pytest.raises(InvalidWebhookPayloadError):
            parse_webhook_event({'api_version': '1.0'})

    def test_missing_type(self):
        with pytest.raises(InvalidWebhookPayloadError):
            parse_webhook_event({'event': {'app_user_id': 'abc'}})

    def test_missing_user(self):
        with pytest.raises(InvalidWebhookPayloadError):
            parse_webhook_event({'event': {'type': 'RENEWAL'}})


@pytest.mark.django_db
class TestFindSubscriber:

    def test_by_user_id(self, subscriber_user):
        assert find_subscriber(str(subscriber_user.id)) == subscriber_user

    def test_by_stored_app_user_id(self, subscriber_user):
        subscriber_user.revenuecat_app_user_id = '$RCAnonymousID:abc'
        subscriber_user.save()

        assert find_subscriber('$RCAnonymousID:abc') == subscriber_user

    def test_unknown(self, subscriber_user):
        with pytest.raises(SubscriberNotFoundError):
            find_subscriber('not-a-user')

    def test_unknown_uuid(self, subscriber_user):
        with pytest.raises(SubscriberNotFoundError):
            find_subscriber('00000000-0000-0000-0000-000000000000')


@pytest.mark.django_db
class TestProcessEvent:
    """Tests for applying webhook events."""

    def test_initial_purchase_grants_premium(self, subscriber_user, revenuecat):
        result = process_revenuecat_event(make_event('INITIAL_PURCHASE', subscriber_user.id))

        assert result['outcome'] == Outcome.PROCESSED
        assert result['plan'] == Plan.PREMIUM
        subscriber_user.refresh_from_db()
        assert subscriber_user.plan == Plan.PREMIUM
        assert subscriber_user.subscription_status == SubscriptionStatus.ACTIVE
        assert subscriber_user.revenuecat_app_user_id == str(subscriber_user.id)

        subscription = Subscription.objects.get(user=subscriber_user)
        assert subscription.product_id == 'xs_premium_monthly'
        assert subscription.store == 'app_store'
        assert subscription.will_renew is True
        assert subscription.last_event_type == 'INITIAL_PURCHASE'

        log = SubscriptionLog.objects.get(user=subscriber_user)
        assert log.verification_status == LogVerification.VERIFIED
        assert log.event_id == 'evt_1'
        revenuecat.get_subscriber.assert_called_once_with(str(subscriber_user.id))

    def test_unverified_purchase_changes_nothing(self, subscriber_user, revenuecat):
        revenuecat.get_subscriber.return_value = make_subscriber(entitlement=None)

        result = process_revenuecat_event(make_event('RENEWAL', subscriber_user.id))

        assert result['outcome'] == Outcome.UNVERIFIED
        subscriber_user.refresh_from_db()
        assert subscriber_user.plan == Plan.FREE
        assert not Subscription.objects.filter(user=subscriber_user).exists()
        log = SubscriptionLog.objects.get(user=subscriber_user)
        assert log.verification_status == LogVerification.UNVERIFIED
        assert log.detail == 'NO_ENTITLEMENT'

    def test_unverified_event_can_be_retried(self, subscriber_user, revenuecat):
        revenuecat.get_subscriber.return_value = make_subscriber(entitlement=None)
        process_revenuecat_event(make_event('INITIAL_PURCHASE', subscriber_user.id))

        revenuecat.get_subscriber.return_value = make_subscriber()
        result = process_revenuecat_event(make_event('INITIAL_PURCHASE', subscriber_user.id))

        assert result['outcome'] == Outcome.PROCESSED
        subscriber_user.refresh_from_db()
        assert subscriber_user.plan == Plan.PREMIUM

    def test_duplicate_event(self, subscriber_user, revenuecat):
        body = make_event('INITIAL_PURCHASE', subscriber_user.id)
        process_revenuecat_event(body)

        result = process_revenuecat_event(body)

        assert result['outcome'] == Outcome.DUPLICATE
        assert SubscriptionLog.objects.filter(user=subscriber_user).count() == 1
        assert revenuecat.get_subscriber.call_count == 1

    def test_revenuecat_unreachable(self, subscriber_user, revenuecat):
        revenuecat.get_subscriber.side_effect = RevenueCatError('down')

        with pytest.raises(RevenueCatError):
            process_revenuecat_event(make_event('RENEWAL', subscriber_user.id))

        subscriber_user.refresh_from_db()
        assert subscriber_user.plan == Plan.FREE
        assert not SubscriptionLog.objects.exists()

    def test_cancellation_keeps_access(self, subscriber_user, revenuecat):
        process_revenuecat_event(make_event('INITIAL_PURCHASE', subscriber_user.id))

        result = process_revenuecat_event(make_event('CANCELLATION', subscriber_user.id, event_id='evt_2'))

        assert result['status'] == SubscriptionStatus.CANCELLED
        subscriber_user.refresh_from_db()
        assert subscriber_user.plan == Plan.PREMIUM
        subscription = Subscription.objects.get(user=subscriber_user)
        assert subscription.will_renew is False
        assert subscription.is_active

    def test_expiration_downgrades(self, subscriber_user, revenuecat):
        process_revenuecat_event(make_event('INITIAL_PURCHASE', subscriber_user.id))

        result = process_revenuecat_event(make_event('EXPIRATION', subscriber_user.id, event_id='evt_2'))

        assert result['plan'] == Plan.FREE
        subscriber_user.refresh_from_db()
        assert subscriber_user.plan == Plan.FREE
        assert subscriber_user.subscription_status == SubscriptionStatus.EXPIRED
        assert revenuecat.get_subscriber.call_count == 1

    def test_billing_issue(self, subscriber_user, revenuecat):
        process_revenuecat_event(make_event('INITIAL_PURCHASE', subscriber_user.id))

        process_revenuecat_event(make_event('BILLING_ISSUE', subscriber_user.id, event_id='evt_2'))

        subscription = Subscription.objects.get(user=subscriber_user)
        assert subscription.status == SubscriptionStatus.BILLING_ISSUE
        assert subscription.billing_issue_detected_at is not None
        assert subscription.plan == Plan.PREMIUM

    def test_unhandled_event_logged(self, subscriber_user, revenuecat):
        result = process_revenuecat_event(make_event('TRANSFER', subscriber_user.id))

        assert result['outcome'] == Outcome.LOGGED
        assert SubscriptionLog.objects.get(user=subscriber_user).event_type == 'TRANSFER'
        revenuecat.get_subscriber.assert_not_called()

    def test_enterprise_plan_preserved(self, enterprise_user, revenuecat):
        process_revenuecat_event(make_event('EXPIRATION', enterprise_user.id))

        enterprise_user.refresh_from_db()
        assert enterprise_user.plan == Plan.ENTERPRISE
        assert enterprise_user.subscription_status == SubscriptionStatus.EXPIRED

    def test_unknown_user(self, subscriber_user, revenuecat):
        with pytest.raises(SubscriberNotFoundError):
            process_revenuecat_event(make_event('RENEWAL', 'nobody'))


@pytest.mark.django_db
class TestSyncSubscription:
    """Tests for the manual entitlement sync."""

    def test_active(self, subscriber_user, revenuecat):
        subscription = sync_subscription(user=subscriber_user)

        assert subscription.status == SubscriptionStatus.ACTIVE
        subscriber_user.refresh_from_db()
        assert subscriber_user.plan == Plan.PREMIUM
        log = SubscriptionLog.objects.get(user=subscriber_user)
        assert log.event_type == 'MANUAL_SYNC'

    def test_expired(self, subscriber_user, revenuecat):
        subscriber_user.plan = Plan.PREMIUM
        subscriber_user.save()
        revenuecat.get_subscriber.return_value = make_subscriber(expires_in=timedelta(days=-2))

        subscription = sync_subscription(user=subscriber_user)

        assert subscription.status == SubscriptionStatus.EXPIRED
        subscriber_user.refresh_from_db()
        assert subscriber_user.plan == Plan.FREE

    def test_never_subscribed(self, subscriber_user, revenuecat):
        revenuecat.get_subscriber.return_value = make_subscriber(entitlement=None)

        subscription = sync_subscription(user=subscriber_user)

        assert subscription.status == SubscriptionStatus.INACTIVE
        assert subscription.plan == Plan.FREE

    def test_uses_stored_app_user_id(self, subscriber_user, revenuecat):
        subscriber_user.revenuecat_app_user_id = 'rc_custom'
        subscriber_user.save()

        sync_subscription(user=subscriber_user)

        revenuecat.get_subscriber.assert_called_once_with('rc_custom')

    def test_status(self, subscriber_user, revenuecat):
        before = get_subscription_status(user=subscriber_user)
        assert before['is_premium'] is False
        assert before['subscription'] is None
        assert before['subscription_status'] == SubscriptionStatus.INACTIVE

        sync_subscription(user=subscriber_user)
        subscriber_user.refresh_from_db()
        after = get_subscription_status(user=subscriber_user)

        assert after['is_premium'] is True
        assert after['subscription'].status == SubscriptionStatus.ACTIVE
