"""Services for RevenueCat subscriptions."""

from .exceptions import (
    SubscriptionsServiceError,
    RevenueCatError,
    RevenueCatNotConfiguredError,
    InvalidWebhookPayloadError,
    SubscriberNotFoundError,
)
from .revenuecat import (
    RevenueCatClient,
    entitlement_state,
    get_revenuecat_client,
)
from .subscription_updates import (
    EventType,
    Outcome,
    verify_webhook_authorization,
    parse_webhook_event,
    find_subscriber,
    apply_subscription_state,
    process_revenuecat_event,
    sync_subscription,
    get_subscription_status,
)

__all__ = [
    # Exceptions
    'SubscriptionsServiceError',
    'RevenueCatError',
    'RevenueCatNotConfiguredError',
    'InvalidWebhookPayloadError',
    'SubscriberNotFoundError',
    # RevenueCat API
    'RevenueCatClient',
    'entitlement_state',
    'get_revenuecat_client',
    # Subscription updates
    'EventType',
    'Outcome',
    'verify_webhook_authorization',
    'parse_webhook_event',
    'find_subscriber',
    'apply_subscription_state',
    'process_revenuecat_event',
    'sync_subscription',
    'get_subscription_status',
]
