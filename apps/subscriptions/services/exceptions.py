"""Domain-specific exceptions for subscription services."""


class SubscriptionsServiceError(Exception):
    """Base exception for subscription services."""
    pass


class RevenueCatError(SubscriptionsServiceError):
    """Raised when a RevenueCat API call fails."""
    pass


class RevenueCatNotConfiguredError(RevenueCatError):
    """Raised when no RevenueCat secret key is configured."""
    pass


class InvalidWebhookPayloadError(SubscriptionsServiceError):
    """Raised when a RevenueCat webhook body lacks the event type or user."""
    pass


class SubscriberNotFoundError(SubscriptionsServiceError):
    """Raised when a RevenueCat app user id matches no user."""
    pass
