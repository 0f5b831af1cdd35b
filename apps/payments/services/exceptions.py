"""Domain-specific exceptions for payment services."""


class PaymentsServiceError(Exception):
    """Base exception for payment services."""
    pass


class PaystackError(PaymentsServiceError):
    """Raised when a Paystack API call fails or is rejected."""
    pass


class PaystackNotConfiguredError(PaystackError):
    """Raised when no Paystack secret key is configured."""
    pass

