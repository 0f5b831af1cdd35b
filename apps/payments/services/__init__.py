"""Services for payment provider integration."""

from .exceptions import (
    PaymentsServiceError,
    PaystackError,
    PaystackNotConfiguredError,
)
from .paystack import (
    PaystackClient,
    VerificationStatus,
    get_paystack_client,
    get_callback_url,
    generate_reference,
    split_payment_params,
    to_minor_units,
    verify_webhook_signature,
)

__all__ = [
    # Exceptions
    'PaymentsServiceError',
    'PaystackError',
    'PaystackNotConfiguredError',
    # Paystack
    'PaystackClient',
    'VerificationStatus',
    'get_paystack_client',
    'get_callback_url',
    'generate_reference',
    'split_payment_params',
    'to_minor_units',
    'verify_webhook_signature',
]
