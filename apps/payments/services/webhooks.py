"""
Paystack webhook and callback processing.

Both entry points re-verify the transaction with Paystack before acting and
then hand the reference to the events service that owns it: listing fees,
single registrations or bulk registrations.
"""

import logging

from django.db import transaction

from apps.events.models import PaymentStatus
from apps.events.services import (
    EventsServiceError,
    complete_event_publishing,
    fail_event_publishing,
    confirm_registration_payment,
    fail_registration_payment,
    confirm_bulk_payment,
    fail_bulk_registration,
)
from apps.payments.models import PaystackWebhookEvent, WebhookOutcome
from .paystack import VerificationStatus, get_paystack_client, parse_metadata

logger = logging.getLogger(__name__)


class PaymentType:
    EVENT_PUBLISHING = 'event_publishing'
    EVENT_REGISTRATION = 'event_registration'
    BULK_REGISTRATION = 'bulk_registration'


REFERENCE_PREFIXES = {
    'evt_': PaymentType.EVENT_PUBLISHING,
    'reg_': PaymentType.EVENT_REGISTRATION,
    'BULK_': PaymentType.BULK_REGISTRATION,
}


def _fail_publishing(reference, status):
    return fail_event_publishing(reference=reference)


def _fail_registration(reference, status):
    return fail_registration_payment(reference=reference, status=status)


def _fail_bulk(reference, status):
    reason = 'Payment abandoned' if status == PaymentStatus.ABANDONED else 'Payment failed'
    return fail_bulk_registration(reference=reference, reason=reason, status=status)


SUCCESS_HANDLERS = {
    PaymentType.EVENT_PUBLISHING: complete_event_publishing,
    PaymentType.EVENT_REGISTRATION: confirm_registration_payment,
    PaymentType.BULK_REGISTRATION: confirm_bulk_payment,
}

FAILURE_HANDLERS = {
    PaymentType.EVENT_PUBLISHING: _fail_publishing,
    PaymentType.EVENT_REGISTRATION: _fail_registration,
    PaymentType.BULK_REGISTRATION: _fail_bulk,
}


def resolve_payment_type(reference: str, metadata: dict) -> str | None:
    """Payment type from metadata, falling back to the reference prefix."""
    payment_type = metadata.get('type') or metadata.get('payment_type')
    if payment_type in SUCCESS_HANDLERS:
        return payment_type
    for prefix, prefixed_type in REFERENCE_PREFIXES.items():
        if reference.startswith(prefix):
            return prefixed_type
    return None


def _payment_status_for(verification_status: str) -> str:
    if verification_status == VerificationStatus.ABANDONED:
        return PaymentStatus.ABANDONED
    return PaymentStatus.FAILED


def apply_verification(reference: str, payment_type: str, verification: dict) -> str:
    """
    Route a verification result to the owning service.

    Returns:
        The resulting webhook outcome
    """
    if verification['verified']:
        SUCCESS_HANDLERS[payment_type](reference=reference, verification=verification)
        logger.info("Payment %s (%s) confirmed", reference, payment_type)
        return WebhookOutcome.PROCESSED

    if verification['status'] in (VerificationStatus.FAILED, VerificationStatus.ABANDONED):
        FAILURE_HANDLERS[payment_type](reference, _payment_status_for(verification['status']))
        logger.info("Payment %s (%s) %s", reference, payment_type, verification['status'])
        return WebhookOutcome.PROCESSED

    logger.info("Payment %s (%s) still %s", reference, payment_type, verification['status'])
    return WebhookOutcome.IGNORED


def process_webhook(payload: dict) -> PaystackWebhookEvent:
    """
    Handle a signed Paystack webhook body.

    Every delivery is recorded. Processing errors are logged on the record
    and never raised, so Paystack always gets a 200 for a valid signature.
    """
    event_name = payload.get('event') or ''
    data = payload.get('data') or {}
    reference = data.get('reference') or ''
    payment_type = resolve_payment_type(reference, parse_metadata(data)) if reference else None

    record = PaystackWebhookEvent.objects.create(
        event=event_name,
        reference=reference,
        payment_type=payment_type or '',
        raw_data=payload,
    )
    logger.info("Paystack webhook %s for %s", event_name, reference or '-')

    if event_name not in ('charge.success', 'charge.failed'):
        return _finish(record, WebhookOutcome.IGNORED, 'Unhandled event type')
    if payment_type is None:
        return _finish(record, WebhookOutcome.IGNORED, 'Unknown payment type')

    try:
        if event_name == 'charge.success':
            verification = get_paystack_client().verify_transaction(reference)
            with transaction.atomic():
                outcome = apply_verification(reference, payment_type, verification)
            return _finish(record, outcome, verification['status'])

        with transaction.atomic():
            FAILURE_HANDLERS[payment_type](reference, PaymentStatus.FAILED)
        return _finish(record, WebhookOutcome.PROCESSED, 'charge failed')
    except EventsServiceError as e:
        logger.error("Paystack webhook %s for %s failed: %s", event_name, reference, e)
        return _finish(record, WebhookOutcome.FAILED, str(e))


def _finish(record: PaystackWebhookEvent, outcome: str, detail: str = '') -> PaystackWebhookEvent:
    record.outcome = outcome
    record.detail = (detail or '')[:255]
    record.save(update_fields=['outcome', 'detail'])
    return record


def process_callback(reference: str) -> tuple[bool, str]:
    """
    Settle a payment when Paystack redirects the payer back.

    Returns:
        ``(success, reason)`` where reason explains a failure
    """
    verification = get_paystack_client().verify_transaction(reference)
    payment_type = resolve_payment_type(reference, verification.get('metadata') or {})
    if payment_type is None:
        logger.warning("Callback for unknown reference %s", reference)
        return False, 'unknown_reference'

    if verification['status'] == VerificationStatus.ERROR:
        return False, 'verification_error'

    try:
        with transaction.atomic():
            apply_verification(reference, payment_type, verification)
    except EventsServiceError as e:
        logger.error("Callback processing for %s failed: %s", reference, e)
        return False, 'processing_error'

    if verification['verified']:
        return True, ''
    return False, verification['status']
