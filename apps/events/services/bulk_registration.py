"""
Bulk ticket purchases.

One buyer pays once for several named attendees. Tickets only exist once
the payment is verified (or immediately for free events); completion locks
the bulk registration and the event so capacity is checked and consumed in
one step, and a repeated webhook for the same reference is a no-op.
"""

import logging
import time
from uuid import UUID

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.events.models import (
    BulkRegistration,
    BulkRegistrationStatus,
    Event,
    EventStatus,
    PaymentStatus,
    Ticket,
    TicketStatus,
    TicketType,
)
from apps.payments.services import (
    PaystackError,
    get_paystack_client,
    get_callback_url,
    split_payment_params,
    to_minor_units,
)
from .exceptions import (
    EventNotFoundError,
    EventNotPublishedError,
    InvalidAttendeesError,
    BulkRegistrationsNotAllowedError,
    BulkRegistrationNotFoundError,
    BulkRegistrationStateError,
    CapacityExceededError,
    NotBulkRegistrationOwnerError,
    PaymentInitializationError,
    PaymentMismatchError,
)
from .notifications import send_ticket_emails_on_commit
from .registrations import organiser_profile_for

logger = logging.getLogger(__name__)

BULK_PAYMENT_TYPE = 'bulk_registration'
CAPACITY_EXCEEDED_REASON = 'Event capacity exceeded'


def validate_attendees(attendees, quantity: int) -> list[dict]:
    """
    Check the attendee list against the requested quantity.

    Returns:
        Cleaned attendee dicts with ``name``, ``email`` (lowercased) and ``phone``

    Raises:
        InvalidAttendeesError: On the first problem found
    """
    if not attendees:
        raise InvalidAttendeesError("Attendee details are required")
    if not BulkRegistration.MIN_QUANTITY <= quantity <= BulkRegistration.MAX_QUANTITY:
        raise InvalidAttendeesError(
            f"Quantity must be between {BulkRegistration.MIN_QUANTITY} "
            f"and {BulkRegistration.MAX_QUANTITY}"
        )
    if len(attendees) != quantity:
        raise InvalidAttendeesError(
            f"Expected {quantity} attendees, got {len(attendees)}"
        )

    cleaned = []
    seen_emails = set()
    for position, attendee in enumerate(attendees, start=1):
        name = (attendee.get('name') or '').strip()
        email = (attendee.get('email') or '').strip().lower()
        if not name:
            raise InvalidAttendeesError(f"Attendee {position} is missing a name")
        try:
            validate_email(email)
        except ValidationError:
            raise InvalidAttendeesError(f"Attendee {position} has an invalid email")
        if email in seen_emails:
            raise InvalidAttendeesError(f"Duplicate attendee email: {email}")
        seen_emails.add(email)
        cleaned.append({
            'name': name,
            'email': email,
            'phone': (attendee.get('phone') or '').strip(),
        })
    return cleaned


def _bulk_reference(bulk: BulkRegistration) -> str:
    return f"BULK_{bulk.id}_{int(time.time() * 1000)}"


def create_bulk_registration(*, event_id: UUID, user, quantity: int, attendees: list) -> dict:
    """
    Start a bulk purchase.

    Free events complete straight away. Paid events get a Paystack checkout;
    if Paystack cannot start one the registration is kept as failed.

    Returns:
        dict with ``bulk_registration`` and ``payment_required``; paid events
        add ``payment_url`` and ``reference``, free ones ``tickets``

    Raises:
        InvalidAttendeesError: If the attendee list is invalid
        EventNotFoundError: If event does not exist
        EventNotPublishedError: If event is not published
        BulkRegistrationsNotAllowedError: If event has bulk tickets disabled
        CapacityExceededError: If the event cannot fit ``quantity`` more
        PaymentInitializationError: If Paystack could not start the checkout
    """
    cleaned = validate_attendees(attendees, quantity)

    with transaction.atomic():
        try:
            event = Event.objects.select_for_update().get(id=event_id)
        except Event.DoesNotExist:
            raise EventNotFoundError(f"Event {event_id} not found")

        if event.status != EventStatus.PUBLISHED:
            raise EventNotPublishedError("Event is not open for registration")
        if not event.allow_bulk_registrations:
            raise BulkRegistrationsNotAllowedError("This event does not accept bulk registrations")
        if not event.has_capacity_for(quantity):
            raise CapacityExceededError(CAPACITY_EXCEEDED_REASON)

        bulk = BulkRegistration.objects.create(
            event=event,
            user=user,
            quantity=quantity,
            attendee_details=cleaned,
            total_amount=event.ticket_price * quantity,
            status=BulkRegistrationStatus.PENDING_PAYMENT,
            payment_status=PaymentStatus.PENDING if event.is_paid else PaymentStatus.NOT_REQUIRED,
        )
        bulk.payment_reference = _bulk_reference(bulk)
        bulk.save(update_fields=['payment_reference', 'updated_at'])

    if not event.is_paid:
        bulk = complete_bulk_registration(bulk_registration_id=bulk.id)
        if bulk.status != BulkRegistrationStatus.COMPLETED:
            raise CapacityExceededError(bulk.failure_reason or CAPACITY_EXCEEDED_REASON)
        return {
            'bulk_registration': bulk,
            'payment_required': False,
            'tickets': list(bulk.tickets.all()),
        }

    try:
        checkout = get_paystack_client().initialize_transaction(
            email=user.email,
            amount=to_minor_units(bulk.total_amount),
            reference=bulk.payment_reference,
            callback_url=get_callback_url(),
            metadata={
                'bulk_registration_id': str(bulk.id),
                'event_id': str(event.id),
                'user_id': str(user.id),
                'quantity': quantity,
                'type': BULK_PAYMENT_TYPE,
            },
            **split_payment_params(organiser_profile_for(event)),
        )
    except PaystackError as e:
        bulk.status = BulkRegistrationStatus.FAILED
        bulk.payment_status = PaymentStatus.FAILED
        bulk.failure_reason = 'Payment initialization failed'
        bulk.save(update_fields=['status', 'payment_status', 'failure_reason', 'updated_at'])
        logger.error("Bulk registration %s checkout failed: %s", bulk.id, e)
        raise PaymentInitializationError(str(e))

    bulk.payment_url = checkout.get('authorization_url', '')
    bulk.save(update_fields=['payment_url', 'updated_at'])

    logger.info("Bulk registration %s (%s tickets) awaiting payment %s",
                bulk.id, quantity, bulk.payment_reference)
    return {
        'bulk_registration': bulk,
        'payment_required': True,
        'payment_url': bulk.payment_url,
        'reference': bulk.payment_reference,
    }


@transaction.atomic
def complete_bulk_registration(*, bulk_registration_id: UUID) -> BulkRegistration:
    """
    Issue the tickets of a paid (or free) bulk registration.

    Idempotent: a completed registration is returned without new tickets.
    When the event no longer has room the registration is marked failed.
    """
    try:
        bulk = BulkRegistration.objects.select_for_update().get(id=bulk_registration_id)
    except BulkRegistration.DoesNotExist:
        raise BulkRegistrationNotFoundError(f"Bulk registration {bulk_registration_id} not found")

    if bulk.status == BulkRegistrationStatus.COMPLETED:
        logger.info("Bulk registration %s already completed", bulk.id)
        return bulk
    if bulk.status == BulkRegistrationStatus.CANCELLED:
        raise BulkRegistrationStateError("Bulk registration was cancelled")

    event = Event.objects.select_for_update().get(id=bulk.event_id)
    paid = bulk.payment_status != PaymentStatus.NOT_REQUIRED

    if not event.has_capacity_for(bulk.quantity):
        bulk.status = BulkRegistrationStatus.FAILED
        bulk.failure_reason = CAPACITY_EXCEEDED_REASON
        if paid:
            bulk.payment_status = PaymentStatus.COMPLETED
        bulk.save(update_fields=['status', 'payment_status', 'failure_reason', 'updated_at'])
        logger.error("Bulk registration %s exceeds capacity of event %s%s",
                     bulk.id, event.id, ", refund needed" if paid else "")
        return bulk

    tickets = Ticket.objects.bulk_create([
        Ticket(
            event=event,
            user_id=bulk.user_id,
            bulk_registration=bulk,
            attendee_name=attendee['name'],
            attendee_email=attendee['email'],
            attendee_phone=attendee.get('phone', ''),
            attendee_index=index,
            ticket_type=TicketType.ATTENDEE,
            status=TicketStatus.ACTIVE,
        )
        for index, attendee in enumerate(bulk.attendee_details, start=1)
    ])

    Event.objects.filter(id=event.id).update(current_attendees=F('current_attendees') + bulk.quantity)

    bulk.status = BulkRegistrationStatus.COMPLETED
    if paid:
        bulk.payment_status = PaymentStatus.COMPLETED
    bulk.failure_reason = ''
    bulk.completed_at = timezone.now()
    bulk.save(update_fields=['status', 'payment_status', 'failure_reason', 'completed_at', 'updated_at'])

    send_ticket_emails_on_commit(ticket.id for ticket in tickets)
    logger.info("Bulk registration %s completed with %s tickets", bulk.id, len(tickets))
    return bulk


@transaction.atomic
def confirm_bulk_payment(*, reference: str, verification: dict) -> BulkRegistration:
    """Complete the bulk registration paid under ``reference``."""
    try:
        bulk = BulkRegistration.objects.select_for_update().get(payment_reference=reference)
    except BulkRegistration.DoesNotExist:
        raise BulkRegistrationNotFoundError(f"No bulk registration for payment reference {reference}")

    if bulk.status == BulkRegistrationStatus.COMPLETED:
        return bulk

    expected = to_minor_units(bulk.total_amount)
    if verification.get('amount') is not None and verification['amount'] < expected:
        logger.error("Bulk payment %s underpaid: %s < %s", reference, verification['amount'], expected)
        raise PaymentMismatchError("Paid amount does not cover the tickets")

    return complete_bulk_registration(bulk_registration_id=bulk.id)


@transaction.atomic
def fail_bulk_registration(*, reference: str, reason: str = 'Payment failed', status: str = PaymentStatus.FAILED):
    """Mark a pending bulk registration failed; completed ones are left alone."""
    bulk = BulkRegistration.objects.select_for_update().filter(payment_reference=reference).first()
    if bulk is None:
        raise BulkRegistrationNotFoundError(f"No bulk registration for payment reference {reference}")
    if bulk.status != BulkRegistrationStatus.PENDING_PAYMENT:
        return bulk

    bulk.status = BulkRegistrationStatus.FAILED
    bulk.payment_status = status
    bulk.failure_reason = reason
    bulk.save(update_fields=['status', 'payment_status', 'failure_reason', 'updated_at'])
    logger.info("Bulk registration %s failed: %s", bulk.id, reason)
    return bulk


def get_bulk_registration(*, bulk_registration_id: UUID, user) -> BulkRegistration:
    try:
        bulk = BulkRegistration.objects.select_related('event').get(id=bulk_registration_id)
    except BulkRegistration.DoesNotExist:
        raise BulkRegistrationNotFoundError(f"Bulk registration {bulk_registration_id} not found")
    if bulk.user_id != user.id:
        raise NotBulkRegistrationOwnerError("You do not own this bulk registration")
    return bulk


@transaction.atomic
def cancel_bulk_registration(*, bulk_registration_id: UUID, user) -> BulkRegistration:
    """Cancel a bulk registration that has not been paid yet."""
    bulk = get_bulk_registration(bulk_registration_id=bulk_registration_id, user=user)
    bulk = BulkRegistration.objects.select_for_update().get(id=bulk.id)
    if bulk.status != BulkRegistrationStatus.PENDING_PAYMENT:
        raise BulkRegistrationStateError("Only bulk registrations awaiting payment can be cancelled")

    bulk.status = BulkRegistrationStatus.CANCELLED
    bulk.save(update_fields=['status', 'updated_at'])
    logger.info("Bulk registration %s cancelled by %s", bulk.id, user.id)
    return bulk
