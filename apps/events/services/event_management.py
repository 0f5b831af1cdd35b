"""Event creation, editing and publishing."""

import logging
from datetime import timedelta
from decimal import Decimal
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.events.models import (
    Event,
    EventOrganiser,
    EventStatus,
    EventType,
    OrganiserStatus,
    TicketStatus,
)
from apps.payments.services import (
    PaystackError,
    VerificationStatus,
    get_paystack_client,
    get_callback_url,
    generate_reference,
)
from .exceptions import (
    EventNotFoundError,
    InvalidEventDataError,
    NotEventOwnerError,
    EventStateError,
    OrganiserNotActiveError,
    PaymentInitializationError,
    PaymentMismatchError,
)
from .listing_credits import consume_listing_credit

User = get_user_model()
logger = logging.getLogger(__name__)

PUBLISHING_PAYMENT_TYPE = 'event_publishing'
PUBLISHING_PAYMENT_TIMEOUT = timedelta(hours=1)
BULK_REGISTRATION_MIN_CAPACITY = 11

EDITABLE_FIELDS = {
    'title', 'description', 'category', 'image_url', 'event_date', 'end_date',
    'location', 'city', 'max_attendees', 'allow_bulk_registrations',
    'visibility', 'ticket_price',
}


def _has_active_organiser_profile(user) -> bool:
    return EventOrganiser.objects.filter(user=user, status=OrganiserStatus.ACTIVE).exists()


def _apply_business_rules(event: Event) -> None:
    if event.end_date and event.end_date < event.event_date:
        raise InvalidEventDataError("End date cannot be before the event date")
    # Bulk ticketing only makes sense for larger events
    if event.max_attendees < BULK_REGISTRATION_MIN_CAPACITY:
        event.allow_bulk_registrations = False
    event.event_type = EventType.PAID if event.ticket_price > 0 else EventType.FREE


@transaction.atomic
def create_event(*, organiser: User, **fields) -> Event:
    """
    Create a draft event.

    Args:
        organiser: Creating user
        **fields: Validated event fields

    Returns:
        Created Event (status draft)

    Raises:
        InvalidEventDataError: If dates are inconsistent
        OrganiserNotActiveError: If a paid event is created without an
            active organiser profile
    """
    ticket_price = fields.get('ticket_price') or Decimal('0.00')
    if ticket_price > 0 and not _has_active_organiser_profile(organiser):
        raise OrganiserNotActiveError(
            "You must be an approved event organiser to create paid events"
        )

    event = Event(organiser=organiser, **fields)
    _apply_business_rules(event)
    event.status = EventStatus.DRAFT
    event.current_attendees = 0
    event.save()

    logger.info("Event %s created by %s", event.id, organiser.id)
    return event


def get_event_for_owner(*, event_id: UUID, user: User, lock: bool = False) -> Event:
    queryset = Event.objects.select_for_update() if lock else Event.objects.all()
    try:
        event = queryset.get(id=event_id)
    except Event.DoesNotExist:
        raise EventNotFoundError(f"Event {event_id} not found")
    if event.organiser_id != user.id:
        raise NotEventOwnerError("Only the event organiser can do this")
    return event


@transaction.atomic
def update_event(*, event_id: UUID, user: User, **fields) -> Event:
    """Edit a draft event; published events are frozen."""
    event = get_event_for_owner(event_id=event_id, user=user, lock=True)
    if event.status != EventStatus.DRAFT:
        raise EventStateError("Only draft events can be edited")

    new_price = fields.get('ticket_price')
    if new_price and new_price > 0 and not _has_active_organiser_profile(user):
        raise OrganiserNotActiveError(
            "You must be an approved event organiser to create paid events"
        )

    update_fields = ['updated_at', 'event_type', 'allow_bulk_registrations']
    for name, value in fields.items():
        if name in EDITABLE_FIELDS:
            setattr(event, name, value)
            update_fields.append(name)
    _apply_business_rules(event)
    event.save(update_fields=list(set(update_fields)))
    return event


@transaction.atomic
def cancel_event(*, event_id: UUID, user: User) -> Event:
    """Cancel an event and every ticket issued for it."""
    event = get_event_for_owner(event_id=event_id, user=user, lock=True)
    if event.status == EventStatus.CANCELLED:
        raise EventStateError("Event is already cancelled")

    event.status = EventStatus.CANCELLED
    event.save(update_fields=['status', 'updated_at'])
    cancelled = event.tickets.exclude(status=TicketStatus.CANCELLED).update(status=TicketStatus.CANCELLED)

    logger.info("Event %s cancelled, %s tickets voided", event.id, cancelled)
    return event


def _mark_published(event: Event, **extra) -> None:
    event.status = EventStatus.PUBLISHED
    event.published_at = timezone.now()
    for name, value in extra.items():
        setattr(event, name, value)
    event.save()
    logger.info("Event %s published", event.id)


def _revert_to_draft(event: Event) -> None:
    event.status = EventStatus.DRAFT
    event.payment_reference = None
    event.payment_url = ''
    event.payment_initiated_at = None
    event.save(update_fields=[
        'status', 'payment_reference', 'payment_url', 'payment_initiated_at', 'updated_at'
    ])


def _pending_payment_response(event: Event) -> dict:
    return {
        'status': EventStatus.PENDING_PAYMENT,
        'payment_url': event.payment_url,
        'reference': event.payment_reference,
        'listing_fee': event.listing_fee,
    }


def _resume_pending_payment(event: Event, verification: dict) -> dict | None:
    """
    Settle an earlier publishing checkout.

    Returns the publish result when the earlier payment decides the outcome,
    or None when the event went back to draft and publishing should start over.
    """
    if verification['verified']:
        _mark_published(event, credit_applied='')
        return {'status': EventStatus.PUBLISHED, 'event': event}

    if verification['status'] in (VerificationStatus.ABANDONED, VerificationStatus.FAILED):
        logger.info("Publishing payment %s %s, reverting event %s to draft",
                    event.payment_reference, verification['status'], event.id)
        _revert_to_draft(event)
        return None

    started = event.payment_initiated_at or event.updated_at
    if started and timezone.now() - started > PUBLISHING_PAYMENT_TIMEOUT:
        logger.info("Publishing payment %s timed out, reverting event %s to draft",
                    event.payment_reference, event.id)
        _revert_to_draft(event)
        return None

    return _pending_payment_response(event)


def publish_event(*, event_id: UUID, user: User) -> dict:
    """
    Publish an event, charging a listing fee for paid events when no credit
    is left.

    The event is moved to ``pending_payment`` and committed before Paystack
    is asked for a checkout; if Paystack fails the event goes back to draft.

    Returns:
        dict with ``status`` (``published`` or ``pending_payment``), plus the
        event or the checkout ``payment_url``/``reference``/``listing_fee``

    Raises:
        NotEventOwnerError: If user is not the organiser
        EventStateError: If the event is already published or cancelled
        PaymentInitializationError: If Paystack could not start the checkout
    """
    event = get_event_for_owner(event_id=event_id, user=user)
    checked_reference = None
    verification = None
    if event.status == EventStatus.PENDING_PAYMENT and event.payment_reference:
        checked_reference = event.payment_reference
        verification = get_paystack_client().verify_transaction(checked_reference)

    with transaction.atomic():
        event = get_event_for_owner(event_id=event_id, user=user, lock=True)

        if event.status == EventStatus.PUBLISHED:
            raise EventStateError("Event is already published")
        if event.status == EventStatus.CANCELLED:
            raise EventStateError("Cancelled events cannot be published")

        if event.status == EventStatus.PENDING_PAYMENT and event.payment_reference:
            # Another attempt replaced the checkout while we were verifying
            if event.payment_reference != checked_reference:
                return _pending_payment_response(event)
            result = _resume_pending_payment(event, verification)
            if result is not None:
                return result

        if not event.is_paid:
            _mark_published(event)
            return {'status': EventStatus.PUBLISHED, 'event': event}

        cost = consume_listing_credit(user_id=user.id)
        if cost['price'] == 0:
            _mark_published(
                event,
                listing_fee=0,
                credit_applied=cost['credit_type'],
                payment_reference=None,
            )
            return {
                'status': EventStatus.PUBLISHED,
                'event': event,
                'credit_applied': cost['credit_type'],
                'remaining_credits': cost['remaining_credits'],
            }

        event.status = EventStatus.PENDING_PAYMENT
        event.payment_reference = generate_reference('evt', event.id)
        event.payment_url = ''
        event.listing_fee = cost['price']
        event.credit_applied = ''
        event.payment_initiated_at = timezone.now()
        event.save()

    try:
        checkout = get_paystack_client().initialize_transaction(
            email=user.email,
            amount=cost['price'],
            reference=event.payment_reference,
            callback_url=get_callback_url(),
            metadata={
                'event_id': str(event.id),
                'user_id': str(user.id),
                'event_title': event.title,
                'payment_type': PUBLISHING_PAYMENT_TYPE,
            },
        )
    except PaystackError as e:
        logger.error("Publishing checkout for event %s failed: %s", event.id, e)
        _revert_to_draft(event)
        raise PaymentInitializationError(str(e))

    event.payment_url = checkout.get('authorization_url', '')
    event.save(update_fields=['payment_url', 'updated_at'])

    logger.info("Event %s awaiting publishing fee %s (%s cents)",
                event.id, event.payment_reference, cost['price'])
    return _pending_payment_response(event)


@transaction.atomic
def complete_event_publishing(*, reference: str, verification: dict) -> Event:
    """
    Publish the event whose listing fee was paid under ``reference``.

    Idempotent: an already published event is returned unchanged.
    """
    try:
        event = Event.objects.select_for_update().get(payment_reference=reference)
    except Event.DoesNotExist:
        raise EventNotFoundError(f"No event for payment reference {reference}")

    if event.status == EventStatus.PUBLISHED:
        return event
    if event.status == EventStatus.CANCELLED:
        logger.warning("Publishing fee %s paid for cancelled event %s", reference, event.id)
        return event

    if verification.get('amount') and event.listing_fee and verification['amount'] < event.listing_fee:
        logger.error("Publishing fee %s underpaid: %s < %s",
                     reference, verification['amount'], event.listing_fee)
        raise PaymentMismatchError("Paid amount does not cover the listing fee")

    _mark_published(event, credit_applied='')
    return event


@transaction.atomic
def fail_event_publishing(*, reference: str) -> Event | None:
    """Return a pending event to draft after its publishing payment failed."""
    event = Event.objects.select_for_update().filter(payment_reference=reference).first()
    if event is None or event.status != EventStatus.PENDING_PAYMENT:
        return event
    _revert_to_draft(event)
    logger.info("Publishing payment %s failed, event %s back to draft", reference, event.id)
    return event
