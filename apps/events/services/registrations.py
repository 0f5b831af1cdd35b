"""Single-attendee event registration and ticket payment."""

import logging
from uuid import UUID

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.db.models import F

from apps.events.models import (
    Event,
    EventOrganiser,
    EventRegistration,
    EventStatus,
    PaymentStatus,
    RegistrationStatus,
    Ticket,
    TicketStatus,
    TicketType,
)
from apps.payments.services import (
    PaystackError,
    VerificationStatus,
    get_paystack_client,
    get_callback_url,
    generate_reference,
    split_payment_params,
    to_minor_units,
)
from .exceptions import (
    EventNotFoundError,
    EventNotPublishedError,
    InvalidEventDataError,
    AlreadyRegisteredError,
    PaymentPendingError,
    CapacityExceededError,
    RegistrationNotFoundError,
    PaymentInitializationError,
    PaymentMismatchError,
)
from .notifications import send_ticket_emails_on_commit

logger = logging.getLogger(__name__)

REGISTRATION_PAYMENT_TYPE = 'event_registration'
DEAD_PAYMENT_STATUSES = (PaymentStatus.FAILED, PaymentStatus.ABANDONED)


def _lock_event(event_id) -> Event:
    try:
        return Event.objects.select_for_update().get(id=event_id)
    except Event.DoesNotExist:
        raise EventNotFoundError(f"Event {event_id} not found")


def _increment_attendees(event: Event, quantity: int) -> None:
    Event.objects.filter(id=event.id).update(current_attendees=F('current_attendees') + quantity)
    event.refresh_from_db(fields=['current_attendees'])


def _decrement_attendees(event: Event, quantity: int) -> None:
    Event.objects.filter(id=event.id, current_attendees__gte=quantity).update(
        current_attendees=F('current_attendees') - quantity
    )
    event.refresh_from_db(fields=['current_attendees'])


def organiser_profile_for(event: Event):
    return EventOrganiser.objects.filter(user_id=event.organiser_id).first()


def _activate_registration(registration: EventRegistration, event: Event) -> None:
    registration.status = RegistrationStatus.REGISTERED
    registration.payment_status = PaymentStatus.COMPLETED
    registration.save(update_fields=['status', 'payment_status', 'updated_at'])
    registration.tickets.filter(status=TicketStatus.PENDING_PAYMENT).update(status=TicketStatus.ACTIVE)
    _increment_attendees(event, 1)
    send_ticket_emails_on_commit(registration.tickets.values_list('id', flat=True))


def _settle_stale_registration(registration: EventRegistration):
    """
    Look up how an unfinished checkout ended before a new attempt starts.

    Returns the registration when its earlier payment turns out to have
    succeeded, or None when a fresh attempt may replace it.
    """
    if not registration.payment_reference or registration.payment_status in DEAD_PAYMENT_STATUSES:
        return None

    verification = get_paystack_client().verify_transaction(registration.payment_reference)
    if verification['verified']:
        settled = confirm_registration_payment(
            reference=registration.payment_reference,
            verification=verification,
        )
        if settled.status == RegistrationStatus.CANCELLED:
            raise CapacityExceededError(
                "Event filled up before your payment was confirmed, it will be refunded"
            )
        return settled

    if verification['status'] == VerificationStatus.ABANDONED:
        fail_registration_payment(reference=registration.payment_reference, status=PaymentStatus.ABANDONED)
        return None
    if verification['status'] == VerificationStatus.FAILED:
        fail_registration_payment(reference=registration.payment_reference)
        return None

    raise PaymentPendingError(
        "A payment for this registration is still pending",
        payment_url=registration.payment_url,
    )


def register_for_event(*, event_id: UUID, user) -> dict:
    """
    Register the user for an event.

    Free events issue an active ticket immediately. Paid events commit a
    pending registration and ticket, then start a Paystack checkout; both
    are activated when the payment is confirmed. If Paystack cannot start
    the checkout the registration is kept with a failed payment.

    Returns:
        dict with ``registration``, ``ticket``, ``payment_required`` and, for
        paid events, ``payment_url`` and ``reference``

    Raises:
        EventNotFoundError: If event does not exist
        EventNotPublishedError: If event is not open for registration
        AlreadyRegisteredError: If user already holds a registration
        PaymentPendingError: If an earlier checkout is still open
        CapacityExceededError: If the event is full
        PaymentInitializationError: If Paystack could not start the checkout
    """
    stale = (
        EventRegistration.objects
        .filter(event_id=event_id, user=user, status=RegistrationStatus.PENDING_PAYMENT)
        .first()
    )
    if stale is not None:
        settled = _settle_stale_registration(stale)
        if settled is not None:
            return {
                'registration': settled,
                'ticket': settled.tickets.first(),
                'payment_required': False,
            }

    with transaction.atomic():
        event = _lock_event(event_id)
        if event.status != EventStatus.PUBLISHED:
            raise EventNotPublishedError("Event is not open for registration")

        try:
            validate_email(user.email or '')
        except ValidationError:
            raise InvalidEventDataError("A valid email address is required to register")

        existing = (
            EventRegistration.objects
            .select_for_update()
            .filter(event=event, user=user)
            .exclude(status=RegistrationStatus.CANCELLED)
            .first()
        )
        if existing is not None:
            if existing.status == RegistrationStatus.REGISTERED:
                raise AlreadyRegisteredError("You are already registered for this event")
            if existing.payment_reference and existing.payment_status not in DEAD_PAYMENT_STATUSES:
                raise PaymentPendingError(
                    "A payment for this registration is still pending",
                    payment_url=existing.payment_url,
                )
            logger.info("Discarding unpaid registration %s for event %s", existing.id, event.id)
            existing.delete()

        if not event.has_capacity_for(1):
            raise CapacityExceededError("Event is at full capacity")

        attendee_name = user.get_display_name()

        if not event.is_paid:
            registration = EventRegistration.objects.create(
                event=event,
                user=user,
                status=RegistrationStatus.REGISTERED,
                payment_status=PaymentStatus.NOT_REQUIRED,
            )
            ticket = Ticket.objects.create(
                event=event,
                user=user,
                registration=registration,
                attendee_name=attendee_name,
                attendee_email=user.email,
                ticket_type=TicketType.FREE,
                status=TicketStatus.ACTIVE,
            )
            _increment_attendees(event, 1)
            send_ticket_emails_on_commit([ticket.id])

            logger.info("User %s registered for event %s", user.id, event.id)
            return {'registration': registration, 'ticket': ticket, 'payment_required': False}

        registration = EventRegistration.objects.create(
            event=event,
            user=user,
            status=RegistrationStatus.PENDING_PAYMENT,
            payment_status=PaymentStatus.PENDING,
            amount=event.ticket_price,
            payment_reference=generate_reference('reg', event.id),
        )
        ticket = Ticket.objects.create(
            event=event,
            user=user,
            registration=registration,
            attendee_name=attendee_name,
            attendee_email=user.email,
            ticket_type=TicketType.PAID,
            status=TicketStatus.PENDING_PAYMENT,
        )

    reference = registration.payment_reference
    try:
        checkout = get_paystack_client().initialize_transaction(
            email=user.email,
            amount=to_minor_units(event.ticket_price),
            reference=reference,
            callback_url=get_callback_url(),
            metadata={
                'event_id': str(event.id),
                'user_id': str(user.id),
                'registration_id': str(registration.id),
                'ticket_id': str(ticket.id),
                'organiser_id': str(event.organiser_id),
                'type': REGISTRATION_PAYMENT_TYPE,
            },
            **split_payment_params(organiser_profile_for(event)),
        )
    except PaystackError as e:
        registration.payment_status = PaymentStatus.FAILED
        registration.save(update_fields=['payment_status', 'updated_at'])
        logger.error("Registration %s checkout failed: %s", registration.id, e)
        raise PaymentInitializationError(str(e))

    registration.payment_url = checkout.get('authorization_url', '')
    registration.save(update_fields=['payment_url', 'updated_at'])

    logger.info("Registration %s awaiting payment %s", registration.id, reference)
    return {
        'registration': registration,
        'ticket': ticket,
        'payment_required': True,
        'payment_url': registration.payment_url,
        'reference': reference,
    }


@transaction.atomic
def unregister_from_event(*, event_id: UUID, user) -> EventRegistration:
    """
    Cancel the user's registration and its tickets.

    Only a confirmed registration gives its seat back.
    """
    event = _lock_event(event_id)
    registration = (
        EventRegistration.objects
        .select_for_update()
        .filter(event=event, user=user)
        .exclude(status=RegistrationStatus.CANCELLED)
        .first()
    )
    if registration is None:
        raise RegistrationNotFoundError("You are not registered for this event")

    was_registered = registration.status == RegistrationStatus.REGISTERED
    registration.status = RegistrationStatus.CANCELLED
    registration.save(update_fields=['status', 'updated_at'])
    registration.tickets.update(status=TicketStatus.CANCELLED)

    if was_registered:
        _decrement_attendees(event, 1)

    logger.info("User %s unregistered from event %s", user.id, event.id)
    return registration


@transaction.atomic
def confirm_registration_payment(*, reference: str, verification: dict) -> EventRegistration:
    """
    Activate the registration paid under ``reference``.

    Idempotent: a registration that is already confirmed is returned as is.
    If the event filled up while the payer was at checkout the registration
    is cancelled and the payment is logged for refund.
    """
    try:
        registration = EventRegistration.objects.select_for_update().get(payment_reference=reference)
    except EventRegistration.DoesNotExist:
        raise RegistrationNotFoundError(f"No registration for payment reference {reference}")

    if registration.status == RegistrationStatus.REGISTERED:
        return registration
    if registration.status == RegistrationStatus.CANCELLED:
        logger.warning("Payment %s received for cancelled registration %s", reference, registration.id)
        return registration

    expected = to_minor_units(registration.amount)
    if verification.get('amount') is not None and verification['amount'] < expected:
        logger.error("Registration payment %s underpaid: %s < %s", reference, verification['amount'], expected)
        raise PaymentMismatchError("Paid amount does not cover the ticket price")

    event = _lock_event(registration.event_id)
    if not event.has_capacity_for(1):
        registration.status = RegistrationStatus.CANCELLED
        registration.payment_status = PaymentStatus.COMPLETED
        registration.save(update_fields=['status', 'payment_status', 'updated_at'])
        registration.tickets.update(status=TicketStatus.CANCELLED)
        logger.error("Event %s full when payment %s arrived, refund needed", event.id, reference)
        return registration

    _activate_registration(registration, event)
    logger.info("Registration %s confirmed by payment %s", registration.id, reference)
    return registration


@transaction.atomic
def fail_registration_payment(*, reference: str, status: str = PaymentStatus.FAILED):
    """Record a failed or abandoned ticket payment; the registration stays pending."""
    registration = (
        EventRegistration.objects
        .select_for_update()
        .filter(payment_reference=reference, status=RegistrationStatus.PENDING_PAYMENT)
        .first()
    )
    if registration is None:
        return None
    registration.payment_status = status
    registration.save(update_fields=['payment_status', 'updated_at'])
    logger.info("Registration payment %s marked %s", reference, status)
    return registration
