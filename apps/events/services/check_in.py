"""
Ticket QR codes and door check-in.

A ticket QR code carries a JSON payload with a sha256 verification token
derived from the event, holder, ticket and issue timestamp. The token is
stored as a CheckInToken and is valid for 24 hours; scanning it marks both
the ticket and the token in one transaction.
"""

import hashlib
import json
import logging
import time
from datetime import timedelta
from io import BytesIO
from uuid import UUID

import qrcode
from django.db import transaction
from django.utils import timezone

from apps.events.models import CheckInToken, Event, Ticket, TicketStatus
from .event_management import get_event_for_owner
from .exceptions import CheckInError, TicketNotFoundError, EventStateError

logger = logging.getLogger(__name__)

QR_TYPE = 'event_checkin'
QR_VERSION = '1.0'
REQUIRED_QR_FIELDS = ('event_id', 'user_id', 'ticket_id', 'verification_token', 'timestamp', 'type')


def make_verification_token(event_id, user_id, ticket_id, timestamp) -> str:
    raw = f"{event_id}_{user_id}_{ticket_id}_{timestamp}"
    return hashlib.sha256(raw.encode('utf-8')).hexdigest()


def render_qr_png(data: str, error_correction=qrcode.constants.ERROR_CORRECT_M) -> bytes:
    """Render ``data`` as a PNG QR code."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=error_correction,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()


def issue_check_in_token(*, ticket: Ticket) -> dict:
    """
    Store a fresh verification token for ``ticket``.

    Returns:
        The QR payload dict
    """
    timestamp = int(time.time() * 1000)
    token = make_verification_token(ticket.event_id, ticket.user_id, ticket.id, timestamp)

    CheckInToken.objects.create(
        token=token,
        ticket=ticket,
        event_id=ticket.event_id,
        user_id=ticket.user_id,
        issued_timestamp=timestamp,
        expires_at=timezone.now() + timedelta(hours=CheckInToken.VALIDITY_HOURS),
    )

    return {
        'event_id': str(ticket.event_id),
        'user_id': str(ticket.user_id),
        'ticket_id': str(ticket.id),
        'verification_token': token,
        'timestamp': timestamp,
        'type': QR_TYPE,
        'version': QR_VERSION,
    }


def ticket_qr_png(ticket: Ticket) -> bytes:
    payload = issue_check_in_token(ticket=ticket)
    return render_qr_png(json.dumps(payload))


def generate_ticket_qr(*, ticket_id: UUID, user) -> bytes:
    """
    Check-in QR code for one of the user's active tickets.

    Raises:
        TicketNotFoundError: If the ticket does not exist or is not the user's
        EventStateError: If the ticket is not active
    """
    try:
        ticket = Ticket.objects.get(id=ticket_id, user=user)
    except Ticket.DoesNotExist:
        raise TicketNotFoundError(f"Ticket {ticket_id} not found")

    if ticket.status != TicketStatus.ACTIVE:
        raise EventStateError("Only active tickets have a check-in code")

    return ticket_qr_png(ticket)


def validate_qr_data(qr_data) -> dict:
    """
    Parse a scanned payload and check its shape and token hash.

    Accepts the raw JSON string or an already decoded dict.

    Raises:
        CheckInError: INVALID_QR_FORMAT, MISSING_QR_FIELDS, INVALID_QR_TYPE
            or INVALID_TOKEN
    """
    if isinstance(qr_data, str):
        try:
            qr_data = json.loads(qr_data)
        except ValueError:
            raise CheckInError('INVALID_QR_FORMAT', "QR code is not valid JSON")

    if not isinstance(qr_data, dict):
        raise CheckInError('INVALID_QR_FORMAT', "QR code payload must be an object")

    missing = [field for field in REQUIRED_QR_FIELDS if not qr_data.get(field)]
    if missing:
        raise CheckInError('MISSING_QR_FIELDS', f"QR code is missing: {', '.join(missing)}")

    if qr_data['type'] != QR_TYPE:
        raise CheckInError('INVALID_QR_TYPE', "Not an event check-in code")

    expected = make_verification_token(
        qr_data['event_id'], qr_data['user_id'], qr_data['ticket_id'], qr_data['timestamp']
    )
    if expected != qr_data['verification_token']:
        raise CheckInError('INVALID_TOKEN', "Verification token does not match")

    return qr_data


@transaction.atomic
def process_check_in(*, event_id: UUID, organiser, qr_data) -> Ticket:
    """
    Admit the ticket holder behind a scanned QR code.

    Raises:
        CheckInError: With one of the codes in ``CheckInError.STATUS_CODES``
    """
    payload = validate_qr_data(qr_data)

    if str(payload['event_id']) != str(event_id):
        raise CheckInError('TICKET_MISMATCH', "Ticket is for a different event")

    try:
        event = Event.objects.get(id=event_id)
    except (Event.DoesNotExist, ValueError):
        raise CheckInError('EVENT_NOT_FOUND', "Event not found")
    if event.organiser_id != organiser.id:
        raise CheckInError('UNAUTHORIZED_ORGANIZER', "Only the event organiser can check in attendees")

    token = (
        CheckInToken.objects
        .select_for_update()
        .filter(token=payload['verification_token'])
        .first()
    )
    if token is None:
        raise CheckInError('INVALID_TOKEN', "Unknown verification token")
    if token.used:
        raise CheckInError('ALREADY_USED', "This code has already been used")
    if token.expires_at < timezone.now():
        raise CheckInError('EXPIRED_TOKEN', "This code has expired")

    try:
        ticket = Ticket.objects.select_for_update().get(id=token.ticket_id)
    except Ticket.DoesNotExist:
        raise CheckInError('TICKET_NOT_FOUND', "Ticket not found")

    if (str(ticket.id) != str(payload['ticket_id'])
            or str(ticket.user_id) != str(payload['user_id'])
            or ticket.event_id != event.id):
        raise CheckInError('TICKET_MISMATCH', "Ticket does not match this code")
    if ticket.status != TicketStatus.ACTIVE:
        raise CheckInError('TICKET_NOT_ACTIVE', "Ticket is not active")
    if ticket.checked_in:
        raise CheckInError('ALREADY_CHECKED_IN', "Attendee is already checked in")

    now = timezone.now()
    ticket.checked_in = True
    ticket.checked_in_at = now
    ticket.checked_in_by = organiser
    ticket.save(update_fields=['checked_in', 'checked_in_at', 'checked_in_by', 'updated_at'])

    token.used = True
    token.checked_in_at = now
    token.checked_in_by = organiser
    token.save(update_fields=['used', 'checked_in_at', 'checked_in_by'])

    logger.info("Ticket %s checked in at event %s by %s", ticket.id, event.id, organiser.id)
    return ticket


def get_check_in_stats(*, event_id: UUID, organiser) -> dict:
    event = get_event_for_owner(event_id=event_id, user=organiser)
    tickets = event.tickets.filter(status=TicketStatus.ACTIVE)
    total = tickets.count()
    checked_in = tickets.filter(checked_in=True).count()
    return {
        'event_id': str(event.id),
        'total_tickets': total,
        'checked_in': checked_in,
        'remaining': total - checked_in,
        'check_in_rate': round(checked_in * 100 / total, 1) if total else 0.0,
    }


def get_attendees(*, event_id: UUID, organiser):
    """Active tickets of an event, for the organiser's door list."""
    event = get_event_for_owner(event_id=event_id, user=organiser)
    return (
        event.tickets
        .filter(status=TicketStatus.ACTIVE)
        .select_related('user')
        .order_by('attendee_name')
    )
