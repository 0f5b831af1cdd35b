"""Booking confirmation and cancellation emails, sent after commit."""

import logging

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction

from apps.meetings.models import Booking

logger = logging.getLogger(__name__)


def cancellation_url(booking: Booking) -> str:
    return f"{settings.PUBLIC_BASE_URL}/public/calendar/{booking.owner_id}/cancel/{booking.cancellation_token}/"


def _when(booking: Booking, tz) -> str:
    return f"{booking.starts_at.astimezone(tz):%A %d %B %Y %H:%M} ({tz.key}), {booking.duration} minutes"


def _send(subject, body, recipient, booking_id) -> bool:
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [recipient])
    except Exception:
        logger.exception("Failed to email %s about booking %s", recipient, booking_id)
        return False
    return True


def send_booking_emails(booking: Booking, tz) -> None:
    """Confirm a new booking to the booker and notify the owner."""
    owner = booking.owner
    when = _when(booking, tz)

    if booking.booker_email:
        _send(
            f"Meeting confirmed with {owner.get_display_name()}",
            (
                f"Hi {booking.booker_name},\n\n"
                f"Your meeting with {owner.get_display_name()} is booked.\n\n"
                f"When: {when}\n"
                f"Where: {booking.location}\n\n"
                f"Need to cancel? {cancellation_url(booking)}\n"
            ),
            booking.booker_email,
            booking.id,
        )

    _send(
        f"New booking from {booking.booker_name}",
        (
            f"Hi {owner.get_display_name()},\n\n"
            f"{booking.booker_name} booked a meeting with you.\n\n"
            f"When: {when}\n"
            f"Email: {booking.booker_email}\n"
            f"Phone: {booking.booker_phone}\n"
            f"Message: {booking.message or '-'}\n\n"
            "The booker can cancel using the link in their confirmation email.\n"
        ),
        owner.email,
        booking.id,
    )
    logger.info("Booking emails sent for %s", booking.id)


def send_cancellation_emails(booking: Booking, tz) -> None:
    """Tell both parties that a booking was cancelled."""
    owner = booking.owner
    when = _when(booking, tz)

    if booking.booker_email:
        _send(
            f"Meeting with {owner.get_display_name()} cancelled",
            (
                f"Hi {booking.booker_name},\n\n"
                f"Your meeting with {owner.get_display_name()} on {when} has been cancelled.\n"
            ),
            booking.booker_email,
            booking.id,
        )

    _send(
        f"Booking cancelled by {booking.booker_name}",
        (
            f"Hi {owner.get_display_name()},\n\n"
            f"{booking.booker_name} cancelled the meeting on {when}.\n"
        ),
        owner.email,
        booking.id,
    )
    logger.info("Cancellation emails sent for %s", booking.id)


def send_on_commit(sender, booking_id, tz) -> None:
    """Run ``sender`` for the booking once the current transaction commits."""
    def _run():
        booking = Booking.objects.select_related('owner').get(id=booking_id)
        sender(booking, tz)

    transaction.on_commit(_run)
