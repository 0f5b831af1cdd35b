"""Ticket emails, sent once the surrounding transaction commits."""

import logging

from django.conf import settings
from django.core.mail import EmailMessage
from django.db import transaction

from apps.events.models import Ticket
from .check_in import ticket_qr_png

logger = logging.getLogger(__name__)


def send_ticket_email(ticket) -> bool:
    """
    Email one ticket with its check-in QR code attached.

    Failures are logged and reported as False, never raised.
    """
    event = ticket.event
    body = (
        f"Hi {ticket.attendee_name},\n\n"
        f"Your ticket for {event.title} is confirmed.\n\n"
        f"When: {event.event_date:%d %B %Y %H:%M}\n"
        f"Where: {event.location}, {event.city}\n"
        f"Ticket: {ticket.id}\n\n"
        "Show the attached QR code at the entrance.\n"
    )
    try:
        message = EmailMessage(
            subject=f"Your ticket: {event.title}",
            body=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[ticket.attendee_email],
        )
        message.attach(f"ticket-{ticket.id}.png", ticket_qr_png(ticket), 'image/png')
        message.send()
    except Exception:
        logger.exception("Failed to email ticket %s to %s", ticket.id, ticket.attendee_email)
        return False

    logger.info("Ticket %s emailed to %s", ticket.id, ticket.attendee_email)
    return True


def send_ticket_emails_on_commit(ticket_ids) -> None:
    """Queue ticket emails for after the current transaction commits."""
    ticket_ids = list(ticket_ids)

    def _send():
        for ticket in Ticket.objects.filter(id__in=ticket_ids).select_related('event'):
            send_ticket_email(ticket)

    transaction.on_commit(_send)
