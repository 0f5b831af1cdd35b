"""Public calendar availability, bookings and cancellations."""

import logging
import secrets
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.cards.models import Card
from ..models import Booking, BookingSource, BookingStatus
from .availability import calculate_availability, is_slot_available
from .exceptions import (
    BookingDisabledError,
    BookingInPastError,
    BookingNotFoundError,
    CalendarOwnerNotFoundError,
    InvalidBookingError,
    SlotUnavailableError,
)
from .notifications import send_booking_emails, send_cancellation_emails, send_on_commit
from .preferences import TIME_PATTERN, get_preferences

User = get_user_model()
logger = logging.getLogger(__name__)

DEFAULT_DAYS = 30


def _get_owner(user_id: UUID, for_update: bool = False) -> User:
    queryset = User.objects.filter(id=user_id, is_active=True)
    if for_update:
        queryset = queryset.select_for_update()
    owner = queryset.first()
    if owner is None:
        raise CalendarOwnerNotFoundError(f"User {user_id} not found")
    return owner


def _bookable_preferences(owner: User) -> dict:
    preferences = get_preferences(owner)
    if not preferences['enabled']:
        raise BookingDisabledError("Calendar booking is not enabled for this user")
    return preferences


def _confirmed_bookings(owner: User, start: date, days: int, tz: ZoneInfo):
    window_start = datetime.combine(start, time.min, tzinfo=tz) - timedelta(days=1)
    window_end = datetime.combine(start + timedelta(days=days), time.min, tzinfo=tz) + timedelta(days=1)
    return list(
        Booking.objects.filter(
            owner=owner,
            status=BookingStatus.CONFIRMED,
            starts_at__gte=window_start,
            starts_at__lt=window_end,
        )
    )


def _owner_profile(owner: User) -> Dict[str, Any]:
    card = Card.objects.filter(user=owner).order_by('position', 'created_at').first()
    return {
        'name': owner.get_display_name(),
        'company': card.company if card else '',
        'profile_image': (card.profile_image or None) if card else None,
    }


def get_public_availability(*, user_id: UUID, start_date: Optional[date] = None,
                            days: Optional[int] = None) -> Dict[str, Any]:
    """
    Bookable slots on a user's public calendar.

    ``days`` is capped at the owner's ``advance_booking_days``.

    Raises:
        CalendarOwnerNotFoundError: If the user does not exist
        BookingDisabledError: If the owner turned booking off
    """
    owner = _get_owner(user_id)
    preferences = _bookable_preferences(owner)
    tz = ZoneInfo(preferences['timezone'])

    start_date = start_date or timezone.now().astimezone(tz).date()
    days = max(1, min(days or DEFAULT_DAYS, preferences['advance_booking_days']))

    bookings = _confirmed_bookings(owner, start_date, days, tz)
    return {
        'user': _owner_profile(owner),
        'availability': calculate_availability(preferences, start_date, days, bookings),
        'allowed_durations': preferences['allowed_durations'],
        'timezone': preferences['timezone'],
    }


@transaction.atomic
def create_public_booking(
    *,
    user_id: UUID,
    name: str,
    email: str,
    phone: str,
    booking_date: date,
    booking_time: str,
    duration: int,
    message: str = '',
) -> Booking:
    """
    Book a slot on a user's public calendar and email both parties.

    Raises:
        CalendarOwnerNotFoundError: If the user does not exist
        BookingDisabledError: If the owner turned booking off
        InvalidBookingError: If the duration is not offered or the time is malformed
        SlotUnavailableError: If the slot is taken, blocked or outside the booking window
    """
    # Locking the owner serialises bookings on the same calendar
    owner = _get_owner(user_id, for_update=True)
    preferences = _bookable_preferences(owner)
    tz = ZoneInfo(preferences['timezone'])

    if duration not in preferences['allowed_durations']:
        raise InvalidBookingError(
            f"Duration must be one of {', '.join(str(d) for d in preferences['allowed_durations'])} minutes"
        )
    if not TIME_PATTERN.match(booking_time or ''):
        raise InvalidBookingError("Time must use HH:MM format")

    today = timezone.now().astimezone(tz).date()
    if not today <= booking_date < today + timedelta(days=preferences['advance_booking_days']):
        raise SlotUnavailableError("Date is outside the booking window")

    bookings = _confirmed_bookings(owner, booking_date, 1, tz)
    if not is_slot_available(preferences, booking_date, booking_time, duration, bookings):
        raise SlotUnavailableError("Time slot is no longer available")

    hours, minutes = (int(part) for part in booking_time.split(':'))
    booking = Booking.objects.create(
        owner=owner,
        booker_name=name,
        booker_email=email,
        booker_phone=phone,
        message=message or '',
        starts_at=datetime.combine(booking_date, time(hours, minutes), tzinfo=tz),
        duration=duration,
        source=BookingSource.PUBLIC,
        cancellation_token=secrets.token_hex(32),
    )

    logger.info("Public booking %s created on calendar of %s", booking.id, owner.id)
    send_on_commit(send_booking_emails, booking.id, tz)
    return booking


@transaction.atomic
def cancel_booking_by_token(*, user_id: UUID, token: str) -> Booking:
    """
    Cancel a public booking from the link in its confirmation email.

    Raises:
        BookingNotFoundError: If the token matches no confirmed booking
        BookingInPastError: If the meeting has already started
    """
    booking = (
        Booking.objects
        .select_for_update()
        .filter(owner_id=user_id, cancellation_token=token, status=BookingStatus.CONFIRMED)
        .first()
    )
    if booking is None:
        raise BookingNotFoundError("Booking not found or already cancelled")
    if booking.starts_at <= timezone.now():
        raise BookingInPastError("Cannot cancel a booking that has already passed")

    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = timezone.now()
    booking.save(update_fields=['status', 'cancelled_at'])

    tz = ZoneInfo(get_preferences(booking.owner)['timezone'])
    logger.info("Booking %s cancelled by booker", booking.id)
    send_on_commit(send_cancellation_emails, booking.id, tz)
    return booking


def list_bookings(*, owner: User, include_cancelled: bool = False, upcoming: bool = False):
    queryset = Booking.objects.filter(owner=owner)
    if not include_cancelled:
        queryset = queryset.filter(status=BookingStatus.CONFIRMED)
    if upcoming:
        queryset = queryset.filter(starts_at__gte=timezone.now())
    return queryset.order_by('starts_at')


def create_owner_booking(
    *,
    owner: User,
    booker_name: str,
    starts_at: datetime,
    duration: int,
    booker_email: str = '',
    booker_phone: str = '',
    message: str = '',
    location: str = 'Online meeting',
) -> Booking:
    """Add a meeting to the owner's own calendar. No availability rules apply."""
    booking = Booking.objects.create(
        owner=owner,
        booker_name=booker_name,
        booker_email=booker_email,
        booker_phone=booker_phone,
        message=message,
        starts_at=starts_at,
        duration=duration,
        location=location,
        source=BookingSource.OWNER,
    )
    logger.info("Owner booking %s created for %s", booking.id, owner.id)
    return booking


def delete_booking(*, owner: User, booking_id: UUID) -> None:
    """
    Remove a booking from the owner's calendar.

    Raises:
        BookingNotFoundError: If the owner has no such booking
    """
    deleted, _ = Booking.objects.filter(owner=owner, id=booking_id).delete()
    if not deleted:
        raise BookingNotFoundError(f"Booking {booking_id} not found")
