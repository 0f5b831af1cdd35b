"""Services for calendar preferences, availability and bookings."""

from .exceptions import (
    MeetingsServiceError,
    CalendarOwnerNotFoundError,
    BookingDisabledError,
    InvalidPreferencesError,
    InvalidBookingError,
    SlotUnavailableError,
    BookingNotFoundError,
    BookingInPastError,
)
from .preferences import (
    DEFAULT_PREFERENCES,
    merge_preferences,
    get_preferences,
    validate_preferences,
    update_preferences,
)
from .availability import (
    generate_day_slots,
    is_conflicting,
    is_date_blocked,
    calculate_availability,
    is_slot_available,
)
from .bookings import (
    get_public_availability,
    create_public_booking,
    cancel_booking_by_token,
    list_bookings,
    create_owner_booking,
    delete_booking,
)

__all__ = [
    # Exceptions
    'MeetingsServiceError',
    'CalendarOwnerNotFoundError',
    'BookingDisabledError',
    'InvalidPreferencesError',
    'InvalidBookingError',
    'SlotUnavailableError',
    'BookingNotFoundError',
    'BookingInPastError',
    # Preferences
    'DEFAULT_PREFERENCES',
    'merge_preferences',
    'get_preferences',
    'validate_preferences',
    'update_preferences',
    # Availability
    'generate_day_slots',
    'is_conflicting',
    'is_date_blocked',
    'calculate_availability',
    'is_slot_available',
    # Bookings
    'get_public_availability',
    'create_public_booking',
    'cancel_booking_by_token',
    'list_bookings',
    'create_owner_booking',
    'delete_booking',
]
