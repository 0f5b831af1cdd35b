"""Domain-specific exceptions for calendar booking services."""


class MeetingsServiceError(Exception):
    """Base exception for calendar booking services."""
    pass


class CalendarOwnerNotFoundError(MeetingsServiceError):
    """Raised when the calendar's user does not exist."""
    pass


class BookingDisabledError(MeetingsServiceError):
    """Raised when the owner has turned calendar booking off."""
    pass


class InvalidPreferencesError(MeetingsServiceError):
    """Raised when calendar preferences fail validation."""
    pass


class InvalidBookingError(MeetingsServiceError):
    """Raised when a booking request has a bad date, time or duration."""
    pass


class SlotUnavailableError(MeetingsServiceError):
    """Raised when the requested slot is taken or not offered."""
    pass


class BookingNotFoundError(MeetingsServiceError):
    """Raised when a booking or cancellation token does not exist."""
    pass


class BookingInPastError(MeetingsServiceError):
    """Raised when cancelling a booking that has already started."""
    pass
