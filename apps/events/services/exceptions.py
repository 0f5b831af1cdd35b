"""Domain-specific exceptions for events services."""


class EventsServiceError(Exception):
    """Base exception for events services."""
    pass


class EventNotFoundError(EventsServiceError):
    """Raised when event does not exist."""
    pass


class EventNotPublishedError(EventsServiceError):
    """Raised when registering for an event that is not published."""
    pass


class InvalidEventDataError(EventsServiceError):
    """Raised when event fields fail business validation."""
    pass


class NotEventOwnerError(EventsServiceError):
    """Raised when user is not the event's organiser."""
    pass


class EventStateError(EventsServiceError):
    """Raised when an operation does not fit the event's current status."""
    pass


class OrganiserNotActiveError(EventsServiceError):
    """Raised when a paid event is created without an active organiser profile."""
    pass


class OrganiserAlreadyExistsError(EventsServiceError):
    """Raised when user already has an organiser profile."""
    pass


class CapacityExceededError(EventsServiceError):
    """Raised when the event cannot take the requested number of attendees."""
    pass


class AlreadyRegisteredError(EventsServiceError):
    """Raised when user already holds a registration for the event."""
    pass


class PaymentPendingError(EventsServiceError):
    """Raised when an earlier payment for the same registration is still open."""

    def __init__(self, message, payment_url=''):
        super().__init__(message)
        self.payment_url = payment_url


class RegistrationNotFoundError(EventsServiceError):
    """Raised when registration does not exist."""
    pass


class InvalidAttendeesError(EventsServiceError):
    """Raised when bulk registration attendee details are invalid."""
    pass


class BulkRegistrationsNotAllowedError(EventsServiceError):
    """Raised when the event does not accept bulk registrations."""
    pass


class BulkRegistrationNotFoundError(EventsServiceError):
    """Raised when bulk registration does not exist."""
    pass


class BulkRegistrationStateError(EventsServiceError):
    """Raised when a bulk registration cannot change from its current status."""
    pass


class PaymentInitializationError(EventsServiceError):
    """Raised when the payment provider could not start a checkout."""
    pass


class TicketNotFoundError(EventsServiceError):
    """Raised when ticket does not exist or is not the user's."""
    pass


class CheckInError(EventsServiceError):
    """Raised when a check-in QR code is rejected."""

    STATUS_CODES = {
        'INVALID_QR_FORMAT': 400,
        'MISSING_QR_FIELDS': 400,
        'INVALID_QR_TYPE': 400,
        'INVALID_TOKEN': 400,
        'EXPIRED_TOKEN': 400,
        'ALREADY_USED': 409,
        'EVENT_NOT_FOUND': 404,
        'UNAUTHORIZED_ORGANIZER': 403,
        'TICKET_NOT_FOUND': 404,
        'TICKET_MISMATCH': 400,
        'TICKET_NOT_ACTIVE': 400,
        'ALREADY_CHECKED_IN': 409,
    }

    def __init__(self, code, message):
        super().__init__(message)
        self.code = code

    @property
    def status_code(self):
        return self.STATUS_CODES.get(self.code, 400)


class NotBulkRegistrationOwnerError(EventsServiceError):
    """Raised when user does not own the bulk registration."""
    pass


class PaymentMismatchError(EventsServiceError):
    """Raised when a verified payment does not match the record it references."""
    pass
