"""Services for events, registrations, tickets and check-in."""

from .exceptions import (
    EventsServiceError,
    EventNotFoundError,
    EventNotPublishedError,
    InvalidEventDataError,
    NotEventOwnerError,
    EventStateError,
    OrganiserNotActiveError,
    OrganiserAlreadyExistsError,
    CapacityExceededError,
    AlreadyRegisteredError,
    PaymentPendingError,
    RegistrationNotFoundError,
    InvalidAttendeesError,
    BulkRegistrationsNotAllowedError,
    BulkRegistrationNotFoundError,
    BulkRegistrationStateError,
    PaymentInitializationError,
    TicketNotFoundError,
    CheckInError,
    NotBulkRegistrationOwnerError,
    PaymentMismatchError,
)
from .listing_credits import (
    consume_listing_credit,
    get_credit_status,
)
from .event_management import (
    create_event,
    update_event,
    cancel_event,
    publish_event,
    complete_event_publishing,
    fail_event_publishing,
)
from .organisers import register_organiser
from .registrations import (
    register_for_event,
    unregister_from_event,
    confirm_registration_payment,
    fail_registration_payment,
)
from .bulk_registration import (
    validate_attendees,
    create_bulk_registration,
    complete_bulk_registration,
    confirm_bulk_payment,
    fail_bulk_registration,
    get_bulk_registration,
    cancel_bulk_registration,
)
from .check_in import (
    generate_ticket_qr,
    validate_qr_data,
    process_check_in,
    get_check_in_stats,
    get_attendees,
)
from .notifications import send_ticket_email

__all__ = [
    # Exceptions
    'EventsServiceError',
    'EventNotFoundError',
    'EventNotPublishedError',
    'InvalidEventDataError',
    'NotEventOwnerError',
    'EventStateError',
    'OrganiserNotActiveError',
    'OrganiserAlreadyExistsError',
    'CapacityExceededError',
    'AlreadyRegisteredError',
    'PaymentPendingError',
    'RegistrationNotFoundError',
    'InvalidAttendeesError',
    'BulkRegistrationsNotAllowedError',
    'BulkRegistrationNotFoundError',
    'BulkRegistrationStateError',
    'PaymentInitializationError',
    'TicketNotFoundError',
    'CheckInError',
    'NotBulkRegistrationOwnerError',
    'PaymentMismatchError',
    # Listing credits
    'consume_listing_credit',
    'get_credit_status',
    # Events
    'create_event',
    'update_event',
    'cancel_event',
    'publish_event',
    'complete_event_publishing',
    'fail_event_publishing',
    # Organisers
    'register_organiser',
    # Registrations
    'register_for_event',
    'unregister_from_event',
    'confirm_registration_payment',
    'fail_registration_payment',
    # Bulk registrations
    'validate_attendees',
    'create_bulk_registration',
    'complete_bulk_registration',
    'confirm_bulk_payment',
    'fail_bulk_registration',
    'get_bulk_registration',
    'cancel_bulk_registration',
    # Check-in
    'generate_ticket_qr',
    'validate_qr_data',
    'process_check_in',
    'get_check_in_stats',
    'get_attendees',
    'send_ticket_email',
]
