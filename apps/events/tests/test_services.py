"""
Service layer unit tests for events app.

Tests cover:
- Event creation rules and publishing with listing credits or fees
- Single registrations for free and paid events
- Bulk registration payment flow, idempotency and capacity
- QR check-in validation
"""

import json
import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.core import mail
from django.utils import timezone

from apps.accounts.models import Plan
from apps.events.models import (
    BulkRegistration,
    BulkRegistrationStatus,
    CheckInToken,
    Event,
    EventRegistration,
    EventStatus,
    ListingCreditBucket,
    OrganiserStatus,
    PaymentStatus,
    RegistrationStatus,
    Ticket,
    TicketStatus,
    TicketType,
)
from apps.events.services import (
    create_event,
    update_event,
    cancel_event,
    publish_event,
    complete_event_publishing,
    consume_listing_credit,
    get_credit_status,
    register_organiser,
    register_for_event,
    unregister_from_event,
    confirm_registration_payment,
    validate_attendees,
    create_bulk_registration,
    complete_bulk_registration,
    confirm_bulk_payment,
    fail_bulk_registration,
    cancel_bulk_registration,
    get_bulk_registration,
    process_check_in,
    validate_qr_data,
    get_check_in_stats,
)
from apps.events.services.check_in import issue_check_in_token
from apps.events.services.exceptions import (
    OrganiserNotActiveError,
    InvalidEventDataError,
    EventStateError,
    NotEventOwnerError,
    AlreadyRegisteredError,
    PaymentPendingError,
    CapacityExceededError,
    EventNotPublishedError,
    InvalidAttendeesError,
    BulkRegistrationsNotAllowedError,
    BulkRegistrationStateError,
    NotBulkRegistrationOwnerError,
    PaymentInitializationError,
    PaymentMismatchError,
    CheckInError,
)
from apps.payments.services import PaystackError, VerificationStatus
from apps.events.tests.conftest import make_verification


def _event_fields(**overrides):
    fields = {
        'title': 'Design Meetup',
        'description': 'Monthly design meetup',
        'event_date': timezone.now() + timedelta(days=7),
        'location': 'Workshop17',
        'city': 'Johannesburg',
        'max_attendees': 50,
        'allow_bulk_registrations': True,
    }
    fields.update(overrides)
    return fields


# =============================================================================
# Event Management Service Tests
# =============================================================================

@pytest.mark.django_db
class TestEventManagement:
    """Tests for event_management.py service functions."""

    def test_create_free_event_is_draft(self, organiser_user):
        event = create_event(organiser=organiser_user, **_event_fields())

        assert event.status == EventStatus.DRAFT
        assert event.event_type == 'free'
        assert event.current_attendees == 0
        assert event.allow_bulk_registrations is True

    def test_small_events_cannot_take_bulk_registrations(self, organiser_user):
        event = create_event(organiser=organiser_user, **_event_fields(max_attendees=10))

        assert event.allow_bulk_registrations is False

    def test_paid_event_requires_active_organiser(self, organiser_user):
        with pytest.raises(OrganiserNotActiveError):
            create_event(organiser=organiser_user, **_event_fields(ticket_price=Decimal('100.00')))

    def test_paid_event_with_active_organiser(self, organiser_user, active_organiser):
        event = create_event(organiser=organiser_user, **_event_fields(ticket_price=Decimal('100.00')))

        assert event.event_type == 'paid'

    def test_end_date_before_event_date_rejected(self, organiser_user):
        start = timezone.now() + timedelta(days=7)
        with pytest.raises(InvalidEventDataError):
            create_event(
                organiser=organiser_user,
                **_event_fields(event_date=start, end_date=start - timedelta(hours=1))
            )

    def test_update_published_event_rejected(self, organiser_user, free_event):
        with pytest.raises(EventStateError):
            update_event(event_id=free_event.id, user=organiser_user, title='New title')

    def test_update_by_non_owner_rejected(self, other_user, organiser_user):
        event = create_event(organiser=organiser_user, **_event_fields())
        with pytest.raises(NotEventOwnerError):
            update_event(event_id=event.id, user=other_user, title='Hijacked')

    def test_cancel_event_cancels_tickets(self, organiser_user, attendee_user, free_event):
        register_for_event(event_id=free_event.id, user=attendee_user)

        cancel_event(event_id=free_event.id, user=organiser_user)

        free_event.refresh_from_db()
        assert free_event.status == EventStatus.CANCELLED
        assert not free_event.tickets.exclude(status=TicketStatus.CANCELLED).exists()


# =============================================================================
# Listing Credits & Publishing Tests
# =============================================================================

@pytest.mark.django_db
class TestListingCredits:
    """Tests for listing_credits.py."""

    def test_welcome_credit_used_first(self, organiser_user):
        cost = consume_listing_credit(user_id=organiser_user.id)

        assert cost['price'] == 0
        assert cost['credit_type'] == 'welcome'
        organiser_user.refresh_from_db()
        assert organiser_user.welcome_credit_used is True

    def test_free_plan_pays_base_price_after_welcome(self, organiser_user):
        organiser_user.welcome_credit_used = True
        organiser_user.save()

        cost = consume_listing_credit(user_id=organiser_user.id)

        assert cost['price'] == 5000
        assert cost['credit_type'] is None

    def test_premium_monthly_credits_then_discounted_price(self, organiser_user):
        organiser_user.welcome_credit_used = True
        organiser_user.plan = Plan.PREMIUM
        organiser_user.save()

        for expected_remaining in range(4, -1, -1):
            cost = consume_listing_credit(user_id=organiser_user.id)
            assert cost['credit_type'] == 'monthly'
            assert cost['remaining_credits'] == expected_remaining

        cost = consume_listing_credit(user_id=organiser_user.id)
        assert cost['price'] == 1000

        bucket = ListingCreditBucket.objects.get(user=organiser_user)
        assert bucket.credits_allocated == 5
        assert bucket.credits_used == 5

    def test_credit_status(self, organiser_user):
        status = get_credit_status(user=organiser_user)

        assert status['tier'] == Plan.FREE
        assert status['welcome_credit_used'] is False
        assert status['monthly_credits']['allocated'] == 0
        assert status['price_after_credits'] == 5000


@pytest.mark.django_db
class TestPublishEvent:
    """Tests for publish_event and the publishing payment."""

    def test_free_event_publishes_immediately(self, organiser_user):
        event = create_event(organiser=organiser_user, **_event_fields())

        result = publish_event(event_id=event.id, user=organiser_user)

        assert result['status'] == EventStatus.PUBLISHED
        event.refresh_from_db()
        assert event.status == EventStatus.PUBLISHED
        assert event.published_at is not None

    def test_paid_event_uses_welcome_credit(self, organiser_user, draft_paid_event, paystack):
        result = publish_event(event_id=draft_paid_event.id, user=organiser_user)

        assert result['status'] == EventStatus.PUBLISHED
        assert result['credit_applied'] == 'welcome'
        paystack.initialize_transaction.assert_not_called()

    def test_paid_event_without_credit_starts_checkout(self, organiser_user, draft_paid_event, paystack):
        organiser_user.welcome_credit_used = True
        organiser_user.save()

        result = publish_event(event_id=draft_paid_event.id, user=organiser_user)

        assert result['status'] == EventStatus.PENDING_PAYMENT
        assert result['payment_url'] == 'https://checkout.paystack.com/abc123'
        assert result['reference'].startswith('evt_')
        kwargs = paystack.initialize_transaction.call_args.kwargs
        assert kwargs['amount'] == 5000
        assert kwargs['metadata']['payment_type'] == 'event_publishing'

        draft_paid_event.refresh_from_db()
        assert draft_paid_event.status == EventStatus.PENDING_PAYMENT
        assert draft_paid_event.listing_fee == 5000
        assert draft_paid_event.payment_initiated_at is not None

    def test_already_published_rejected(self, organiser_user, free_event):
        with pytest.raises(EventStateError):
            publish_event(event_id=free_event.id, user=organiser_user)

    def test_non_owner_cannot_publish(self, other_user, draft_paid_event):
        with pytest.raises(NotEventOwnerError):
            publish_event(event_id=draft_paid_event.id, user=other_user)

    def test_republish_with_successful_payment(self, organiser_user, draft_paid_event, paystack):
        organiser_user.welcome_credit_used = True
        organiser_user.save()
        first = publish_event(event_id=draft_paid_event.id, user=organiser_user)
        paystack.verify_transaction.return_value = make_verification(
            VerificationStatus.SUCCESS, amount=5000, reference=first['reference']
        )

        result = publish_event(event_id=draft_paid_event.id, user=organiser_user)

        assert result['status'] == EventStatus.PUBLISHED
        paystack.verify_transaction.assert_called_once_with(first['reference'])

    def test_republish_after_abandoned_payment_starts_new_checkout(
        self, organiser_user, draft_paid_event, paystack
    ):
        organiser_user.welcome_credit_used = True
        organiser_user.save()
        first = publish_event(event_id=draft_paid_event.id, user=organiser_user)
        paystack.verify_transaction.return_value = make_verification(VerificationStatus.ABANDONED)

        result = publish_event(event_id=draft_paid_event.id, user=organiser_user)

        assert result['status'] == EventStatus.PENDING_PAYMENT
        assert result['reference'] != first['reference']
        assert paystack.initialize_transaction.call_count == 2

    def test_republish_while_pending_returns_same_checkout(self, organiser_user, draft_paid_event, paystack):
        organiser_user.welcome_credit_used = True
        organiser_user.save()
        first = publish_event(event_id=draft_paid_event.id, user=organiser_user)

        result = publish_event(event_id=draft_paid_event.id, user=organiser_user)

        assert result['reference'] == first['reference']
        assert paystack.initialize_transaction.call_count == 1

    def test_checkout_failure_reverts_to_draft(self, organiser_user, draft_paid_event, paystack):
        organiser_user.welcome_credit_used = True
        organiser_user.save()
        paystack.initialize_transaction.side_effect = PaystackError("Paystack request failed")

        with pytest.raises(PaymentInitializationError):
            publish_event(event_id=draft_paid_event.id, user=organiser_user)

        draft_paid_event.refresh_from_db()
        assert draft_paid_event.status == EventStatus.DRAFT
        assert draft_paid_event.payment_reference is None

    def test_stale_pending_payment_starts_new_checkout(self, organiser_user, draft_paid_event, paystack):
        organiser_user.welcome_credit_used = True
        organiser_user.save()
        first = publish_event(event_id=draft_paid_event.id, user=organiser_user)
        Event.objects.filter(id=draft_paid_event.id).update(
            payment_initiated_at=timezone.now() - timedelta(hours=2)
        )

        result = publish_event(event_id=draft_paid_event.id, user=organiser_user)

        assert result['reference'] != first['reference']

    def test_complete_publishing_is_idempotent(self, organiser_user, draft_paid_event, paystack):
        organiser_user.welcome_credit_used = True
        organiser_user.save()
        reference = publish_event(event_id=draft_paid_event.id, user=organiser_user)['reference']
        verification = make_verification(amount=5000, reference=reference)

        complete_event_publishing(reference=reference, verification=verification)
        event = complete_event_publishing(reference=reference, verification=verification)

        assert event.status == EventStatus.PUBLISHED

    def test_underpaid_publishing_fee_rejected(self, organiser_user, draft_paid_event, paystack):
        organiser_user.welcome_credit_used = True
        organiser_user.save()
        reference = publish_event(event_id=draft_paid_event.id, user=organiser_user)['reference']

        with pytest.raises(PaymentMismatchError):
            complete_event_publishing(
                reference=reference,
                verification=make_verification(amount=100, reference=reference),
            )


@pytest.mark.django_db
class TestOrganiserRegistration:
    """Tests for organisers.py."""

    def test_subaccount_activates_organiser(self, organiser_user, paystack):
        organiser = register_organiser(
            user=organiser_user,
            business_name='Cape Events',
            bank_code='058',
            account_number='0123456789',
        )

        assert organiser.status == OrganiserStatus.ACTIVE
        assert organiser.paystack_subaccount_code == 'ACCT_new456'
        assert paystack.create_subaccount.call_args.kwargs['percentage_charge'] == 10

    def test_paystack_failure_leaves_organiser_pending(self, organiser_user, paystack):
        paystack.create_subaccount.side_effect = PaystackError("Bank not supported")

        organiser = register_organiser(
            user=organiser_user,
            business_name='Cape Events',
            bank_code='999',
            account_number='0123456789',
        )

        assert organiser.status == OrganiserStatus.PENDING
        assert organiser.paystack_subaccount_code == ''


# =============================================================================
# Single Registration Tests
# =============================================================================

@pytest.mark.django_db
class TestRegistration:
    """Tests for registrations.py."""

    def test_free_registration_issues_active_ticket(self, attendee_user, free_event):
        result = register_for_event(event_id=free_event.id, user=attendee_user)

        assert result['payment_required'] is False
        assert result['registration'].status == RegistrationStatus.REGISTERED
        assert result['ticket'].status == TicketStatus.ACTIVE
        free_event.refresh_from_db()
        assert free_event.current_attendees == 1

    def test_duplicate_registration_rejected(self, attendee_user, free_event):
        register_for_event(event_id=free_event.id, user=attendee_user)

        with pytest.raises(AlreadyRegisteredError):
            register_for_event(event_id=free_event.id, user=attendee_user)

    def test_full_event_rejected(self, attendee_user, free_event):
        free_event.max_attendees = 5
        free_event.current_attendees = 5
        free_event.save()

        with pytest.raises(CapacityExceededError):
            register_for_event(event_id=free_event.id, user=attendee_user)

    def test_unpublished_event_rejected(self, attendee_user, draft_paid_event):
        with pytest.raises(EventNotPublishedError):
            register_for_event(event_id=draft_paid_event.id, user=attendee_user)

    def test_paid_registration_starts_split_checkout(self, attendee_user, paid_event, paystack):
        result = register_for_event(event_id=paid_event.id, user=attendee_user)

        assert result['payment_required'] is True
        assert result['reference'].startswith('reg_')
        assert result['registration'].status == RegistrationStatus.PENDING_PAYMENT
        assert result['ticket'].status == TicketStatus.PENDING_PAYMENT

        kwargs = paystack.initialize_transaction.call_args.kwargs
        assert kwargs['amount'] == 15000
        assert kwargs['subaccount'] == 'ACCT_test123'
        assert kwargs['transaction_charge'] == 1000
        assert kwargs['metadata']['type'] == 'event_registration'

        paid_event.refresh_from_db()
        assert paid_event.current_attendees == 0

    def test_open_checkout_blocks_new_registration(self, attendee_user, paid_event, paystack):
        register_for_event(event_id=paid_event.id, user=attendee_user)

        with pytest.raises(PaymentPendingError) as exc_info:
            register_for_event(event_id=paid_event.id, user=attendee_user)

        assert exc_info.value.payment_url == 'https://checkout.paystack.com/abc123'

    def test_failed_checkout_is_replaced(self, attendee_user, paid_event, paystack):
        first = register_for_event(event_id=paid_event.id, user=attendee_user)
        paystack.verify_transaction.return_value = make_verification(VerificationStatus.FAILED)

        second = register_for_event(event_id=paid_event.id, user=attendee_user)

        assert second['reference'] != first['reference']
        assert not EventRegistration.objects.filter(id=first['registration'].id).exists()

    def test_stale_checkout_that_succeeded_is_activated(self, attendee_user, paid_event, paystack):
        first = register_for_event(event_id=paid_event.id, user=attendee_user)
        paystack.verify_transaction.return_value = make_verification(amount=15000, reference=first['reference'])

        result = register_for_event(event_id=paid_event.id, user=attendee_user)

        assert result['payment_required'] is False
        assert result['registration'].id == first['registration'].id
        assert result['registration'].status == RegistrationStatus.REGISTERED
        assert result['ticket'].status == TicketStatus.ACTIVE
        assert paystack.initialize_transaction.call_count == 1
        paid_event.refresh_from_db()
        assert paid_event.current_attendees == 1

    def test_stale_checkout_that_succeeded_after_event_filled_up(self, attendee_user, paid_event, paystack):
        first = register_for_event(event_id=paid_event.id, user=attendee_user)
        Event.objects.filter(id=paid_event.id).update(current_attendees=paid_event.max_attendees)
        paystack.verify_transaction.return_value = make_verification(amount=15000, reference=first['reference'])

        with pytest.raises(CapacityExceededError):
            register_for_event(event_id=paid_event.id, user=attendee_user)

        registration = EventRegistration.objects.get(id=first['registration'].id)
        assert registration.status == RegistrationStatus.CANCELLED
        assert registration.payment_status == PaymentStatus.COMPLETED
        assert registration.tickets.get().status == TicketStatus.CANCELLED
        paid_event.refresh_from_db()
        assert paid_event.current_attendees == paid_event.max_attendees

    def test_checkout_failure_keeps_registration_with_failed_payment(self, attendee_user, paid_event, paystack):
        paystack.initialize_transaction.side_effect = PaystackError("Paystack request failed")

        with pytest.raises(PaymentInitializationError):
            register_for_event(event_id=paid_event.id, user=attendee_user)

        registration = EventRegistration.objects.get(event=paid_event, user=attendee_user)
        assert registration.payment_status == PaymentStatus.FAILED
        assert registration.payment_reference.startswith('reg_')
        assert registration.payment_url == ''

    def test_confirm_payment_activates_ticket(self, attendee_user, paid_event, paystack):
        result = register_for_event(event_id=paid_event.id, user=attendee_user)
        verification = make_verification(amount=15000, reference=result['reference'])

        registration = confirm_registration_payment(reference=result['reference'], verification=verification)
        confirm_registration_payment(reference=result['reference'], verification=verification)

        assert registration.status == RegistrationStatus.REGISTERED
        assert registration.payment_status == PaymentStatus.COMPLETED
        assert registration.tickets.get().status == TicketStatus.ACTIVE
        paid_event.refresh_from_db()
        assert paid_event.current_attendees == 1

    def test_confirm_payment_when_event_filled_up(self, attendee_user, paid_event, paystack):
        result = register_for_event(event_id=paid_event.id, user=attendee_user)
        Event.objects.filter(id=paid_event.id).update(current_attendees=paid_event.max_attendees)

        registration = confirm_registration_payment(
            reference=result['reference'],
            verification=make_verification(amount=15000),
        )

        assert registration.status == RegistrationStatus.CANCELLED
        paid_event.refresh_from_db()
        assert paid_event.current_attendees == paid_event.max_attendees

    def test_unregister_frees_seat(self, attendee_user, free_event):
        register_for_event(event_id=free_event.id, user=attendee_user)

        registration = unregister_from_event(event_id=free_event.id, user=attendee_user)

        assert registration.status == RegistrationStatus.CANCELLED
        assert registration.tickets.get().status == TicketStatus.CANCELLED
        free_event.refresh_from_db()
        assert free_event.current_attendees == 0

    def test_unregister_pending_keeps_count(self, attendee_user, paid_event, paystack):
        register_for_event(event_id=paid_event.id, user=attendee_user)
        Event.objects.filter(id=paid_event.id).update(current_attendees=3)

        unregister_from_event(event_id=paid_event.id, user=attendee_user)

        paid_event.refresh_from_db()
        assert paid_event.current_attendees == 3

    def test_ticket_email_sent_after_commit(self, attendee_user, free_event, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            register_for_event(event_id=free_event.id, user=attendee_user)

        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == ['attendee@example.com']
        assert mail.outbox[0].attachments[0][2] == 'image/png'


# =============================================================================
# Bulk Registration Tests
# =============================================================================

class TestValidateAttendees:
    """Tests for validate_attendees()."""

    def test_valid_attendees_are_cleaned(self, attendees):
        attendees[0]['email'] = ' Thandi@Example.com '

        cleaned = validate_attendees(attendees, 3)

        assert cleaned[0]['email'] == 'thandi@example.com'
        assert cleaned[2]['phone'] == ''

    def test_empty_list_rejected(self):
        with pytest.raises(InvalidAttendeesError):
            validate_attendees([], 2)

    @pytest.mark.parametrize('quantity', [1, 51])
    def test_quantity_bounds(self, quantity):
        attendees = [{'name': f'A{i}', 'email': f'a{i}@example.com'} for i in range(quantity)]
        with pytest.raises(InvalidAttendeesError):
            validate_attendees(attendees, quantity)

    def test_count_must_match_quantity(self, attendees):
        with pytest.raises(InvalidAttendeesError):
            validate_attendees(attendees, 4)

    def test_duplicate_emails_case_insensitive(self, attendees):
        attendees[1]['email'] = 'THANDI@example.com'
        with pytest.raises(InvalidAttendeesError, match='Duplicate'):
            validate_attendees(attendees, 3)

    def test_missing_name_rejected(self, attendees):
        attendees[2]['name'] = '  '
        with pytest.raises(InvalidAttendeesError):
            validate_attendees(attendees, 3)

    def test_invalid_email_rejected(self, attendees):
        attendees[1]['email'] = 'not-an-email'
        with pytest.raises(InvalidAttendeesError):
            validate_attendees(attendees, 3)


@pytest.mark.django_db
class TestBulkRegistration:
    """Tests for bulk_registration.py."""

    def test_paid_bulk_registration_starts_checkout(self, attendee_user, paid_event, attendees, paystack):
        result = create_bulk_registration(
            event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
        )

        bulk = result['bulk_registration']
        assert result['payment_required'] is True
        assert bulk.status == BulkRegistrationStatus.PENDING_PAYMENT
        assert bulk.total_amount == Decimal('450.00')
        assert bulk.payment_reference.startswith(f'BULK_{bulk.id}_')
        assert not bulk.tickets.exists()

        kwargs = paystack.initialize_transaction.call_args.kwargs
        assert kwargs['amount'] == 45000
        assert kwargs['metadata']['type'] == 'bulk_registration'
        assert kwargs['metadata']['quantity'] == 3
        assert kwargs['subaccount'] == 'ACCT_test123'

    def test_successful_payment_creates_quantity_tickets(self, attendee_user, paid_event, attendees, paystack):
        bulk = create_bulk_registration(
            event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
        )['bulk_registration']

        bulk = confirm_bulk_payment(
            reference=bulk.payment_reference,
            verification=make_verification(amount=45000, reference=bulk.payment_reference),
        )

        assert bulk.status == BulkRegistrationStatus.COMPLETED
        assert bulk.completed_at is not None
        tickets = list(bulk.tickets.order_by('attendee_index'))
        assert len(tickets) == bulk.quantity
        assert [t.attendee_index for t in tickets] == [1, 2, 3]
        assert {t.ticket_type for t in tickets} == {TicketType.ATTENDEE}
        assert {t.status for t in tickets} == {TicketStatus.ACTIVE}
        assert tickets[1].attendee_email == 'pieter@example.com'
        paid_event.refresh_from_db()
        assert paid_event.current_attendees == 3

    def test_duplicate_completion_creates_no_extra_tickets(self, attendee_user, paid_event, attendees, paystack):
        bulk = create_bulk_registration(
            event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
        )['bulk_registration']
        verification = make_verification(amount=45000, reference=bulk.payment_reference)

        confirm_bulk_payment(reference=bulk.payment_reference, verification=verification)
        confirm_bulk_payment(reference=bulk.payment_reference, verification=verification)
        complete_bulk_registration(bulk_registration_id=bulk.id)

        assert Ticket.objects.filter(bulk_registration=bulk).count() == 3
        paid_event.refresh_from_db()
        assert paid_event.current_attendees == 3

    def test_failure_marks_failed_without_tickets(self, attendee_user, paid_event, attendees, paystack):
        bulk = create_bulk_registration(
            event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
        )['bulk_registration']

        bulk = fail_bulk_registration(reference=bulk.payment_reference)

        assert bulk.status == BulkRegistrationStatus.FAILED
        assert bulk.payment_status == PaymentStatus.FAILED
        assert not bulk.tickets.exists()

    def test_underpayment_rejected(self, attendee_user, paid_event, attendees, paystack):
        bulk = create_bulk_registration(
            event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
        )['bulk_registration']

        with pytest.raises(PaymentMismatchError):
            confirm_bulk_payment(
                reference=bulk.payment_reference,
                verification=make_verification(amount=15000),
            )
        assert not bulk.tickets.exists()

    def test_capacity_rechecked_at_completion(self, attendee_user, paid_event, attendees, paystack):
        bulk = create_bulk_registration(
            event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
        )['bulk_registration']
        Event.objects.filter(id=paid_event.id).update(current_attendees=19)

        bulk = complete_bulk_registration(bulk_registration_id=bulk.id)

        assert bulk.status == BulkRegistrationStatus.FAILED
        assert bulk.failure_reason == 'Event capacity exceeded'
        assert not bulk.tickets.exists()
        paid_event.refresh_from_db()
        assert paid_event.current_attendees <= paid_event.max_attendees

    def test_capacity_checked_up_front(self, attendee_user, paid_event, attendees, paystack):
        Event.objects.filter(id=paid_event.id).update(current_attendees=18)

        with pytest.raises(CapacityExceededError):
            create_bulk_registration(
                event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
            )

    def test_bulk_disabled_event_rejected(self, attendee_user, paid_event, attendees, paystack):
        Event.objects.filter(id=paid_event.id).update(allow_bulk_registrations=False)

        with pytest.raises(BulkRegistrationsNotAllowedError):
            create_bulk_registration(
                event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
            )

    def test_checkout_failure_marks_failed(self, attendee_user, paid_event, attendees, paystack):
        paystack.initialize_transaction.side_effect = PaystackError("Paystack request failed")

        with pytest.raises(PaymentInitializationError):
            create_bulk_registration(
                event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
            )

        bulk = BulkRegistration.objects.get(user=attendee_user)
        assert bulk.status == BulkRegistrationStatus.FAILED

    def test_free_event_completes_immediately(self, attendee_user, free_event, attendees):
        result = create_bulk_registration(
            event_id=free_event.id, user=attendee_user, quantity=3, attendees=attendees
        )

        assert result['payment_required'] is False
        assert len(result['tickets']) == 3
        assert result['bulk_registration'].status == BulkRegistrationStatus.COMPLETED
        assert result['bulk_registration'].payment_status == PaymentStatus.NOT_REQUIRED

    def test_free_event_full_at_completion_raises(self, attendee_user, free_event, attendees):
        with patch.object(Event, 'has_capacity_for', side_effect=[True, False]):
            with pytest.raises(CapacityExceededError):
                create_bulk_registration(
                    event_id=free_event.id, user=attendee_user, quantity=3, attendees=attendees
                )

        bulk = BulkRegistration.objects.get(user=attendee_user)
        assert bulk.status == BulkRegistrationStatus.FAILED
        assert not bulk.tickets.exists()

    def test_completion_emails_every_attendee(
        self, attendee_user, free_event, attendees, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            create_bulk_registration(
                event_id=free_event.id, user=attendee_user, quantity=3, attendees=attendees
            )

        recipients = sorted(message.to[0] for message in mail.outbox)
        assert recipients == ['aisha@example.com', 'pieter@example.com', 'thandi@example.com']

    def test_cancel_only_while_pending(self, attendee_user, paid_event, attendees, paystack):
        bulk = create_bulk_registration(
            event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
        )['bulk_registration']

        bulk = cancel_bulk_registration(bulk_registration_id=bulk.id, user=attendee_user)
        assert bulk.status == BulkRegistrationStatus.CANCELLED

        with pytest.raises(BulkRegistrationStateError):
            cancel_bulk_registration(bulk_registration_id=bulk.id, user=attendee_user)

    def test_cancelled_registration_never_completes(self, attendee_user, paid_event, attendees, paystack):
        bulk = create_bulk_registration(
            event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
        )['bulk_registration']
        cancel_bulk_registration(bulk_registration_id=bulk.id, user=attendee_user)

        with pytest.raises(BulkRegistrationStateError):
            complete_bulk_registration(bulk_registration_id=bulk.id)

    def test_only_owner_can_view(self, attendee_user, other_user, paid_event, attendees, paystack):
        bulk = create_bulk_registration(
            event_id=paid_event.id, user=attendee_user, quantity=3, attendees=attendees
        )['bulk_registration']

        with pytest.raises(NotBulkRegistrationOwnerError):
            get_bulk_registration(bulk_registration_id=bulk.id, user=other_user)


# =============================================================================
# Check-in Tests
# =============================================================================

@pytest.mark.django_db
class TestCheckIn:
    """Tests for check_in.py."""

    @pytest.fixture
    def ticket(self, attendee_user, free_event):
        return register_for_event(event_id=free_event.id, user=attendee_user)['ticket']

    def test_valid_code_checks_in(self, organiser_user, free_event, ticket):
        payload = issue_check_in_token(ticket=ticket)

        checked = process_check_in(event_id=free_event.id, organiser=organiser_user, qr_data=json.dumps(payload))

        assert checked.checked_in is True
        assert checked.checked_in_by == organiser_user
        token = CheckInToken.objects.get(token=payload['verification_token'])
        assert token.used is True

    def test_code_cannot_be_reused(self, organiser_user, free_event, ticket):
        payload = issue_check_in_token(ticket=ticket)
        process_check_in(event_id=free_event.id, organiser=organiser_user, qr_data=payload)

        with pytest.raises(CheckInError) as exc_info:
            process_check_in(event_id=free_event.id, organiser=organiser_user, qr_data=payload)

        assert exc_info.value.code == 'ALREADY_USED'
        assert exc_info.value.status_code == 409

    def test_second_code_for_checked_in_ticket(self, organiser_user, free_event, ticket):
        process_check_in(
            event_id=free_event.id, organiser=organiser_user, qr_data=issue_check_in_token(ticket=ticket)
        )

        with pytest.raises(CheckInError) as exc_info:
            process_check_in(
                event_id=free_event.id, organiser=organiser_user, qr_data=issue_check_in_token(ticket=ticket)
            )

        assert exc_info.value.code == 'ALREADY_CHECKED_IN'

    def test_only_organiser_can_check_in(self, other_user, free_event, ticket):
        payload = issue_check_in_token(ticket=ticket)

        with pytest.raises(CheckInError) as exc_info:
            process_check_in(event_id=free_event.id, organiser=other_user, qr_data=payload)

        assert exc_info.value.code == 'UNAUTHORIZED_ORGANIZER'
        assert exc_info.value.status_code == 403

    def test_expired_code_rejected(self, organiser_user, free_event, ticket):
        payload = issue_check_in_token(ticket=ticket)
        CheckInToken.objects.filter(token=payload['verification_token']).update(
            expires_at=timezone.now() - timedelta(minutes=1)
        )

        with pytest.raises(CheckInError) as exc_info:
            process_check_in(event_id=free_event.id, organiser=organiser_user, qr_data=payload)

        assert exc_info.value.code == 'EXPIRED_TOKEN'

    def test_code_for_other_event_rejected(self, organiser_user, free_event, paid_event, ticket):
        payload = issue_check_in_token(ticket=ticket)

        with pytest.raises(CheckInError) as exc_info:
            process_check_in(event_id=paid_event.id, organiser=organiser_user, qr_data=payload)

        assert exc_info.value.code == 'TICKET_MISMATCH'

    def test_stats_after_check_in(self, organiser_user, free_event, ticket):
        process_check_in(
            event_id=free_event.id, organiser=organiser_user, qr_data=issue_check_in_token(ticket=ticket)
        )

        stats = get_check_in_stats(event_id=free_event.id, organiser=organiser_user)

        assert stats['total_tickets'] == 1
        assert stats['checked_in'] == 1
        assert stats['check_in_rate'] == 100.0


class TestValidateQrData:
    """Tests for validate_qr_data()."""

    def _payload(self, **overrides):
        from apps.events.services.check_in import make_verification_token

        payload = {
            'event_id': 'e1',
            'user_id': 'u1',
            'ticket_id': 't1',
            'timestamp': 1700000000000,
            'type': 'event_checkin',
            'version': '1.0',
        }
        payload['verification_token'] = make_verification_token('e1', 'u1', 't1', 1700000000000)
        payload.update(overrides)
        return payload

    def test_valid_payload(self):
        assert validate_qr_data(json.dumps(self._payload()))['ticket_id'] == 't1'

    @pytest.mark.parametrize('qr_data,code', [
        ('not json', 'INVALID_QR_FORMAT'),
        ('[1, 2]', 'INVALID_QR_FORMAT'),
        ('{"event_id": "e1"}', 'MISSING_QR_FIELDS'),
    ])
    def test_malformed_payloads(self, qr_data, code):
        with pytest.raises(CheckInError) as exc_info:
            validate_qr_data(qr_data)
        assert exc_info.value.code == code

    def test_wrong_type(self):
        with pytest.raises(CheckInError) as exc_info:
            validate_qr_data(self._payload(type='contact'))
        assert exc_info.value.code == 'INVALID_QR_TYPE'

    def test_tampered_token(self):
        with pytest.raises(CheckInError) as exc_info:
            validate_qr_data(self._payload(ticket_id='t2'))
        assert exc_info.value.code == 'INVALID_TOKEN'
