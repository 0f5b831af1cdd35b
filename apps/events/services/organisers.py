"""Event organiser onboarding."""

import logging

from django.conf import settings
from django.db import transaction

from apps.events.models import EventOrganiser, OrganiserStatus
from apps.payments.services import PaystackError, get_paystack_client
from .exceptions import OrganiserAlreadyExistsError

logger = logging.getLogger(__name__)


@transaction.atomic
def register_organiser(
    *,
    user,
    business_name: str,
    business_email: str = '',
    phone: str = '',
    bank_code: str = '',
    bank_name: str = '',
    account_number: str = '',
    account_holder: str = '',
) -> EventOrganiser:
    """
    Create an organiser profile and, with banking details, a Paystack
    settlement subaccount.

    The profile becomes active once the subaccount exists; if Paystack is
    unavailable it stays pending for manual review.

    Raises:
        OrganiserAlreadyExistsError: If user already has a profile
    """
    if EventOrganiser.objects.filter(user=user).exists():
        raise OrganiserAlreadyExistsError("You are already registered as an organiser")

    organiser = EventOrganiser.objects.create(
        user=user,
        business_name=business_name,
        business_email=business_email or user.email,
        phone=phone,
        bank_code=bank_code,
        bank_name=bank_name,
        account_number=account_number,
        account_holder=account_holder,
        status=OrganiserStatus.PENDING,
    )

    if bank_code and account_number:
        try:
            subaccount = get_paystack_client().create_subaccount(
                business_name=business_name,
                settlement_bank=bank_code,
                account_number=account_number,
                percentage_charge=settings.PAYSTACK_PLATFORM_PERCENTAGE,
                primary_contact_email=organiser.business_email,
            )
        except PaystackError as e:
            logger.error("Subaccount creation failed for organiser %s: %s", organiser.id, e)
        else:
            organiser.paystack_subaccount_code = subaccount.get('subaccount_code', '')
            if organiser.paystack_subaccount_code:
                organiser.status = OrganiserStatus.ACTIVE
            organiser.save(update_fields=['paystack_subaccount_code', 'status', 'updated_at'])
            logger.info("Organiser %s activated with subaccount %s",
                        organiser.id, organiser.paystack_subaccount_code)

    return organiser
