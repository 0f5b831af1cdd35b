"""
Contacts left on the public save-contact page, and the owner's address book.
"""

import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import QuerySet

from apps.accounts.models import Plan
from ..models import Card, Contact
from .card_management import get_card
from .exceptions import CardNotFoundError, ContactNotFoundError, ContactLimitReachedError

User = get_user_model()
logger = logging.getLogger(__name__)

FREE_PLAN_CONTACT_LIMIT = 20

EDITABLE_FIELDS = ['name', 'surname', 'phone', 'email', 'company', 'how_we_met']


def get_public_card(*, user_id, index: int) -> Card:
    """
    Card shown on the public save-contact page.

    Raises:
        CardNotFoundError: If there is no such card or its owner is deactivated
    """
    card = get_card(user_id=user_id, index=index)
    if not card.user.is_active:
        raise CardNotFoundError(f"No card at index {index}")
    return card


def remaining_contacts(owner: User) -> Optional[int]:
    """Contacts a free-plan owner can still receive; None when unlimited."""
    if owner.plan != Plan.FREE:
        return None
    return max(0, FREE_PLAN_CONTACT_LIMIT - Contact.objects.filter(owner=owner).count())


def send_contact_notification(contact_id) -> None:
    """Tell the card owner that someone left their details."""
    contact = Contact.objects.select_related('owner').get(id=contact_id)
    owner = contact.owner
    remaining = remaining_contacts(owner)

    body = (
        f"Hi {owner.get_display_name()},\n\n"
        f"{contact.full_name} received your XS Card and sent you their details:\n\n"
        f"Name: {contact.name}\n"
        f"Surname: {contact.surname or '-'}\n"
        f"Phone: {contact.phone}\n"
        f"Email: {contact.email or 'Not provided'}\n"
    )
    if contact.company:
        body += f"Company: {contact.company}\n"
    body += f"How you met: {contact.how_we_met or 'Not provided'}\n"
    if remaining is not None:
        body += f"\nYou have {remaining} contacts left on the free plan.\n"

    try:
        send_mail(
            "Someone saved your contact information",
            body,
            settings.DEFAULT_FROM_EMAIL,
            [owner.email],
        )
    except Exception:
        logger.exception("Failed to email %s about contact %s", owner.email, contact.id)
        return
    logger.info("Contact notification sent for %s", contact.id)


@transaction.atomic
def save_contact(
    *,
    user_id,
    index: int,
    name: str,
    phone: str,
    surname: str = '',
    email: str = '',
    company: str = '',
    how_we_met: str = '',
) -> Contact:
    """
    Store the details a visitor left for the owner of a card.

    The owner is emailed once the contact is committed.

    Raises:
        CardNotFoundError: If there is no such card or its owner is deactivated
        ContactLimitReachedError: If a free-plan owner has no contacts left
    """
    card = get_card(user_id=user_id, index=index)
    owner = User.objects.select_for_update().get(id=card.user_id)
    if not owner.is_active:
        raise CardNotFoundError(f"No card at index {index}")

    if remaining_contacts(owner) == 0:
        logger.info("Contact limit reached for free user %s", owner.id)
        raise ContactLimitReachedError("This card's owner cannot receive more contacts")

    contact = Contact.objects.create(
        owner=owner,
        card=card,
        card_index=index,
        name=name,
        surname=surname,
        phone=phone,
        email=email,
        company=company,
        how_we_met=how_we_met,
    )
    transaction.on_commit(lambda: send_contact_notification(contact.id))

    logger.info("Contact %s saved for user %s from card %s", contact.id, owner.id, index)
    return contact


def list_contacts(*, user: User) -> QuerySet:
    return Contact.objects.filter(owner=user).order_by('-created_at')


def get_contact(*, user: User, contact_id) -> Contact:
    """
    Raises:
        ContactNotFoundError: If the contact does not exist or belongs to someone else
    """
    try:
        return Contact.objects.get(id=contact_id, owner=user)
    except Contact.DoesNotExist:
        raise ContactNotFoundError(f"Contact {contact_id} not found")


@transaction.atomic
def update_contact(*, user: User, contact_id, data: Dict[str, Any]) -> Contact:
    contact = get_contact(user=user, contact_id=contact_id)

    changed = [field for field in EDITABLE_FIELDS if field in data]
    for field in changed:
        setattr(contact, field, data[field])
    if changed:
        contact.save(update_fields=changed + ['updated_at'])
    return contact


@transaction.atomic
def delete_contact(*, user: User, contact_id) -> None:
    contact = get_contact(user=user, contact_id=contact_id)
    contact.delete()
    logger.info("User %s deleted contact %s", user.id, contact_id)
