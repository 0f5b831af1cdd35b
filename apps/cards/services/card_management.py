"""Card CRUD operations service."""

import logging
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F, Max

from apps.accounts.models import Plan
from ..models import Card, DEFAULT_COLOR_SCHEME
from .exceptions import CardNotFoundError

User = get_user_model()
logger = logging.getLogger(__name__)

EDITABLE_FIELDS = [
    'name', 'surname', 'occupation', 'company', 'email', 'phone',
    'socials', 'color_scheme', 'profile_image', 'company_logo',
]


def get_card(*, user_id, index: int, for_update: bool = False) -> Card:
    """
    Card at ``index`` in the user's position order.

    Raises:
        CardNotFoundError: If the index is out of range
    """
    if index < 0:
        raise CardNotFoundError(f"No card at index {index}")
    queryset = Card.objects.filter(user_id=user_id).order_by('position', 'created_at')
    if for_update:
        queryset = queryset.select_for_update()
    card = queryset[index:index + 1].first()
    if card is None:
        raise CardNotFoundError(f"No card at index {index}")
    return card


def list_cards(*, user: User) -> Dict[str, Any]:
    """
    The user's cards with scan analytics.

    Free-plan users only see their first card; the analytics then cover
    the visible card alone.
    """
    cards = list(Card.objects.filter(user=user).order_by('position', 'created_at'))
    visible = cards[:1] if user.plan == Plan.FREE else cards

    total_scans = sum(card.number_of_scan for card in visible)
    return {
        'cards': visible,
        'analytics': {
            'total_scans': total_scans,
            'cards_visible': len(visible),
            'cards_total': len(cards),
            'average_scans_per_card': round(total_scans / len(visible), 2) if visible else 0,
        },
    }


@transaction.atomic
def create_card(
    *,
    user: User,
    company: str,
    email: str,
    phone: str,
    occupation: str,
    name: str = '',
    surname: str = '',
    socials: Optional[Dict[str, str]] = None,
    color_scheme: str = DEFAULT_COLOR_SCHEME,
    profile_image: str = '',
    company_logo: str = '',
) -> Card:
    """
    Append a card after the user's existing cards.

    Returns:
        Created Card instance
    """
    # Serialise concurrent creates for the same user
    User.objects.select_for_update().filter(id=user.id).first()
    last = Card.objects.filter(user=user).aggregate(last=Max('position'))['last']

    card = Card.objects.create(
        user=user,
        position=0 if last is None else last + 1,
        name=name,
        surname=surname,
        occupation=occupation,
        company=company,
        email=email,
        phone=phone,
        socials=socials or {},
        color_scheme=color_scheme or DEFAULT_COLOR_SCHEME,
        profile_image=profile_image,
        company_logo=company_logo,
    )

    logger.info("Card %s created for user %s at position %s", card.id, user.id, card.position)
    return card


@transaction.atomic
def update_card(*, user: User, index: int, data: Dict[str, Any]) -> Card:
    """
    Update the card at ``index``.

    Raises:
        CardNotFoundError: If the index is out of range
    """
    card = get_card(user_id=user.id, index=index, for_update=True)

    for field, value in data.items():
        if field in EDITABLE_FIELDS:
            setattr(card, field, value)

    card.save()
    return card


@transaction.atomic
def delete_card(*, user: User, index: int) -> None:
    """
    Delete the card at ``index`` and close the gap in positions.

    Raises:
        CardNotFoundError: If the index is out of range
    """
    card = get_card(user_id=user.id, index=index, for_update=True)
    position = card.position
    card.delete()

    Card.objects.filter(user=user, position__gt=position).update(position=F('position') - 1)
    logger.info("Card at index %s deleted for user %s", index, user.id)


def set_card_color(*, user: User, index: int, color: str) -> Card:
    """Set the colour scheme of the card at ``index``."""
    return update_card(user=user, index=index, data={'color_scheme': color})
