"""
Public contact sharing: the card QR code and the vCard it leads to.
"""

import logging
from urllib.parse import urlencode

import qrcode
from django.conf import settings
from django.db import transaction
from django.db.models import F

from apps.events.services.check_in import render_qr_png
from ..models import Card
from .card_management import get_card

logger = logging.getLogger(__name__)


def save_contact_url(user_id, index: int) -> str:
    """Public page that saves the card at ``index`` to the scanner's contacts."""
    query = urlencode({'userId': str(user_id), 'cardIndex': index})
    return f"{settings.PUBLIC_BASE_URL}/saveContact?{query}"


def generate_card_qr(*, user_id, index: int) -> bytes:
    """
    PNG QR code pointing at the card's save-contact page.

    Raises:
        CardNotFoundError: If the user has no card at ``index``
    """
    get_card(user_id=user_id, index=index)
    return render_qr_png(
        save_contact_url(user_id, index),
        error_correction=qrcode.constants.ERROR_CORRECT_H,
    )


def _escape(value: str) -> str:
    return (
        (value or '')
        .replace('\\', '\\\\')
        .replace('\n', '\\n')
        .replace(',', '\\,')
        .replace(';', '\\;')
    )


def build_vcard(card: Card) -> str:
    """Render ``card`` as a vCard 3.0 document."""
    lines = [
        'BEGIN:VCARD',
        'VERSION:3.0',
        f'N:{_escape(card.surname)};{_escape(card.name)};;;',
        f'FN:{_escape(card.full_name or card.company)}',
    ]
    if card.company:
        lines.append(f'ORG:{_escape(card.company)}')
    if card.occupation:
        lines.append(f'TITLE:{_escape(card.occupation)}')
    if card.email:
        lines.append(f'EMAIL;TYPE=INTERNET:{card.email}')
    if card.phone:
        lines.append(f'TEL;TYPE=CELL:{card.phone}')
    for network, url in sorted((card.socials or {}).items()):
        if url:
            lines.append(f'URL;TYPE={_escape(network)}:{url}')
    if card.profile_image:
        lines.append(f'PHOTO;VALUE=URI:{card.profile_image}')
    lines.append('END:VCARD')
    return '\r\n'.join(lines) + '\r\n'


@transaction.atomic
def get_contact_vcard(*, user_id, index: int) -> tuple:
    """
    vCard for a public card download, counting it as a scan.

    Returns:
        (vcard text, file name)

    Raises:
        CardNotFoundError: If the user has no card at ``index``
    """
    card = get_card(user_id=user_id, index=index, for_update=True)
    Card.objects.filter(id=card.id).update(number_of_scan=F('number_of_scan') + 1)
    logger.info("Card %s scanned", card.id)

    filename = '_'.join(filter(None, [card.name, card.surname])) or 'contact'
    return build_vcard(card), f"{filename}.vcf"
