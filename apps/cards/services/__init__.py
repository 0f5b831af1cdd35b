"""Services for business cards, contact sharing and wallet passes."""

from .exceptions import (
    CardsServiceError,
    CardNotFoundError,
    WalletNotConfiguredError,
    WalletPassError,
    ContactNotFoundError,
    ContactLimitReachedError,
)
from .card_management import (
    get_card,
    list_cards,
    create_card,
    update_card,
    delete_card,
    set_card_color,
)
from .contact_sharing import (
    save_contact_url,
    generate_card_qr,
    build_vcard,
    get_contact_vcard,
)
from .contacts import (
    FREE_PLAN_CONTACT_LIMIT,
    get_public_card,
    remaining_contacts,
    save_contact,
    list_contacts,
    get_contact,
    update_contact,
    delete_contact,
)
from .wallet import (
    detect_platform,
    pass_template,
    generate_wallet_pass,
    preview_wallet_pass,
)

__all__ = [
    # Exceptions
    'CardsServiceError',
    'CardNotFoundError',
    'WalletNotConfiguredError',
    'WalletPassError',
    'ContactNotFoundError',
    'ContactLimitReachedError',
    # Card management
    'get_card',
    'list_cards',
    'create_card',
    'update_card',
    'delete_card',
    'set_card_color',
    # Contact sharing
    'save_contact_url',
    'generate_card_qr',
    'build_vcard',
    'get_contact_vcard',
    # Contacts
    'FREE_PLAN_CONTACT_LIMIT',
    'get_public_card',
    'remaining_contacts',
    'save_contact',
    'list_contacts',
    'get_contact',
    'update_contact',
    'delete_contact',
    # Wallet passes
    'detect_platform',
    'pass_template',
    'generate_wallet_pass',
    'preview_wallet_pass',
]
