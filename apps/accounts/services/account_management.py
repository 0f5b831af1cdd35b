"""Account management service."""

import logging

from django.db import transaction
from django.contrib.auth import get_user_model
from uuid import UUID

from .exceptions import PasswordConfirmationError

User = get_user_model()
logger = logging.getLogger(__name__)


@transaction.atomic
def delete_user_account(*, user_id: UUID, password: str) -> None:
    """
    Delete an account by anonymizing it.

    Cards and calendar bookings are removed; tickets and registrations are
    kept for the organisers' records.

    Raises:
        PasswordConfirmationError: If password is incorrect
    """
    user = (
        User.objects
        .select_for_update()
        .get(id=user_id)
    )

    # OAuth accounts have no usable password to confirm with
    if user.has_usable_password() and not user.check_password(password):
        raise PasswordConfirmationError("Invalid password")

    user.cards.all().delete()
    user.bookings.all().delete()
    user.anonymize()
    logger.info("Anonymized user %s", user_id)
