"""Password sign-in and sign-out."""

import logging

from django.db import transaction
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken

from .exceptions import InvalidCredentialsError, InactiveAccountError, InvalidTokenError

User = get_user_model()
logger = logging.getLogger(__name__)


@transaction.atomic
def authenticate_user(*, email: str, password: str) -> User:
    """
    Check an email and password and stamp ``last_login``.

    Emails match case-insensitively. Accounts created through Google or
    LinkedIn have no usable password and never match here.

    Raises:
        InvalidCredentialsError: If no account matches the email and password
        InactiveAccountError: If the account was deleted or deactivated
    """
    user = (
        User.objects
        .select_for_update()
        .filter(email__iexact=email)
        .first()
    )
    if user is None or not user.check_password(password):
        logger.info("Failed sign-in for %s", email)
        raise InvalidCredentialsError("Invalid email or password")

    if not user.is_active:
        raise InactiveAccountError("Account is deactivated")

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    return user


def logout_user(*, user: User, refresh: str) -> None:
    """
    Blacklist the user's refresh token so it can no longer be exchanged.

    Raises:
        InvalidTokenError: If the token is malformed, expired, already
            blacklisted or issued to another user
    """
    try:
        token = RefreshToken(refresh)
    except TokenError:
        raise InvalidTokenError("Invalid token")

    if str(token.get(api_settings.USER_ID_CLAIM)) != str(user.id):
        raise InvalidTokenError("Invalid token")

    token.blacklist()
    logger.info("User %s logged out", user.id)
