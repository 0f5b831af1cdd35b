"""Password reset service."""

import logging
from datetime import timedelta
from urllib.parse import urlencode

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken

from .exceptions import UserNotFoundError, InvalidTokenError
from .tokens import new_token, hash_token

User = get_user_model()
logger = logging.getLogger(__name__)

RESET_TOKEN_LIFETIME = timedelta(hours=1)


def reset_url(token: str) -> str:
    return f"{settings.PASSWORD_RESET_URL}?{urlencode({'token': token})}"


def _send_reset_email(user_id, token: str) -> None:
    user = User.objects.get(id=user_id)
    try:
        send_mail(
            "Reset your XS Card password",
            (
                f"Hi {user.get_display_name()},\n\n"
                "Someone asked to reset the password of your XS Card account.\n"
                f"Choose a new password here within the next hour:\n\n{reset_url(token)}\n\n"
                "If this was not you, ignore this email and your password stays the same.\n"
            ),
            settings.DEFAULT_FROM_EMAIL,
            [user.email],
        )
    except Exception:
        logger.exception("Failed to send password reset email to user %s", user_id)


@transaction.atomic
def request_password_reset(*, email: str) -> str:
    """
    Generate a password reset token and email it once the transaction commits.

    Args:
        email: User's email address, matched case-insensitively

    Returns:
        Reset token (only its digest is stored)

    Raises:
        UserNotFoundError: If user does not exist
    """
    try:
        user = (
            User.objects
            .select_for_update()
            .get(email__iexact=email, is_active=True)
        )
    except User.DoesNotExist:
        raise UserNotFoundError(f"No active user with email: {email}")

    reset_token = new_token()
    user.password_reset_token = hash_token(reset_token)
    user.password_reset_sent_at = timezone.now()
    user.save(update_fields=['password_reset_token', 'password_reset_sent_at', 'updated_at'])

    transaction.on_commit(lambda: _send_reset_email(user.id, reset_token))
    logger.info("Password reset requested for user %s", user.id)
    return reset_token


def _revoke_refresh_tokens(user: User) -> None:
    for outstanding in OutstandingToken.objects.filter(user=user):
        BlacklistedToken.objects.get_or_create(token=outstanding)


@transaction.atomic
def confirm_password_reset(*, token: str, new_password: str) -> User:
    """
    Reset user password with token and sign out every session.

    Raises:
        InvalidTokenError: If token is invalid or expired
    """
    try:
        user = (
            User.objects
            .select_for_update()
            .get(password_reset_token=hash_token(token), is_active=True)
        )
    except User.DoesNotExist:
        raise InvalidTokenError("Invalid or expired reset token")

    if not user.password_reset_sent_at or timezone.now() - user.password_reset_sent_at > RESET_TOKEN_LIFETIME:
        raise InvalidTokenError("Invalid or expired reset token")

    # Set new password and clear token
    user.set_password(new_password)
    user.password_reset_token = None
    user.password_reset_sent_at = None
    user.save(update_fields=['password', 'password_reset_token', 'password_reset_sent_at', 'updated_at'])
    _revoke_refresh_tokens(user)

    logger.info("Password reset for user %s", user.id)
    return user
