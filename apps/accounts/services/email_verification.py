"""Email verification service."""

import logging
from urllib.parse import urlencode

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction
from django.urls import reverse

from .exceptions import InvalidTokenError, EmailAlreadyVerifiedError
from .tokens import new_token, hash_token

User = get_user_model()
logger = logging.getLogger(__name__)


def verification_url(token: str) -> str:
    return f"{settings.PUBLIC_BASE_URL}{reverse('users:verify-email')}?{urlencode({'token': token})}"


def _send_verification_email(user_id, token: str) -> None:
    user = User.objects.get(id=user_id)
    try:
        send_mail(
            "Verify your XS Card email address",
            (
                f"Hi {user.get_display_name()},\n\n"
                "Confirm your email address by opening this link:\n\n"
                f"{verification_url(token)}\n\n"
                "If you did not create an XS Card account you can ignore this email.\n"
            ),
            settings.DEFAULT_FROM_EMAIL,
            [user.email],
        )
    except Exception:
        logger.exception("Failed to send verification email to user %s", user_id)


@transaction.atomic
def issue_verification_token(*, user: User) -> str:
    """
    Replace the user's verification token and email the link once the
    transaction commits.

    Returns:
        The new token (only its digest is stored)

    Raises:
        EmailAlreadyVerifiedError: If the address is already verified
    """
    user = User.objects.select_for_update().get(id=user.id)
    if user.email_verified:
        raise EmailAlreadyVerifiedError("Email is already verified")

    token = new_token()
    user.verification_token = hash_token(token)
    user.save(update_fields=['verification_token', 'updated_at'])

    transaction.on_commit(lambda: _send_verification_email(user.id, token))
    return token


@transaction.atomic
def verify_user_email(*, token: str) -> User:
    """
    Verify the email address the token was sent to.

    Raises:
        InvalidTokenError: If token is invalid or already used
    """
    try:
        user = (
            User.objects
            .select_for_update()
            .get(verification_token=hash_token(token), is_active=True)
        )
    except User.DoesNotExist:
        raise InvalidTokenError("Invalid verification token")

    # Mark email as verified and clear token
    user.email_verified = True
    user.verification_token = None
    user.save(update_fields=['email_verified', 'verification_token', 'updated_at'])

    logger.info("User %s verified their email", user.id)
    return user
