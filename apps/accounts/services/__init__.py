"""Services for accounts business logic."""

from .exceptions import (
    AccountsServiceError,
    UserRegistrationError,
    InvalidCredentialsError,
    InactiveAccountError,
    PasswordConfirmationError,
    OAuthNotConfiguredError,
    OAuthStateError,
    OAuthExchangeError,
    UserNotFoundError,
    InvalidTokenError,
    EmailAlreadyVerifiedError,
)
from .user_registration import register_user
from .user_authentication import authenticate_user, logout_user
from .email_verification import issue_verification_token, verify_user_email
from .password_reset import request_password_reset, confirm_password_reset
from .account_management import delete_user_account
from .oauth import build_authorization_url, complete_oauth_login

__all__ = [
    # Exceptions
    'AccountsServiceError',
    'UserRegistrationError',
    'InvalidCredentialsError',
    'InactiveAccountError',
    'PasswordConfirmationError',
    'OAuthNotConfiguredError',
    'OAuthStateError',
    'OAuthExchangeError',
    'UserNotFoundError',
    'InvalidTokenError',
    'EmailAlreadyVerifiedError',
    # Services
    'register_user',
    'authenticate_user',
    'logout_user',
    'issue_verification_token',
    'verify_user_email',
    'request_password_reset',
    'confirm_password_reset',
    'delete_user_account',
    'build_authorization_url',
    'complete_oauth_login',
]
