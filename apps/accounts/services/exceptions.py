"""Domain-specific exceptions for accounts services."""


class AccountsServiceError(Exception):
    """Base exception for accounts services."""
    pass


class UserRegistrationError(AccountsServiceError):
    """Raised when user registration fails."""
    pass


class InvalidCredentialsError(AccountsServiceError):
    """Raised when authentication credentials are invalid."""
    pass


class InactiveAccountError(AccountsServiceError):
    """Raised when account is deactivated."""
    pass


class PasswordConfirmationError(AccountsServiceError):
    """Raised when password confirmation fails."""
    pass


class OAuthNotConfiguredError(AccountsServiceError):
    """Raised when a provider has no client credentials configured."""
    pass


class OAuthStateError(AccountsServiceError):
    """Raised when the OAuth state is missing, unknown or expired."""
    pass


class OAuthExchangeError(AccountsServiceError):
    """Raised when the provider rejects the code exchange or profile lookup."""
    pass


class UserNotFoundError(AccountsServiceError):
    """Raised when no active user matches."""
    pass


class InvalidTokenError(AccountsServiceError):
    """Raised when a verification, reset or refresh token is invalid or expired."""
    pass


class EmailAlreadyVerifiedError(AccountsServiceError):
    """Raised when asking to verify an address that is already verified."""
    pass
