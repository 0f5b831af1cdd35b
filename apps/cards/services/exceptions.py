"""Domain-specific exceptions for card services."""


class CardsServiceError(Exception):
    """Base exception for card services."""
    pass


class CardNotFoundError(CardsServiceError):
    """Raised when no card exists at the requested index."""
    pass


class WalletNotConfiguredError(CardsServiceError):
    """Raised when the certificates or keys for a wallet platform are missing."""
    pass


class WalletPassError(CardsServiceError):
    """Raised when a wallet pass cannot be built or signed."""
    pass


class ContactNotFoundError(CardsServiceError):
    """Raised when a contact does not exist or belongs to another user."""
    pass


class ContactLimitReachedError(CardsServiceError):
    """Raised when a free-plan owner has received the maximum number of contacts."""
    pass
