"""Single-use tokens sent by email."""

import hashlib
import secrets


def new_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """Only the sha256 digest of an emailed token is stored."""
    return hashlib.sha256(token.encode()).hexdigest()
