"""OAuth credential module for the Gmail exporter.

Public API:
    - CredentialStore: Owns the token pair; exchanges codes and refreshes
    - Credential: Client identity plus current tokens
    - extract_authorization_code: Accepts a bare code or a redirect URL
    - AuthError: Base exception for credential failures
    - UnauthenticatedError, ExchangeFailedError, NoRefreshTokenError,
      RefreshFailedError: Specific failures
"""

from .credential_store import (
    DEFAULT_SCOPES,
    REDIRECT_URI,
    TOKEN_URI,
    CredentialStore,
    extract_authorization_code,
)
from .exceptions import (
    AuthError,
    ExchangeFailedError,
    NoRefreshTokenError,
    RefreshFailedError,
    UnauthenticatedError,
)
from .models import Credential

__all__ = [
    "CredentialStore",
    "Credential",
    "extract_authorization_code",
    "DEFAULT_SCOPES",
    "REDIRECT_URI",
    "TOKEN_URI",
    "AuthError",
    "UnauthenticatedError",
    "ExchangeFailedError",
    "NoRefreshTokenError",
    "RefreshFailedError",
]
