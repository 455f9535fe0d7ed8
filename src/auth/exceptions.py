"""Exceptions for the auth module."""


class AuthError(Exception):
    """Base exception for all OAuth credential failures."""

    pass


class UnauthenticatedError(AuthError):
    """Raised when a data call is attempted without an access token."""

    def __init__(self, message: str = "No access token is set; authorize first"):
        super().__init__(message)


class ExchangeFailedError(AuthError):
    """Raised when an authorization code cannot be exchanged for tokens."""

    pass


class NoRefreshTokenError(AuthError):
    """Raised when a refresh is required but no refresh token is held."""

    def __init__(self):
        super().__init__(
            "Access token rejected and no refresh token is available. "
            "Re-run the authorization flow to obtain one."
        )


class RefreshFailedError(AuthError):
    """Raised when the access token cannot be renewed.

    Covers both a failed refresh exchange and a provider that still
    rejects the freshly refreshed token.
    """

    pass
