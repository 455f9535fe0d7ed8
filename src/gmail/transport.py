"""Authorized HTTP transport with retry-once-after-refresh."""

import logging
from typing import Any, Optional

import requests

from src.auth import CredentialStore, RefreshFailedError, UnauthenticatedError

from .exceptions import ApiError, TransportError
from .models import ErrorEnvelope

logger = logging.getLogger(__name__)


class AuthorizedTransport:
    """Sends bearer-authorized GETs and heals a rejected token once.

    Google reports an expired token inside the JSON body, so the
    envelope is inspected instead of the status code. The policy is a
    fixed two-step sequence:

        attempt -> 401 envelope -> refresh -> attempt -> 401 envelope -> fail

    A second rejection raises RefreshFailedError; there is never a
    third attempt.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the transport.

        Args:
            credentials: Store that supplies and refreshes the access token.
            session: HTTP session (for testing).
            timeout: Per-request timeout in seconds. None waits forever.
        """
        self._credentials = credentials
        self._session = session or requests.Session()
        self._timeout = timeout

    def _attempt(self, url: str, params: Optional[dict[str, Any]]) -> dict[str, Any]:
        """Send one authorized GET and decode the body."""
        token = self._credentials.access_token
        if not token:
            raise UnauthenticatedError()

        try:
            response = self._session.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"GET {url} failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                f"GET {url} returned a non-JSON body (status {response.status_code})"
            ) from e

        if not isinstance(body, dict):
            raise TransportError(f"GET {url} returned a non-object JSON document")
        return body

    def get_json(self, url: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """GET a Gmail API resource with token self-healing.

        Args:
            url: Absolute endpoint URL.
            params: Query parameters.

        Returns:
            The decoded JSON object.

        Raises:
            UnauthenticatedError: If no access token is set.
            NoRefreshTokenError: If the token is rejected and cannot be refreshed.
            RefreshFailedError: If refreshing fails or the new token is rejected.
            ApiError: If the API answers with any other error envelope.
            TransportError: On network or decoding failures.
        """
        body = self._attempt(url, params)
        envelope = ErrorEnvelope.from_json(body)

        if envelope is not None and envelope.is_auth_failure:
            logger.info("Access token rejected by %s, refreshing", url)
            self._credentials.refresh()
            body = self._attempt(url, params)
            envelope = ErrorEnvelope.from_json(body)
            if envelope is not None and envelope.is_auth_failure:
                raise RefreshFailedError(
                    f"Refreshed access token was also rejected: {envelope.message}"
                )

        if envelope is not None:
            raise ApiError(envelope.message, code=envelope.code, status=envelope.status)
        return body
