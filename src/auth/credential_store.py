"""OAuth credential store with code exchange and token refresh."""

import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlparse

import requests
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from .exceptions import (
    AuthError,
    ExchangeFailedError,
    NoRefreshTokenError,
    RefreshFailedError,
)
from .models import Credential

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"
REDIRECT_URI = "http://127.0.0.1:8080"

# Read-only mailbox access
DEFAULT_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]


def extract_authorization_code(value: str) -> str:
    """Pull the authorization code out of an operator-supplied value.

    Accepts either the bare code or the full redirect URL the browser
    landed on, e.g. ``http://127.0.0.1:8080/?code=4/0Ae...&scope=...``.

    Raises:
        ExchangeFailedError: If the value is empty or a URL without ``code``.
    """
    value = value.strip()
    if not value:
        raise ExchangeFailedError("Authorization code is empty")

    parsed = urlparse(value)
    if parsed.scheme and parsed.netloc:
        codes = parse_qs(parsed.query).get("code")
        if not codes:
            raise ExchangeFailedError(
                "Callback URL has no 'code' query parameter"
            )
        return codes[0]

    return value


def _describe_error(payload: dict[str, Any]) -> str:
    """Render a token endpoint error envelope for messages."""
    error = payload.get("error")
    if isinstance(error, dict):
        return f"{error.get('code')} {error.get('message', '')}".strip()
    if error:
        description = payload.get("error_description")
        return f"{error}: {description}" if description else str(error)
    return "response has no access_token"


class CredentialStore:
    """Owns the OAuth credential and is the only writer of its tokens.

    Every successful exchange or refresh replaces the in-memory token
    state and fires the ``on_update`` callback so the caller can surface
    the new tokens for persistence. Nothing is written to disk here
    unless :meth:`save` is called explicitly.

    Example:
        store = CredentialStore(Credential(client_id="...", client_secret="..."))
        print(store.authorization_url())
        store.exchange_authorization_code(code)
        store.refresh()
    """

    def __init__(
        self,
        credential: Credential,
        session: Optional[requests.Session] = None,
        on_update: Optional[Callable[[Credential], None]] = None,
        timeout: Optional[float] = None,
        scopes: Optional[list[str]] = None,
    ):
        """Initialize the store.

        Args:
            credential: Client identity and any tokens known at startup.
            session: HTTP session for the token endpoint (for testing).
            on_update: Called with a copy of the credential after every
                successful token change.
            timeout: Token endpoint timeout in seconds. None waits forever.
            scopes: Scopes requested in the authorization URL.
        """
        self._credential = credential
        self._session = session or requests.Session()
        self._on_update = on_update
        self._timeout = timeout
        self._scopes = scopes or DEFAULT_SCOPES
        self._tokens_changed = False

    @classmethod
    def from_authorized_user_file(
        cls,
        path: Path,
        scopes: Optional[list[str]] = None,
        **kwargs: Any,
    ) -> "CredentialStore":
        """Create a store from a google-auth authorized-user token file.

        Raises:
            AuthError: If the file is missing required fields.
        """
        scopes = scopes or DEFAULT_SCOPES
        try:
            creds = Credentials.from_authorized_user_file(str(path), scopes)
        except ValueError as e:
            raise AuthError(f"Invalid token file {path}: {e}") from e

        credential = Credential(
            client_id=creds.client_id,
            client_secret=creds.client_secret,
            access_token=creds.token,
            refresh_token=creds.refresh_token,
        )
        return cls(credential, scopes=scopes, **kwargs)

    # -------------------- Token state --------------------

    def is_authenticated(self) -> bool:
        """True iff an access token is present."""
        return bool(self._credential.access_token)

    @property
    def access_token(self) -> Optional[str]:
        """The current bearer token, read-only."""
        return self._credential.access_token

    @property
    def credential(self) -> Credential:
        """A snapshot of the credential; mutating it has no effect."""
        return dataclasses.replace(self._credential)

    @property
    def tokens_changed(self) -> bool:
        """Whether any token was replaced since the store was created."""
        return self._tokens_changed

    def _set_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        self._credential.access_token = access_token
        if refresh_token is not None:
            self._credential.refresh_token = refresh_token
        self._tokens_changed = True
        if self._on_update is not None:
            self._on_update(self.credential)

    # -------------------- Authorization code flow --------------------

    def _client_config(self) -> dict[str, Any]:
        return {
            "installed": {
                "client_id": self._credential.client_id,
                "client_secret": self._credential.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [REDIRECT_URI],
            }
        }

    def authorization_url(self) -> str:
        """Build the consent URL the operator opens in a browser.

        Offline access is requested so the exchange yields a refresh token.
        """
        flow = Flow.from_client_config(
            self._client_config(),
            scopes=self._scopes,
            redirect_uri=REDIRECT_URI,
            autogenerate_code_verifier=False,
        )
        url, _state = flow.authorization_url(access_type="offline", prompt="consent")
        return url

    def _post_token(
        self, form: dict[str, str], error_cls: type[AuthError]
    ) -> dict[str, Any]:
        """POST a form to the token endpoint and decode the JSON reply."""
        try:
            response = self._session.post(TOKEN_URI, data=form, timeout=self._timeout)
            payload = response.json()
        except requests.RequestException as e:
            raise error_cls(f"Token endpoint request failed: {e}") from e
        except ValueError as e:
            raise error_cls("Token endpoint returned a non-JSON body") from e

        if not isinstance(payload, dict):
            raise error_cls("Token endpoint returned an unexpected JSON document")
        return payload

    def exchange_authorization_code(self, code: str) -> Credential:
        """Trade an authorization code for an access and refresh token.

        Args:
            code: The code from the redirect, or the full redirect URL.

        Returns:
            A snapshot of the updated credential.

        Raises:
            ExchangeFailedError: On transport failure or if either token
                is missing from the response.
        """
        code = extract_authorization_code(code)
        logger.info("Exchanging authorization code for tokens")

        payload = self._post_token(
            {
                "code": code,
                "client_id": self._credential.client_id,
                "client_secret": self._credential.client_secret,
                "redirect_uri": REDIRECT_URI,
                "grant_type": "authorization_code",
            },
            ExchangeFailedError,
        )

        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        if not isinstance(access_token, str) or not access_token:
            raise ExchangeFailedError(
                f"Token exchange failed: {_describe_error(payload)}"
            )
        if not isinstance(refresh_token, str) or not refresh_token:
            raise ExchangeFailedError(
                "Token exchange response has no refresh_token. "
                "Revoke the app's access and authorize again with offline access."
            )

        self._set_tokens(access_token, refresh_token)
        logger.info("Authorization code exchanged")
        return self.credential

    # -------------------- Refresh --------------------

    def refresh(self) -> None:
        """Mint a new access token from the refresh token.

        Only the access token is replaced; the refresh token is kept.

        Raises:
            NoRefreshTokenError: If no refresh token is held.
            RefreshFailedError: On transport failure or a response
                without an access token.
        """
        if not self._credential.refresh_token:
            raise NoRefreshTokenError()

        logger.info("Refresh required, refreshing access token")
        payload = self._post_token(
            {
                "refresh_token": self._credential.refresh_token,
                "client_id": self._credential.client_id,
                "client_secret": self._credential.client_secret,
                "grant_type": "refresh_token",
            },
            RefreshFailedError,
        )

        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise RefreshFailedError(
                f"Token refresh failed: {_describe_error(payload)}"
            )

        self._set_tokens(access_token)
        logger.warning("Access token refreshed; update stored tokens before restarting")

    # -------------------- Export --------------------

    def to_google_credentials(self) -> Credentials:
        """The current tokens as google-auth Credentials."""
        return Credentials(
            token=self._credential.access_token,
            refresh_token=self._credential.refresh_token,
            token_uri=TOKEN_URI,
            client_id=self._credential.client_id,
            client_secret=self._credential.client_secret,
            scopes=self._scopes,
        )

    def to_authorized_user_info(self) -> dict[str, Any]:
        """Tokens in the authorized-user JSON layout google-auth reads."""
        return json.loads(self.to_google_credentials().to_json())

    def save(self, path: Path) -> None:
        """Write the tokens to an authorized-user JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as token_file:
            token_file.write(self.to_google_credentials().to_json())
        logger.info("Saved tokens to %s", path)
