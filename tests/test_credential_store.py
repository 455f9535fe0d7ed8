"""Unit tests for the CredentialStore."""

import json
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from src.auth import (
    REDIRECT_URI,
    TOKEN_URI,
    AuthError,
    Credential,
    CredentialStore,
    ExchangeFailedError,
    NoRefreshTokenError,
    RefreshFailedError,
    extract_authorization_code,
)
from tests.gmail_test_helpers import json_response


def _make_store(session=None, access_token=None, refresh_token=None, on_update=None):
    return CredentialStore(
        Credential(
            client_id="client-id",
            client_secret="client-secret",
            access_token=access_token,
            refresh_token=refresh_token,
        ),
        session=session or MagicMock(),
        on_update=on_update,
    )


class TestExtractAuthorizationCode:
    """Tests for parsing operator-supplied codes."""

    def test_bare_code(self):
        assert extract_authorization_code("  4/0AeanS0Z  ") == "4/0AeanS0Z"

    def test_callback_url(self):
        url = (
            "https://example.com/?code=4/0AeanS0Z4DfV&"
            "scope=https://www.googleapis.com/auth/gmail.readonly"
        )
        assert extract_authorization_code(url) == "4/0AeanS0Z4DfV"

    def test_callback_url_without_code(self):
        with pytest.raises(ExchangeFailedError, match="code"):
            extract_authorization_code("http://127.0.0.1:8080/?error=access_denied")

    def test_empty_value(self):
        with pytest.raises(ExchangeFailedError):
            extract_authorization_code("   ")


class TestCredentialState:
    def test_unauthenticated_without_access_token(self):
        store = _make_store(refresh_token="refresh")
        assert store.is_authenticated() is False
        assert store.access_token is None

    def test_authenticated_with_access_token(self):
        store = _make_store(access_token="access")
        assert store.is_authenticated() is True
        assert store.tokens_changed is False

    def test_credential_is_a_snapshot(self):
        store = _make_store(access_token="access")
        snapshot = store.credential
        snapshot.access_token = "tampered"
        assert store.access_token == "access"

    def test_repr_hides_secrets(self):
        credential = Credential("id", "very-secret", "tok-abc", "ref-xyz")
        text = repr(credential)
        assert "very-secret" not in text
        assert "tok-abc" not in text
        assert "ref-xyz" not in text


class TestExchangeAuthorizationCode:
    """Tests for the authorization code exchange."""

    def test_success_sets_both_tokens(self):
        session = MagicMock()
        session.post.return_value = json_response(
            {"access_token": "access-1", "refresh_token": "refresh-1", "expires_in": 3599}
        )
        updates = []
        store = _make_store(session=session, on_update=updates.append)

        credential = store.exchange_authorization_code("the-code")

        assert credential.access_token == "access-1"
        assert credential.refresh_token == "refresh-1"
        assert store.is_authenticated()
        assert store.tokens_changed is True
        assert len(updates) == 1
        assert updates[0].refresh_token == "refresh-1"

        args, kwargs = session.post.call_args
        assert args[0] == TOKEN_URI
        assert kwargs["data"] == {
            "code": "the-code",
            "client_id": "client-id",
            "client_secret": "client-secret",
            "redirect_uri": REDIRECT_URI,
            "grant_type": "authorization_code",
        }

    def test_accepts_callback_url(self):
        session = MagicMock()
        session.post.return_value = json_response(
            {"access_token": "a", "refresh_token": "r"}
        )
        store = _make_store(session=session)

        store.exchange_authorization_code("http://127.0.0.1:8080/?code=4/xyz&scope=s")

        assert session.post.call_args.kwargs["data"]["code"] == "4/xyz"

    def test_missing_refresh_token_fails(self):
        session = MagicMock()
        session.post.return_value = json_response({"access_token": "a"})
        store = _make_store(session=session)

        with pytest.raises(ExchangeFailedError, match="refresh_token"):
            store.exchange_authorization_code("code")
        assert store.is_authenticated() is False
        assert store.tokens_changed is False

    def test_error_envelope_fails(self):
        session = MagicMock()
        session.post.return_value = json_response(
            {"error": "invalid_grant", "error_description": "Malformed auth code."},
            status_code=400,
        )
        store = _make_store(session=session)

        with pytest.raises(ExchangeFailedError, match="invalid_grant"):
            store.exchange_authorization_code("code")

    def test_transport_failure(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("connection reset")
        store = _make_store(session=session)

        with pytest.raises(ExchangeFailedError, match="connection reset"):
            store.exchange_authorization_code("code")


class TestRefresh:
    """Tests for access token refresh."""

    def test_requires_refresh_token(self):
        session = MagicMock()
        store = _make_store(session=session, access_token="old")

        with pytest.raises(NoRefreshTokenError):
            store.refresh()
        session.post.assert_not_called()

    def test_replaces_access_token_only(self):
        session = MagicMock()
        session.post.return_value = json_response(
            {"access_token": "new-access", "refresh_token": "rotated", "expires_in": 3599}
        )
        updates = []
        store = _make_store(
            session=session,
            access_token="old",
            refresh_token="refresh-1",
            on_update=updates.append,
        )

        store.refresh()

        assert store.access_token == "new-access"
        assert store.credential.refresh_token == "refresh-1"
        assert store.tokens_changed is True
        assert [u.access_token for u in updates] == ["new-access"]
        assert session.post.call_args.kwargs["data"] == {
            "refresh_token": "refresh-1",
            "client_id": "client-id",
            "client_secret": "client-secret",
            "grant_type": "refresh_token",
        }

    def test_missing_access_token_fails(self):
        session = MagicMock()
        session.post.return_value = json_response(
            {"error": "invalid_grant", "error_description": "Token has been expired or revoked."},
            status_code=400,
        )
        store = _make_store(session=session, access_token="old", refresh_token="r")

        with pytest.raises(RefreshFailedError, match="expired or revoked"):
            store.refresh()
        assert store.access_token == "old"
        assert store.tokens_changed is False

    def test_non_json_body_fails(self):
        response = MagicMock()
        response.json.side_effect = ValueError("Expecting value")
        session = MagicMock()
        session.post.return_value = response
        store = _make_store(session=session, access_token="old", refresh_token="r")

        with pytest.raises(RefreshFailedError, match="non-JSON"):
            store.refresh()

    def test_timeout_is_passed_through(self):
        session = MagicMock()
        session.post.return_value = json_response({"access_token": "a"})
        store = CredentialStore(
            Credential("id", "secret", refresh_token="r"), session=session, timeout=7.5
        )

        store.refresh()

        assert session.post.call_args.kwargs["timeout"] == 7.5


class TestAuthorizationUrl:
    def test_requests_offline_readonly_access(self):
        store = _make_store()

        url = store.authorization_url()

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.netloc == "accounts.google.com"
        assert query["client_id"] == ["client-id"]
        assert query["redirect_uri"] == [REDIRECT_URI]
        assert query["access_type"] == ["offline"]
        assert query["response_type"] == ["code"]
        assert query["scope"] == ["https://www.googleapis.com/auth/gmail.readonly"]


class TestTokenExport:
    def test_authorized_user_info(self):
        store = _make_store(access_token="access", refresh_token="refresh")

        info = store.to_authorized_user_info()

        assert info["token"] == "access"
        assert info["refresh_token"] == "refresh"
        assert info["client_id"] == "client-id"
        assert info["client_secret"] == "client-secret"
        assert info["token_uri"] == TOKEN_URI

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "config" / "token.json"
        _make_store(access_token="access", refresh_token="refresh").save(path)

        loaded = CredentialStore.from_authorized_user_file(path, session=MagicMock())

        assert loaded.access_token == "access"
        assert loaded.credential.refresh_token == "refresh"
        assert loaded.credential.client_id == "client-id"

    def test_load_rejects_incomplete_file(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text(json.dumps({"client_id": "client-id"}))

        with pytest.raises(AuthError, match="Invalid token file"):
            CredentialStore.from_authorized_user_file(path)
