"""Gmail REST endpoints used by the exporter."""

import logging
from typing import Optional

from .exceptions import ApiError
from .models import HistoryPage, Label, MessageDetails, MessagesPage
from .transport import AuthorizedTransport

logger = logging.getLogger(__name__)

BASE_URL = "https://gmail.googleapis.com/gmail/v1/users/me"

# Headers the enricher reads; bodies are never downloaded
METADATA_HEADERS = ["From", "To", "Subject"]


class GmailApi:
    """Typed access to the four read-only endpoints the exporter calls.

    Every call goes through the AuthorizedTransport, so token refresh
    is handled uniformly for all of them.
    """

    def __init__(self, transport: AuthorizedTransport, base_url: str = BASE_URL):
        self._transport = transport
        self._base_url = base_url.rstrip("/")

    def list_labels(self) -> list[Label]:
        """Fetch all labels in the mailbox."""
        body = self._transport.get_json(f"{self._base_url}/labels")
        return [Label.from_api_response(item) for item in body.get("labels") or []]

    def list_history(
        self, start_history_id: str, page_token: Optional[str] = None
    ) -> HistoryPage:
        """Fetch one page of mailbox changes after ``start_history_id``."""
        params = {"startHistoryId": str(start_history_id)}
        if page_token:
            params["pageToken"] = page_token
        body = self._transport.get_json(f"{self._base_url}/history", params=params)
        return HistoryPage.from_api_response(body)

    def list_messages(
        self, page_token: Optional[str] = None, max_results: Optional[int] = None
    ) -> MessagesPage:
        """Fetch one page of message references, newest first."""
        params = {}
        if page_token:
            params["pageToken"] = page_token
        if max_results:
            params["maxResults"] = str(max_results)
        body = self._transport.get_json(
            f"{self._base_url}/messages", params=params or None
        )
        return MessagesPage.from_api_response(body)

    def get_message(self, message_id: str) -> Optional[MessageDetails]:
        """Fetch a message's metadata.

        Returns:
            The message, or None if it no longer exists.

        Raises:
            ApiError: For any error other than not-found.
            MalformedPayloadError: If required fields are missing.
        """
        try:
            body = self._transport.get_json(
                f"{self._base_url}/messages/{message_id}",
                params={"format": "metadata", "metadataHeaders": METADATA_HEADERS},
            )
        except ApiError as e:
            if e.code == 404:
                logger.info("Message %s not found, it was probably deleted", message_id)
                return None
            raise
        return MessageDetails.from_api_response(body)
