"""Turn message references into canonical mail events."""

import logging
from typing import Iterable, Optional

from .api import GmailApi
from .header_parser import header_map, parse_address_list, parse_internal_date
from .models import CanonicalMailEvent, MessageDetails, MinimalMessageRef

logger = logging.getLogger(__name__)


class LabelCatalog:
    """Maps label IDs to display names.

    Loaded once per run. Labels created afterwards are not picked up and
    resolve to their raw ID.
    """

    def __init__(self, names_by_id: Optional[dict[str, str]] = None):
        self._names = dict(names_by_id or {})

    @classmethod
    def load(cls, api: GmailApi) -> "LabelCatalog":
        """Fetch the mailbox's labels."""
        catalog = cls({label.id: label.name for label in api.list_labels()})
        logger.info("Loaded %d labels", len(catalog))
        return catalog

    def resolve(self, label_id: str) -> str:
        """Label name for ``label_id``, or the ID itself if unknown."""
        return self._names.get(label_id, label_id)

    def __len__(self) -> int:
        return len(self._names)


class MessageEnricher:
    """Fetches message metadata and builds CanonicalMailEvents.

    Missing From/To/Subject headers become empty values. A header that
    is present but malformed, or an unparsable timestamp, raises and
    aborts the batch rather than emitting a half-built event.
    """

    def __init__(self, api: GmailApi, catalog: LabelCatalog):
        self._api = api
        self._catalog = catalog

    def build_event(self, details: MessageDetails) -> CanonicalMailEvent:
        """Normalize already-fetched message details.

        Raises:
            AddressParseError: If From or To is malformed.
            TimestampParseError: If internalDate is not a ms epoch.
        """
        headers = header_map(details.headers)

        return CanonicalMailEvent(
            id=details.id,
            thread_id=details.thread_id,
            history_id=details.history_id,
            received_at=parse_internal_date(details.internal_date, details.id),
            labels={self._catalog.resolve(label_id) for label_id in details.label_ids},
            from_addresses=parse_address_list(headers.get("from", ""), "From", details.id),
            to_addresses=parse_address_list(headers.get("to", ""), "To", details.id),
            subject=headers.get("subject", ""),
        )

    def enrich(self, ref: MinimalMessageRef) -> Optional[CanonicalMailEvent]:
        """Fetch and normalize one message.

        Returns:
            The event, or None if the message was deleted after listing.
        """
        details = self._api.get_message(ref.id)
        if details is None:
            return None
        return self.build_event(details)

    def enrich_all(self, refs: Iterable[MinimalMessageRef]) -> list[CanonicalMailEvent]:
        """Enrich references in order, skipping deleted messages."""
        events = []
        for ref in refs:
            event = self.enrich(ref)
            if event is None:
                logger.info("Skipping message %s (not found)", ref.id)
                continue
            events.append(event)
        return events
