"""Gmail API access and incremental sync.

This module provides the authorized transport, typed endpoint client,
history sync engine, and message enricher that together turn mailbox
history into canonical mail events.

Public API:
    - AuthorizedTransport: Bearer-token GETs with retry-once-after-refresh
    - GmailApi: Labels, history, message list and message detail endpoints
    - SyncEngine: Paginated history walk from a watermark
    - advance_watermark: Monotonic watermark update
    - MessageEnricher / LabelCatalog: Build CanonicalMailEvents
    - GmailError: Base exception; TransportError, ApiError, EnrichError and
      its AddressParseError, TimestampParseError, MalformedPayloadError
"""

from .api import BASE_URL, GmailApi
from .enricher import LabelCatalog, MessageEnricher
from .exceptions import (
    AddressParseError,
    ApiError,
    EnrichError,
    GmailError,
    MalformedPayloadError,
    TimestampParseError,
    TransportError,
)
from .models import (
    CanonicalMailEvent,
    ErrorEnvelope,
    HistoryPage,
    Label,
    MailAddress,
    MessageDetails,
    MessagesPage,
    MinimalMessageRef,
)
from .sync import SyncEngine, advance_watermark
from .transport import AuthorizedTransport

__all__ = [
    # Main classes
    "AuthorizedTransport",
    "GmailApi",
    "SyncEngine",
    "MessageEnricher",
    "LabelCatalog",
    "advance_watermark",
    "BASE_URL",
    # Models
    "CanonicalMailEvent",
    "ErrorEnvelope",
    "HistoryPage",
    "Label",
    "MailAddress",
    "MessageDetails",
    "MessagesPage",
    "MinimalMessageRef",
    # Exceptions
    "GmailError",
    "TransportError",
    "ApiError",
    "EnrichError",
    "AddressParseError",
    "TimestampParseError",
    "MalformedPayloadError",
]
