"""Typed Gmail API response schemas and the canonical mail event."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .exceptions import MalformedPayloadError


def _require(data: dict[str, Any], key: str, kind: type, context: str) -> Any:
    """Fetch a required field, checking its JSON type."""
    value = data.get(key)
    if not isinstance(value, kind):
        raise MalformedPayloadError(
            f"{context} field '{key}' missing or not a {kind.__name__}"
        )
    return value


def _optional_list(data: dict[str, Any], key: str, context: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedPayloadError(f"{context} field '{key}' is not a list")
    return value


@dataclass
class ErrorEnvelope:
    """The ``{"error": {...}}`` body Google APIs answer failures with.

    Attributes:
        code: HTTP-style error code carried inside the body.
        message: Human-readable description.
        status: Canonical status name, e.g. UNAUTHENTICATED.
    """

    code: Optional[int]
    message: str = ""
    status: Optional[str] = None

    @classmethod
    def from_json(cls, body: dict[str, Any]) -> Optional["ErrorEnvelope"]:
        """Return the envelope if the body signals an error, else None."""
        error = body.get("error")
        if error is None:
            return None
        if not isinstance(error, dict):
            return cls(code=None, message=str(error))
        code = error.get("code")
        return cls(
            code=code if isinstance(code, int) else None,
            message=str(error.get("message", "")),
            status=error.get("status"),
        )

    @property
    def is_auth_failure(self) -> bool:
        return self.code == 401

    @property
    def is_not_found(self) -> bool:
        return self.code == 404


@dataclass
class MinimalMessageRef:
    """Lightweight pointer to a message from listing or history endpoints."""

    id: str
    thread_id: str

    @classmethod
    def from_api_response(cls, data: Any) -> "MinimalMessageRef":
        if not isinstance(data, dict):
            raise MalformedPayloadError("Message reference is not an object")
        return cls(
            id=_require(data, "id", str, "Message reference"),
            thread_id=_require(data, "threadId", str, "Message reference"),
        )


@dataclass
class Label:
    """A Gmail label (system or user-created)."""

    id: str
    name: str

    @classmethod
    def from_api_response(cls, data: Any) -> "Label":
        if not isinstance(data, dict):
            raise MalformedPayloadError("Label is not an object")
        return cls(
            id=_require(data, "id", str, "Label"),
            name=_require(data, "name", str, "Label"),
        )


@dataclass
class HistoryPage:
    """One page of ``users.history.list``.

    Attributes:
        added: References from ``messagesAdded`` entries, in provider order.
            Entries of other kinds (deletions, label changes) are dropped.
        next_page_token: Token for the following page, if any.
        history_id: The mailbox's current history ID, when reported.
    """

    added: list[MinimalMessageRef] = field(default_factory=list)
    next_page_token: Optional[str] = None
    history_id: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "HistoryPage":
        added = []
        for entry in _optional_list(data, "history", "History page"):
            if not isinstance(entry, dict):
                raise MalformedPayloadError("History entry is not an object")
            for item in _optional_list(entry, "messagesAdded", "History entry"):
                if not isinstance(item, dict):
                    raise MalformedPayloadError("messagesAdded item is not an object")
                added.append(MinimalMessageRef.from_api_response(item.get("message")))

        history_id = data.get("historyId")
        return cls(
            added=added,
            next_page_token=data.get("nextPageToken") or None,
            history_id=str(history_id) if history_id is not None else None,
        )


@dataclass
class MessagesPage:
    """One page of ``users.messages.list`` (newest first)."""

    messages: list[MinimalMessageRef] = field(default_factory=list)
    next_page_token: Optional[str] = None
    result_size_estimate: int = 0

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "MessagesPage":
        try:
            estimate = int(data.get("resultSizeEstimate", 0))
        except (TypeError, ValueError) as e:
            raise MalformedPayloadError(
                "Message list field 'resultSizeEstimate' is not an integer"
            ) from e

        return cls(
            messages=[
                MinimalMessageRef.from_api_response(item)
                for item in _optional_list(data, "messages", "Message list")
            ],
            next_page_token=data.get("nextPageToken") or None,
            result_size_estimate=estimate,
        )


@dataclass
class MessageDetails:
    """The metadata part of a ``users.messages.get`` response.

    Body parts are ignored; only headers and bookkeeping fields are kept.
    """

    id: str
    thread_id: str
    history_id: str
    internal_date: str
    label_ids: list[str] = field(default_factory=list)
    headers: list[tuple[str, str]] = field(default_factory=list)
    snippet: str = ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "MessageDetails":
        context = "Message"
        payload = _require(data, "payload", dict, context)

        headers = []
        for header in _optional_list(payload, "headers", "Message payload"):
            if not isinstance(header, dict):
                raise MalformedPayloadError("Message header is not an object")
            headers.append(
                (
                    _require(header, "name", str, "Message header"),
                    str(header.get("value", "")),
                )
            )

        return cls(
            id=_require(data, "id", str, context),
            thread_id=_require(data, "threadId", str, context),
            history_id=_require(data, "historyId", str, context),
            internal_date=_require(data, "internalDate", str, context),
            label_ids=[str(x) for x in _optional_list(data, "labelIds", context)],
            headers=headers,
            snippet=data.get("snippet", ""),
        )


@dataclass(frozen=True)
class MailAddress:
    """A single parsed mailbox from a From/To header.

    Attributes:
        address: The ``local@domain`` part.
        display_name: Phrase before the angle address, if any.
        group: Name of the enclosing address group, or None for a
            mailbox listed on its own.
    """

    address: str
    display_name: str = ""
    group: Optional[str] = None

    @property
    def domain(self) -> str:
        return self.address.rsplit("@", 1)[-1]


@dataclass
class CanonicalMailEvent:
    """A newly arrived message, normalized for metrics.

    Attributes:
        id: Gmail message ID.
        thread_id: Gmail thread ID.
        history_id: History ID of the message; the next sync watermark.
        labels: Label names; IDs missing from the catalog pass through as-is.
        received_at: When Gmail received the message (UTC).
        from_addresses: Parsed From header, in header order.
        to_addresses: Parsed To header, in header order.
        subject: Subject header, empty if absent.
    """

    id: str
    thread_id: str
    history_id: str
    received_at: datetime
    labels: set[str] = field(default_factory=set)
    from_addresses: list[MailAddress] = field(default_factory=list)
    to_addresses: list[MailAddress] = field(default_factory=list)
    subject: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary for logging or transmission."""
        return {
            "id": self.id,
            "thread_id": self.thread_id,
            "history_id": self.history_id,
            "received_at": self.received_at.isoformat(),
            "labels": sorted(self.labels),
            "from": [a.address for a in self.from_addresses],
            "to": [a.address for a in self.to_addresses],
            "subject": self.subject,
        }
