"""Exceptions for the Gmail module."""

from typing import Optional


class GmailError(Exception):
    """Base exception for Gmail API and message handling failures."""

    pass


class TransportError(GmailError):
    """Raised on network failures, timeouts, or undecodable responses."""

    pass


class ApiError(TransportError):
    """Raised when the API answers with an error envelope.

    Authorization failures never surface as ApiError; the transport
    handles those by refreshing the token.
    """

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        status: Optional[str] = None,
    ):
        self.code = code
        self.status = status
        detail = f" (code={code}, status={status})" if code is not None else ""
        super().__init__(f"Gmail API error{detail}: {message}")


class EnrichError(GmailError):
    """Base exception for failures turning a message into an event."""

    def __init__(self, message: str, message_id: Optional[str] = None):
        self.message_id = message_id
        prefix = f"Message '{message_id}': " if message_id else ""
        super().__init__(f"{prefix}{message}")


class AddressParseError(EnrichError):
    """Raised when a From or To header is not a valid address list."""

    def __init__(self, header: str, value: str, message_id: Optional[str] = None):
        self.header = header
        self.value = value
        super().__init__(f"Malformed {header} header: {value!r}", message_id)


class TimestampParseError(EnrichError):
    """Raised when internalDate is not a millisecond epoch timestamp."""

    def __init__(self, value: object, message_id: Optional[str] = None):
        self.value = value
        super().__init__(f"Unparsable internalDate: {value!r}", message_id)


class MalformedPayloadError(EnrichError):
    """Raised when a response lacks a required field or has the wrong shape."""

    pass
