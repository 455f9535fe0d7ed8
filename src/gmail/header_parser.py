"""Header and timestamp parsing utilities for Gmail messages."""

from datetime import datetime, timezone
from email import errors
from email.headerregistry import HeaderRegistry
from typing import Optional

from .exceptions import AddressParseError, TimestampParseError
from .models import MailAddress

_registry = HeaderRegistry()


def header_map(headers: list[tuple[str, str]]) -> dict[str, str]:
    """Build a case-insensitive header lookup (later duplicates win)."""
    return {name.lower(): value for name, value in headers}


def parse_address_list(
    value: str, header: str, message_id: Optional[str] = None
) -> list[MailAddress]:
    """Parse a From/To header value into mailboxes.

    Group members are kept and tagged with their group name, so
    ``team: a@x.com;, b@y.com`` yields two mailboxes, the first with
    ``group="team"``. Obsolete but common syntax (periods in display
    names, empty list elements) is accepted. An empty header yields an
    empty list.

    Args:
        value: Raw header value.
        header: Header name, used for errors.
        message_id: Message being parsed, used for errors.

    Raises:
        AddressParseError: If the header parser reports an invalid
            construct or a mailbox has no local part.
    """
    if not value.strip():
        return []

    try:
        parsed = _registry(header, value)
    except (errors.HeaderParseError, ValueError, IndexError) as e:
        raise AddressParseError(header, value, message_id) from e

    if any(not isinstance(d, errors.ObsoleteHeaderDefect) for d in parsed.defects):
        raise AddressParseError(header, value, message_id)

    mailboxes = []
    for group in parsed.groups:
        for address in group.addresses:
            if not address.username:
                raise AddressParseError(header, value, message_id)
            mailboxes.append(
                MailAddress(
                    address=address.addr_spec,
                    display_name=address.display_name,
                    group=group.display_name,
                )
            )
    return mailboxes


def parse_internal_date(value: str, message_id: Optional[str] = None) -> datetime:
    """Convert Gmail's internalDate (ms since epoch, as a string) to UTC.

    Raises:
        TimestampParseError: If the value is not an integer or out of range.
    """
    try:
        millis = int(value)
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise TimestampParseError(value, message_id) from e
