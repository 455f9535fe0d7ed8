"""Derive metric labels from a canonical mail event."""

import re
from typing import Optional

from src.gmail.models import CanonicalMailEvent, MailAddress

UNKNOWN = "unknown"

_INVALID_LABEL_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def sanitize_label_name(name: str) -> str:
    """Make ``name`` a valid Prometheus label name."""
    sanitized = _INVALID_LABEL_CHARS.sub("_", name)
    if sanitized[:1].isdigit():
        sanitized = f"_{sanitized}"
    return sanitized


def _first_single(addresses: list[MailAddress]) -> Optional[MailAddress]:
    """First mailbox listed on its own; group members are skipped."""
    return next((a for a in addresses if a.group is None), None)


def first_address(addresses: list[MailAddress]) -> Optional[str]:
    mailbox = _first_single(addresses)
    return mailbox.address.lower() if mailbox else None


def first_domain(addresses: list[MailAddress]) -> Optional[str]:
    mailbox = _first_single(addresses)
    return mailbox.domain.lower() if mailbox else None


def event_labels(event: CanonicalMailEvent) -> dict[str, str]:
    """Label set for one ``email_received`` increment.

    ``from_domain`` is derived from the To address, same as ``to_domain``.
    """
    labels = {
        "from": first_address(event.from_addresses) or UNKNOWN,
        "to": first_address(event.to_addresses) or UNKNOWN,
        "from_domain": first_domain(event.to_addresses) or UNKNOWN,
        "to_domain": first_domain(event.to_addresses) or UNKNOWN,
    }
    for name in sorted(event.labels):
        labels[sanitize_label_name(f"label_{name}")] = "true"
    return labels
