"""Credential data model for the auth module."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class Credential:
    """OAuth client identity plus the current token pair.

    Attributes:
        client_id: OAuth client ID.
        client_secret: OAuth client secret.
        access_token: Short-lived bearer token (None when unauthenticated).
        refresh_token: Long-lived token used to mint new access tokens.
    """

    client_id: str
    client_secret: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    def __repr__(self) -> str:
        # Secrets stay out of logs and tracebacks
        return (
            f"Credential(client_id={self.client_id!r}, "
            f"access_token={'set' if self.access_token else None}, "
            f"refresh_token={'set' if self.refresh_token else None})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
        }
