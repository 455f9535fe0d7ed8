"""Environment-driven configuration for the exporter."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_METRICS_PORT = 9090


class ConfigurationError(Exception):
    """Raised when a required setting is missing or invalid."""

    pass


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name, "").strip()
    return value or None


def _required(env: Mapping[str, str], name: str) -> str:
    value = _optional(env, name)
    if value is None:
        raise ConfigurationError(f"{name} must be set")
    return value


@dataclass
class ExporterConfig:
    """Settings supplied by the operator.

    Attributes:
        client_id: OAuth client ID (GOOGLE_CLIENT_ID).
        client_secret: OAuth client secret (GOOGLE_CLIENT_SECRET).
        access_token: Existing access token (GOOGLE_ACCESS_TOKEN).
        refresh_token: Existing refresh token (GOOGLE_REFRESH_TOKEN).
        callback: Authorization code or redirect URL (GOOGLE_CALLBACK).
        token_path: Authorized-user token file (GOOGLE_TOKEN_PATH).
        metrics_port: Exporter port (METRICS_PORT).
        http_timeout: Request timeout in seconds (HTTP_TIMEOUT_SECONDS).
    """

    client_id: str
    client_secret: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    callback: Optional[str] = None
    token_path: Optional[Path] = None
    metrics_port: int = DEFAULT_METRICS_PORT
    http_timeout: Optional[float] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ExporterConfig":
        """Read settings from the environment.

        Raises:
            ConfigurationError: If a required value is missing or a
                numeric value does not parse.
        """
        env = os.environ if env is None else env

        token_path = _optional(env, "GOOGLE_TOKEN_PATH")
        port = _optional(env, "METRICS_PORT")
        timeout = _optional(env, "HTTP_TIMEOUT_SECONDS")

        try:
            metrics_port = int(port) if port else DEFAULT_METRICS_PORT
        except ValueError as e:
            raise ConfigurationError(f"METRICS_PORT must be an integer, got {port!r}") from e
        try:
            http_timeout = float(timeout) if timeout else None
        except ValueError as e:
            raise ConfigurationError(
                f"HTTP_TIMEOUT_SECONDS must be a number, got {timeout!r}"
            ) from e

        return cls(
            client_id=_required(env, "GOOGLE_CLIENT_ID"),
            client_secret=_required(env, "GOOGLE_CLIENT_SECRET"),
            access_token=_optional(env, "GOOGLE_ACCESS_TOKEN"),
            refresh_token=_optional(env, "GOOGLE_REFRESH_TOKEN"),
            callback=_optional(env, "GOOGLE_CALLBACK"),
            token_path=Path(token_path) if token_path else None,
            metrics_port=metrics_port,
            http_timeout=http_timeout,
        )
