"""Unit tests for environment configuration."""

from pathlib import Path

import pytest

from src.config import DEFAULT_METRICS_PORT, ConfigurationError, ExporterConfig

BASE_ENV = {"GOOGLE_CLIENT_ID": "client-id", "GOOGLE_CLIENT_SECRET": "client-secret"}


class TestExporterConfig:
    def test_minimal_env(self):
        config = ExporterConfig.from_env(BASE_ENV)

        assert config.client_id == "client-id"
        assert config.client_secret == "client-secret"
        assert config.access_token is None
        assert config.refresh_token is None
        assert config.callback is None
        assert config.token_path is None
        assert config.metrics_port == DEFAULT_METRICS_PORT
        assert config.http_timeout is None

    def test_full_env(self):
        env = {
            **BASE_ENV,
            "GOOGLE_ACCESS_TOKEN": "access",
            "GOOGLE_REFRESH_TOKEN": "refresh",
            "GOOGLE_CALLBACK": "4/code",
            "GOOGLE_TOKEN_PATH": "/tmp/token.json",
            "METRICS_PORT": "9100",
            "HTTP_TIMEOUT_SECONDS": "12.5",
        }

        config = ExporterConfig.from_env(env)

        assert config.access_token == "access"
        assert config.refresh_token == "refresh"
        assert config.callback == "4/code"
        assert config.token_path == Path("/tmp/token.json")
        assert config.metrics_port == 9100
        assert config.http_timeout == 12.5

    def test_blank_values_are_unset(self):
        config = ExporterConfig.from_env({**BASE_ENV, "GOOGLE_ACCESS_TOKEN": "  "})
        assert config.access_token is None

    @pytest.mark.parametrize("missing", ["GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"])
    def test_required_values(self, missing):
        env = dict(BASE_ENV)
        del env[missing]

        with pytest.raises(ConfigurationError, match=missing):
            ExporterConfig.from_env(env)

    def test_invalid_port(self):
        with pytest.raises(ConfigurationError, match="METRICS_PORT"):
            ExporterConfig.from_env({**BASE_ENV, "METRICS_PORT": "ninety"})

    def test_invalid_timeout(self):
        with pytest.raises(ConfigurationError, match="HTTP_TIMEOUT_SECONDS"):
            ExporterConfig.from_env({**BASE_ENV, "HTTP_TIMEOUT_SECONDS": "soon"})
