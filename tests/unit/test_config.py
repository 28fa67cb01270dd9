"""Tests for environment-driven configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from wp_mcp_gateway.config import GatewaySettings, load_settings
from wp_mcp_gateway.errors import ConfigError

ENV_VARS = [
    "WORDPRESS_BASE_URL",
    "WORDPRESS_TOKEN",
    "WORDPRESS_USERNAME",
    "WORDPRESS_APP_PASSWORD",
    "WORDPRESS_TLS_REJECT_UNAUTHORIZED",
    "WORDPRESS_REQUEST_TIMEOUT",
    "NODE_TLS_REJECT_UNAUTHORIZED",
    "GATEWAY_HOST",
    "SSE_PORT",
    "GATEWAY_CALL_TIMEOUT",
    "GATEWAY_HEARTBEAT_INTERVAL",
    "GATEWAY_LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    """Empty environment and a working directory without a .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WORDPRESS_BASE_URL", "https://blog.example.com/")
        clean_env.setenv("WORDPRESS_TOKEN", "tok")

        settings = load_settings()

        assert settings.wordpress_base_url == "https://blog.example.com"
        assert settings.sse_port == 3000
        assert settings.gateway_host == "127.0.0.1"
        assert settings.gateway_call_timeout == 30.0
        assert settings.gateway_heartbeat_interval == 30.0
        assert settings.gateway_log_level == "INFO"
        assert settings.tls_verify is True
        assert settings.auth_scheme == "bearer"
        assert settings.authorization_header == "Bearer tok"

    def test_env_overrides(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WORDPRESS_BASE_URL", "http://localhost:8080")
        clean_env.setenv("WORDPRESS_USERNAME", "admin")
        clean_env.setenv("WORDPRESS_APP_PASSWORD", "pw")
        clean_env.setenv("WORDPRESS_TLS_REJECT_UNAUTHORIZED", "false")
        clean_env.setenv("SSE_PORT", "8123")
        clean_env.setenv("GATEWAY_LOG_LEVEL", "debug")

        settings = load_settings()

        assert settings.auth_scheme == "basic"
        assert settings.authorization_header.startswith("Basic ")
        assert settings.tls_verify is False
        assert settings.sse_port == 8123
        assert settings.gateway_log_level == "DEBUG"

    def test_dotenv_file(self, clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text(
            "WORDPRESS_BASE_URL=https://dotenv.example.com\nWORDPRESS_TOKEN=from-file\n"
        )

        settings = load_settings()

        assert settings.wordpress_base_url == "https://dotenv.example.com"

    def test_overrides_win(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WORDPRESS_BASE_URL", "https://blog.example.com")
        clean_env.setenv("WORDPRESS_TOKEN", "tok")

        settings = load_settings(gateway_log_level="WARNING")

        assert settings.gateway_log_level == "WARNING"

    def test_missing_base_url(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WORDPRESS_TOKEN", "tok")

        with pytest.raises(ConfigError, match="WORDPRESS_BASE_URL"):
            load_settings()

    def test_missing_credentials(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WORDPRESS_BASE_URL", "https://blog.example.com")
        clean_env.setenv("WORDPRESS_USERNAME", "admin")

        with pytest.raises(ConfigError, match="credentials are not configured"):
            load_settings()

    def test_invalid_base_url(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WORDPRESS_BASE_URL", "ftp://blog.example.com")
        clean_env.setenv("WORDPRESS_TOKEN", "tok")

        with pytest.raises(ConfigError, match="http:// or https://"):
            load_settings()

    def test_invalid_port(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WORDPRESS_BASE_URL", "https://blog.example.com")
        clean_env.setenv("WORDPRESS_TOKEN", "tok")
        clean_env.setenv("SSE_PORT", "70000")

        with pytest.raises(ConfigError, match="SSE_PORT"):
            load_settings()

    def test_invalid_log_level(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WORDPRESS_BASE_URL", "https://blog.example.com")
        clean_env.setenv("WORDPRESS_TOKEN", "tok")
        clean_env.setenv("GATEWAY_LOG_LEVEL", "chatty")

        with pytest.raises(ConfigError, match="unknown log level"):
            load_settings()

    def test_token_is_secret(self, clean_env: pytest.MonkeyPatch) -> None:
        settings = GatewaySettings(wordpress_base_url="https://x.test", wordpress_token="hidden")

        assert "hidden" not in repr(settings)

    def test_node_tls_switch_disables_verification(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WORDPRESS_BASE_URL", "https://blog.example.com")
        clean_env.setenv("WORDPRESS_TOKEN", "tok")
        clean_env.setenv("NODE_TLS_REJECT_UNAUTHORIZED", "0")

        settings = load_settings()

        assert settings.wordpress_tls_reject_unauthorized is True
        assert settings.tls_verify is False

    def test_node_tls_switch_other_values_keep_verification(
        self, clean_env: pytest.MonkeyPatch
    ) -> None:
        clean_env.setenv("WORDPRESS_BASE_URL", "https://blog.example.com")
        clean_env.setenv("WORDPRESS_TOKEN", "tok")
        clean_env.setenv("NODE_TLS_REJECT_UNAUTHORIZED", "1")

        settings = load_settings()

        assert settings.tls_verify is True
