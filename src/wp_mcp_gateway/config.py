"""Gateway configuration.

Settings are read from the environment (and an optional ``.env`` file) with
pydantic-settings. ``load_settings()`` converts validation failures into
``ConfigError`` so the CLI can abort startup before anything is bound.
"""

from __future__ import annotations

import base64
import logging

from pydantic import Field, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


class GatewaySettings(BaseSettings):
    """Environment-sourced settings for the gateway and its WordPress backend."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore", env_file=".env")

    # WordPress backend
    wordpress_base_url: str
    wordpress_token: SecretStr | None = None
    wordpress_username: str | None = None
    wordpress_app_password: SecretStr | None = None
    wordpress_tls_reject_unauthorized: bool = True
    wordpress_request_timeout: float = Field(default=30.0, gt=0)
    # Node-style switch, "0" also disables verification
    node_tls_reject_unauthorized: str | None = None

    # Listener
    gateway_host: str = "127.0.0.1"
    sse_port: int = Field(default=3000, ge=1, le=65535)

    # Runtime behaviour
    gateway_call_timeout: float = Field(default=30.0, gt=0)
    gateway_heartbeat_interval: float = Field(default=30.0, gt=0)
    gateway_log_level: str = "INFO"

    @field_validator("wordpress_base_url")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("must start with http:// or https://")
        return value

    @field_validator("gateway_log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level

    @model_validator(mode="after")
    def _require_credentials(self) -> GatewaySettings:
        if self.wordpress_token is None and not (
            self.wordpress_username and self.wordpress_app_password
        ):
            raise ValueError(
                "WordPress credentials are not configured. Set WORDPRESS_TOKEN, or "
                "WORDPRESS_USERNAME and WORDPRESS_APP_PASSWORD."
            )
        return self

    @property
    def auth_scheme(self) -> str:
        """Either "bearer" or "basic"."""
        return "bearer" if self.wordpress_token is not None else "basic"

    @property
    def authorization_header(self) -> str:
        """Value for the Authorization header sent to WordPress."""
        if self.wordpress_token is not None:
            return f"Bearer {self.wordpress_token.get_secret_value()}"
        assert self.wordpress_app_password is not None
        raw = f"{self.wordpress_username}:{self.wordpress_app_password.get_secret_value()}"
        return f"Basic {base64.b64encode(raw.encode('utf-8')).decode('ascii')}"

    @property
    def tls_verify(self) -> bool:
        """False when either TLS_REJECT_UNAUTHORIZED variable disables verification."""
        return self.wordpress_tls_reject_unauthorized and self.node_tls_reject_unauthorized != "0"


def load_settings(**overrides: object) -> GatewaySettings:
    """Load settings from the environment.

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        Validated settings

    Raises:
        ConfigError: If required settings are missing or invalid
    """
    try:
        return GatewaySettings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        problems = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"]).upper()
            problems.append(f"{location}: {error['msg']}" if location else error["msg"])
        raise ConfigError("Invalid configuration: " + "; ".join(problems)) from e
