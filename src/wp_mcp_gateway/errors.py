"""Error taxonomy for the gateway.

- GatewayError: root of everything raised deliberately by the gateway
- ConfigError: fatal startup error (missing or invalid configuration)
- ParameterError: tool arguments failed schema validation
- BackendError: the WordPress backend reported (or caused) a failure
"""

from __future__ import annotations

from enum import Enum


class GatewayError(Exception):
    """Base class for gateway errors."""


class ConfigError(GatewayError):
    """Configuration is missing or invalid. Aborts startup."""


class ParameterError(GatewayError):
    """A tool argument violated its declared constraints.

    Attributes:
        field: Name of the offending parameter (None for whole-object errors)
        reason: Human-readable description of the violation
    """

    def __init__(self, field: str | None, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}" if field else reason)


class BackendErrorKind(str, Enum):
    """Coarse categories for backend failures."""

    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    UNAVAILABLE = "unavailable"

    @classmethod
    def from_status(cls, status_code: int | None) -> BackendErrorKind:
        """Map an HTTP status code onto a category."""
        if status_code is None:
            return cls.UNAVAILABLE
        if status_code == 401:
            return cls.UNAUTHORIZED
        if status_code == 403:
            return cls.FORBIDDEN
        if status_code == 404:
            return cls.NOT_FOUND
        if status_code == 409:
            return cls.CONFLICT
        if status_code >= 500:
            return cls.SERVER_ERROR
        return cls.BAD_REQUEST


class BackendError(GatewayError):
    """A backend call failed.

    The message is safe to show to the calling agent: it is built from the
    backend's own error text and never includes tracebacks.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        kind: BackendErrorKind | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.kind = kind or BackendErrorKind.from_status(status_code)


class WordPressAPIError(BackendError):
    """WordPress answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str) -> None:
        self.reason = reason
        super().__init__(f"WordPress API error ({status_code}): {reason}", status_code)
