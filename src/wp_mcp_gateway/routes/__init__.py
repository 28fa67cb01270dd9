"""HTTP routes that are not transport endpoints."""

from .health import health_routes

__all__ = [
    "health_routes",
]
