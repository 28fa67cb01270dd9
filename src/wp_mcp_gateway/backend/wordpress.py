"""WordPress REST API client.

Thin async wrapper over the ``wp/v2`` endpoints (posts, categories, tags)
plus the site's custom ``avia/v1`` endpoints. Every failure is raised as a
BackendError whose message can be shown to the calling agent.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from ..config import GatewaySettings
from ..errors import BackendError, BackendErrorKind, WordPressAPIError

logger = logging.getLogger(__name__)

WP_V2 = "/wp/v2"
AVIA_V1 = "/avia/v1"

# Listings only need enough to pick an ID.
TAXONOMY_LIST_FIELDS = "id,name"


class WordPressBackend(Protocol):
    """Operations the command layer needs from the backend."""

    async def list_posts(self, params: Mapping[str, Any]) -> list[dict[str, Any]]: ...
    async def get_post(self, post_id: int) -> dict[str, Any]: ...
    async def create_post(self, params: Mapping[str, Any]) -> dict[str, Any]: ...
    async def update_post(self, post_id: int, params: Mapping[str, Any]) -> dict[str, Any]: ...
    async def delete_post(self, post_id: int, force: bool = False) -> dict[str, Any]: ...

    async def list_categories(self, params: Mapping[str, Any]) -> list[dict[str, Any]]: ...
    async def get_category(self, category_id: int) -> dict[str, Any]: ...
    async def create_category(self, params: Mapping[str, Any]) -> dict[str, Any]: ...
    async def update_category(
        self, category_id: int, params: Mapping[str, Any]
    ) -> dict[str, Any]: ...
    async def delete_category(self, category_id: int, force: bool = False) -> dict[str, Any]: ...

    async def list_tags(self, params: Mapping[str, Any]) -> list[dict[str, Any]]: ...
    async def get_tag(self, tag_id: int) -> dict[str, Any]: ...
    async def create_tag(self, params: Mapping[str, Any]) -> dict[str, Any]: ...
    async def update_tag(self, tag_id: int, params: Mapping[str, Any]) -> dict[str, Any]: ...
    async def delete_tag(self, tag_id: int, force: bool = False) -> dict[str, Any]: ...

    async def activate_builder(self, post_id: int) -> Any: ...
    async def update_yoast_seo(self, post_id: int, params: Mapping[str, Any]) -> dict[str, Any]: ...


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _compact(data: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop None values (absent optional fields)."""
    if not data:
        return {}
    return {key: value for key, value in data.items() if value is not None}


def _error_reason(response: httpx.Response) -> str:
    """Extract the human-readable message from a WordPress error body."""
    text = response.text
    try:
        body = response.json()
    except ValueError:
        return text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return text or response.reason_phrase


class WordPressClient:
    """Async client for one WordPress site.

    Example:
        client = WordPressClient(settings)
        post = await client.get_post(42)
        await client.aclose()
    """

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create the client.

        Args:
            settings: Gateway settings (base URL, credentials, TLS, timeout)
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = settings.wordpress_base_url
        if not settings.tls_verify:
            logger.warning("TLS certificate verification is disabled (self-signed certs allowed)")

        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/wp-json",
            headers={
                "Authorization": settings.authorization_header,
                "Content-Type": "application/json",
            },
            verify=settings.tls_verify,
            timeout=settings.wordpress_request_timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send a request and decode the JSON response.

        Raises:
            WordPressAPIError: WordPress answered with a non-2xx status
            BackendError: The request could not be completed
        """
        params = {key: _query_value(value) for key, value in _compact(query).items()}
        payload = _compact(body) if method in ("POST", "PUT", "PATCH") and body else None

        logger.debug(f"{method} {path} query={params}")
        try:
            response = await self._client.request(method, path, params=params, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"WordPress request timed out: {method} {path}")
            raise BackendError(
                f"WordPress request timed out: {method} {path}",
                kind=BackendErrorKind.UNAVAILABLE,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"WordPress request failed: {method} {path}: {e}")
            raise BackendError(
                f"WordPress request failed: {e}", kind=BackendErrorKind.UNAVAILABLE
            ) from e

        if response.is_error:
            reason = _error_reason(response)
            logger.error(
                f"WordPress API error: {response.status_code} {response.reason_phrase} - {reason}"
            )
            raise WordPressAPIError(response.status_code, reason)

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(
                f"WordPress returned a non-JSON response for {method} {path}",
                status_code=response.status_code,
                kind=BackendErrorKind.SERVER_ERROR,
            ) from e

    # =========================================================================
    # Posts
    # =========================================================================

    async def list_posts(self, params: Mapping[str, Any]) -> list[dict[str, Any]]:
        return await self._request(
            "GET",
            f"{WP_V2}/posts",
            query={
                key: params.get(key)
                for key in ("page", "per_page", "search", "status", "orderby", "order")
            },
        )

    async def get_post(self, post_id: int) -> dict[str, Any]:
        return await self._request("GET", f"{WP_V2}/posts/{post_id}")

    async def create_post(self, params: Mapping[str, Any]) -> dict[str, Any]:
        body = dict(params)
        body.setdefault("status", "draft")
        result = await self._request("POST", f"{WP_V2}/posts", body=body)
        logger.info(
            f"createPost result - requested author: {params.get('author')}, "
            f"stored author: {result.get('author')}, "
            f"requested featured_media: {params.get('featured_media')}, "
            f"stored featured_media: {result.get('featured_media')}"
        )
        return result

    async def update_post(self, post_id: int, params: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"{WP_V2}/posts/{post_id}", body=params)

    async def delete_post(self, post_id: int, force: bool = False) -> dict[str, Any]:
        return await self._request(
            "DELETE", f"{WP_V2}/posts/{post_id}", query={"force": True if force else None}
        )

    # =========================================================================
    # Categories
    # =========================================================================

    async def list_categories(self, params: Mapping[str, Any]) -> list[dict[str, Any]]:
        query = {
            key: params.get(key)
            for key in ("page", "per_page", "search", "orderby", "order", "hide_empty", "parent")
        }
        return await self._request(
            "GET", f"{WP_V2}/categories", query={"_fields": TAXONOMY_LIST_FIELDS, **query}
        )

    async def get_category(self, category_id: int) -> dict[str, Any]:
        return await self._request("GET", f"{WP_V2}/categories/{category_id}")

    async def create_category(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{WP_V2}/categories", body=params)

    async def update_category(
        self, category_id: int, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self._request("PATCH", f"{WP_V2}/categories/{category_id}", body=params)

    async def delete_category(self, category_id: int, force: bool = False) -> dict[str, Any]:
        return await self._request(
            "DELETE",
            f"{WP_V2}/categories/{category_id}",
            query={"force": True if force else None},
        )

    # =========================================================================
    # Tags
    # =========================================================================

    async def list_tags(self, params: Mapping[str, Any]) -> list[dict[str, Any]]:
        query = {
            key: params.get(key)
            for key in ("page", "per_page", "search", "orderby", "order", "hide_empty")
        }
        return await self._request(
            "GET", f"{WP_V2}/tags", query={"_fields": TAXONOMY_LIST_FIELDS, **query}
        )

    async def get_tag(self, tag_id: int) -> dict[str, Any]:
        return await self._request("GET", f"{WP_V2}/tags/{tag_id}")

    async def create_tag(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{WP_V2}/tags", body=params)

    async def update_tag(self, tag_id: int, params: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"{WP_V2}/tags/{tag_id}", body=params)

    async def delete_tag(self, tag_id: int, force: bool = False) -> dict[str, Any]:
        return await self._request(
            "DELETE", f"{WP_V2}/tags/{tag_id}", query={"force": True if force else None}
        )

    # =========================================================================
    # Site-specific endpoints (Avia builder, Yoast SEO)
    # =========================================================================

    async def activate_builder(self, post_id: int) -> Any:
        return await self._request("POST", f"{AVIA_V1}/activate-builder/{post_id}")

    async def update_yoast_seo(self, post_id: int, params: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{AVIA_V1}/yoast-seo/{post_id}", body=params)
