"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

import pytest

from wp_mcp_gateway.config import GatewaySettings
from wp_mcp_gateway.errors import WordPressAPIError


# =============================================================================
# Fake WordPress backend
# =============================================================================


def wp_post(post_id: int, title: str = "Hello", content: str = "<p>Body</p>") -> dict[str, Any]:
    """A post as returned by the WordPress REST API."""
    return {
        "id": post_id,
        "date": "2024-05-01T10:00:00",
        "slug": f"post-{post_id}",
        "status": "publish",
        "title": {"rendered": f"<strong>{title}</strong>"},
        "content": {"rendered": content},
        "excerpt": {"rendered": "<p>Short</p>"},
        "author": 1,
        "featured_media": 0,
        "categories": [1],
        "tags": [],
        "link": f"https://example.test/post-{post_id}",
    }


class FakeBackend:
    """In-memory WordPressBackend that records every call.

    Attributes:
        calls: (operation, args) in call order
        errors: operation -> exception to raise
        delay_for: optional (operation, args) -> seconds to sleep first
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.errors: dict[str, Exception] = {}
        self.delay_for: Callable[[str, tuple[Any, ...]], float] | None = None
        self.posts: dict[int, dict[str, Any]] = {1: wp_post(1), 2: wp_post(2, "Second")}

    async def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        if self.delay_for is not None:
            delay = self.delay_for(operation, args)
            if delay:
                await asyncio.sleep(delay)
        if operation in self.errors:
            raise self.errors[operation]

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def _post(self, post_id: int) -> dict[str, Any]:
        if post_id not in self.posts:
            raise WordPressAPIError(404, "Invalid post ID.")
        return self.posts[post_id]

    # Posts

    async def list_posts(self, params: Mapping[str, Any]) -> list[dict[str, Any]]:
        await self._record("list_posts", dict(params))
        return list(self.posts.values())

    async def get_post(self, post_id: int) -> dict[str, Any]:
        await self._record("get_post", post_id)
        return self._post(post_id)

    async def create_post(self, params: Mapping[str, Any]) -> dict[str, Any]:
        await self._record("create_post", dict(params))
        post = wp_post(100, params["title"], params["content"])
        post["status"] = params.get("status", "draft")
        return post

    async def update_post(self, post_id: int, params: Mapping[str, Any]) -> dict[str, Any]:
        await self._record("update_post", post_id, dict(params))
        return {**self._post(post_id), **params}

    async def delete_post(self, post_id: int, force: bool = False) -> dict[str, Any]:
        await self._record("delete_post", post_id, force)
        return {"deleted": True, "previous": self._post(post_id)}

    # Categories

    async def list_categories(self, params: Mapping[str, Any]) -> list[dict[str, Any]]:
        await self._record("list_categories", dict(params))
        return [{"id": 1, "name": "News"}, {"id": 2, "name": "Events"}]

    async def get_category(self, category_id: int) -> dict[str, Any]:
        await self._record("get_category", category_id)
        return {"id": category_id, "name": "News", "count": 3}

    async def create_category(self, params: Mapping[str, Any]) -> dict[str, Any]:
        await self._record("create_category", dict(params))
        return {"id": 10, **params}

    async def update_category(
        self, category_id: int, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        await self._record("update_category", category_id, dict(params))
        return {"id": category_id, **params}

    async def delete_category(self, category_id: int, force: bool = False) -> dict[str, Any]:
        await self._record("delete_category", category_id, force)
        return {"deleted": True, "previous": {"id": category_id, "name": "News"}}

    # Tags

    async def list_tags(self, params: Mapping[str, Any]) -> list[dict[str, Any]]:
        await self._record("list_tags", dict(params))
        return [{"id": 5, "name": "python"}]

    async def get_tag(self, tag_id: int) -> dict[str, Any]:
        await self._record("get_tag", tag_id)
        return {"id": tag_id, "name": "python"}

    async def create_tag(self, params: Mapping[str, Any]) -> dict[str, Any]:
        await self._record("create_tag", dict(params))
        return {"id": 20, **params}

    async def update_tag(self, tag_id: int, params: Mapping[str, Any]) -> dict[str, Any]:
        await self._record("update_tag", tag_id, dict(params))
        return {"id": tag_id, **params}

    async def delete_tag(self, tag_id: int, force: bool = False) -> dict[str, Any]:
        await self._record("delete_tag", tag_id, force)
        return {"deleted": True, "previous": {"id": tag_id, "name": "python"}}

    # Site-specific metadata

    async def activate_builder(self, post_id: int) -> Any:
        await self._record("activate_builder", post_id)
        return {"success": True, "post_id": post_id}

    async def update_yoast_seo(self, post_id: int, params: Mapping[str, Any]) -> dict[str, Any]:
        await self._record("update_yoast_seo", post_id, dict(params))
        return {"post_id": post_id, **params}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def backend() -> FakeBackend:
    """Fresh fake backend for each test."""
    return FakeBackend()


@pytest.fixture
def settings() -> GatewaySettings:
    """Settings for a token-authenticated test site."""
    return GatewaySettings(
        wordpress_base_url="https://example.test/",
        wordpress_token="secret-token",
        gateway_call_timeout=5.0,
        gateway_heartbeat_interval=30.0,
    )
