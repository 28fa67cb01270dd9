"""WordPress tool set.

Declares the 17 tools the gateway exposes and binds each one to a backend
operation. Handlers receive validated, defaulted parameters.
"""

from __future__ import annotations

import re
from typing import Any

from ..backend import WordPressBackend
from .registry import CommandDescriptor, CommandRegistry, ParamSpec, ParamType

_TAG_RE = re.compile(r"<[^>]*>")

POST_STATUSES = ("publish", "draft", "pending", "private")
POST_LIST_STATUSES = (*POST_STATUSES, "trash")
POST_ORDERBY = ("date", "id", "title", "slug", "modified")
TAXONOMY_ORDERBY = ("id", "include", "name", "slug", "count", "description")
ORDER = ("asc", "desc")


def strip_html(html: str) -> str:
    """Remove HTML tags and surrounding whitespace."""
    return _TAG_RE.sub("", html or "").strip()


def _rendered(value: Any) -> str:
    if isinstance(value, dict):
        return strip_html(value.get("rendered", ""))
    return strip_html(value or "")


def clean_post(post: dict[str, Any]) -> dict[str, Any]:
    """Flatten a WordPress post into plain fields without HTML."""
    return {
        "id": post.get("id"),
        "date": post.get("date"),
        "slug": post.get("slug"),
        "status": post.get("status"),
        "title": _rendered(post.get("title")),
        "content": _rendered(post.get("content")),
        "excerpt": _rendered(post.get("excerpt")),
        "author": post.get("author"),
        "featured_media": post.get("featured_media"),
        "categories": post.get("categories", []),
        "tags": post.get("tags", []),
        "link": post.get("link"),
    }


# =============================================================================
# Shared parameter declarations
# =============================================================================


def _id(description: str) -> ParamSpec:
    return ParamSpec("id", ParamType.INTEGER, description, required=True, minimum=1)


def _force(description: str) -> ParamSpec:
    return ParamSpec("force", ParamType.BOOLEAN, description, default=False)


def _page(noun: str) -> tuple[ParamSpec, ...]:
    return (
        ParamSpec("page", ParamType.INTEGER, "Page number (default: 1)", default=1, minimum=1),
        ParamSpec(
            "per_page",
            ParamType.INTEGER,
            f"{noun} per page (default: 10, max: 100)",
            default=10,
            minimum=1,
            maximum=100,
        ),
        ParamSpec("search", ParamType.STRING, "Search term"),
    )


def _taxonomy_listing(noun: str) -> tuple[ParamSpec, ...]:
    return (
        *_page(noun),
        ParamSpec(
            "orderby",
            ParamType.STRING,
            "Sort field (default: name)",
            default="name",
            enum=TAXONOMY_ORDERBY,
        ),
        ParamSpec(
            "order", ParamType.STRING, "Sort direction (default: asc)", default="asc", enum=ORDER
        ),
        ParamSpec(
            "hide_empty",
            ParamType.BOOLEAN,
            f"Hide {noun.lower()} without posts (default: false)",
            default=False,
        ),
    )


def _post_fields(*, creating: bool) -> tuple[ParamSpec, ...]:
    prefix = "" if creating else "New "
    return (
        ParamSpec("title", ParamType.STRING, f"{prefix}Post title", required=creating),
        ParamSpec(
            "content",
            ParamType.STRING,
            f"{prefix}Post content (HTML allowed)",
            required=creating,
        ),
        ParamSpec("slug", ParamType.STRING, f"{prefix}URL slug"),
        ParamSpec(
            "status",
            ParamType.STRING,
            "Post status (default: draft)" if creating else "New post status",
            default="draft" if creating else None,
            enum=POST_STATUSES,
        ),
        ParamSpec("excerpt", ParamType.STRING, f"{prefix}Excerpt"),
        ParamSpec("author", ParamType.INTEGER, f"{prefix}Author user ID", minimum=1),
        ParamSpec("featured_media", ParamType.INTEGER, f"{prefix}Featured image (media) ID"),
        ParamSpec("categories", ParamType.ARRAY, f"{prefix}Category IDs", items=ParamType.INTEGER),
        ParamSpec("tags", ParamType.ARRAY, f"{prefix}Tag IDs", items=ParamType.INTEGER),
    )


def _split_id(params: dict[str, Any]) -> tuple[int, dict[str, Any]]:
    rest = dict(params)
    return rest.pop("id"), rest


# =============================================================================
# Registry construction
# =============================================================================


def build_registry(backend: WordPressBackend) -> CommandRegistry:
    """Create the registry of WordPress tools bound to ``backend``."""

    # Posts

    async def list_posts(params: dict[str, Any]) -> Any:
        posts = await backend.list_posts(params)
        return [clean_post(post) for post in posts]

    async def get_post(params: dict[str, Any]) -> Any:
        return clean_post(await backend.get_post(params["id"]))

    async def create_post(params: dict[str, Any]) -> Any:
        return clean_post(await backend.create_post(params))

    async def update_post(params: dict[str, Any]) -> Any:
        post_id, fields = _split_id(params)
        return clean_post(await backend.update_post(post_id, fields))

    async def delete_post(params: dict[str, Any]) -> Any:
        result = await backend.delete_post(params["id"], params["force"])
        return {"deleted": result.get("deleted"), "post": clean_post(result.get("previous") or {})}

    # Categories

    async def list_categories(params: dict[str, Any]) -> Any:
        return await backend.list_categories(params)

    async def get_category(params: dict[str, Any]) -> Any:
        return await backend.get_category(params["id"])

    async def create_category(params: dict[str, Any]) -> Any:
        return await backend.create_category(params)

    async def update_category(params: dict[str, Any]) -> Any:
        category_id, fields = _split_id(params)
        return await backend.update_category(category_id, fields)

    async def delete_category(params: dict[str, Any]) -> Any:
        result = await backend.delete_category(params["id"], params["force"])
        return {"deleted": result.get("deleted"), "category": result.get("previous")}

    # Tags

    async def list_tags(params: dict[str, Any]) -> Any:
        return await backend.list_tags(params)

    async def get_tag(params: dict[str, Any]) -> Any:
        return await backend.get_tag(params["id"])

    async def create_tag(params: dict[str, Any]) -> Any:
        return await backend.create_tag(params)

    async def update_tag(params: dict[str, Any]) -> Any:
        tag_id, fields = _split_id(params)
        return await backend.update_tag(tag_id, fields)

    async def delete_tag(params: dict[str, Any]) -> Any:
        result = await backend.delete_tag(params["id"], params["force"])
        return {"deleted": result.get("deleted"), "tag": result.get("previous")}

    # Site-specific metadata

    async def activate_builder(params: dict[str, Any]) -> Any:
        return await backend.activate_builder(params["id"])

    async def update_yoast_seo(params: dict[str, Any]) -> Any:
        post_id, fields = _split_id(params)
        return await backend.update_yoast_seo(post_id, fields)

    return CommandRegistry(
        [
            CommandDescriptor(
                name="listPosts",
                description="List WordPress posts. Supports pagination, search and status filter.",
                params=(
                    *_page("Posts"),
                    ParamSpec(
                        "status", ParamType.STRING, "Post status filter", enum=POST_LIST_STATUSES
                    ),
                    ParamSpec(
                        "orderby",
                        ParamType.STRING,
                        "Sort field (default: date)",
                        default="date",
                        enum=POST_ORDERBY,
                    ),
                    ParamSpec(
                        "order",
                        ParamType.STRING,
                        "Sort direction (default: desc)",
                        default="desc",
                        enum=ORDER,
                    ),
                ),
                handler=list_posts,
            ),
            CommandDescriptor(
                name="getPost",
                description="Fetch a single WordPress post by ID.",
                params=(_id("Post ID"),),
                handler=get_post,
            ),
            CommandDescriptor(
                name="createPost",
                description="Create a new WordPress post.",
                params=_post_fields(creating=True),
                handler=create_post,
            ),
            CommandDescriptor(
                name="updatePost",
                description="Update an existing WordPress post.",
                params=(_id("ID of the post to update"), *_post_fields(creating=False)),
                handler=update_post,
            ),
            CommandDescriptor(
                name="deletePost",
                description=(
                    "Delete a WordPress post. With force=true the trash is skipped "
                    "and the post is removed permanently."
                ),
                params=(
                    _id("ID of the post to delete"),
                    _force("true to delete permanently, false to move to trash (default: false)"),
                ),
                handler=delete_post,
            ),
            CommandDescriptor(
                name="listCategories",
                description="List WordPress categories. Supports pagination, search and sorting.",
                params=(
                    *_taxonomy_listing("Categories"),
                    ParamSpec("parent", ParamType.INTEGER, "Filter by parent category ID"),
                ),
                handler=list_categories,
            ),
            CommandDescriptor(
                name="getCategory",
                description="Fetch a single WordPress category by ID.",
                params=(_id("Category ID"),),
                handler=get_category,
            ),
            CommandDescriptor(
                name="createCategory",
                description="Create a new WordPress category.",
                params=(
                    ParamSpec("name", ParamType.STRING, "Category name", required=True),
                    ParamSpec("description", ParamType.STRING, "Category description"),
                    ParamSpec("slug", ParamType.STRING, "Category URL slug"),
                    ParamSpec(
                        "parent", ParamType.INTEGER, "Parent category ID (hierarchy)", minimum=1
                    ),
                ),
                handler=create_category,
            ),
            CommandDescriptor(
                name="updateCategory",
                description="Update an existing WordPress category.",
                params=(
                    _id("ID of the category to update"),
                    ParamSpec("name", ParamType.STRING, "New category name"),
                    ParamSpec("description", ParamType.STRING, "New category description"),
                    ParamSpec("slug", ParamType.STRING, "New category slug"),
                    ParamSpec("parent", ParamType.INTEGER, "New parent category ID"),
                ),
                handler=update_category,
            ),
            CommandDescriptor(
                name="deleteCategory",
                description="Delete a WordPress category. Categories require force=true.",
                params=(
                    _id("ID of the category to delete"),
                    _force("true to delete permanently (default: false)"),
                ),
                handler=delete_category,
            ),
            CommandDescriptor(
                name="listTags",
                description="List WordPress tags. Supports pagination, search and sorting.",
                params=_taxonomy_listing("Tags"),
                handler=list_tags,
            ),
            CommandDescriptor(
                name="getTag",
                description="Fetch a single WordPress tag by ID.",
                params=(_id("Tag ID"),),
                handler=get_tag,
            ),
            CommandDescriptor(
                name="createTag",
                description="Create a new WordPress tag.",
                params=(
                    ParamSpec("name", ParamType.STRING, "Tag name", required=True),
                    ParamSpec("description", ParamType.STRING, "Tag description"),
                    ParamSpec("slug", ParamType.STRING, "Tag URL slug"),
                ),
                handler=create_tag,
            ),
            CommandDescriptor(
                name="updateTag",
                description="Update an existing WordPress tag.",
                params=(
                    _id("ID of the tag to update"),
                    ParamSpec("name", ParamType.STRING, "New tag name"),
                    ParamSpec("description", ParamType.STRING, "New tag description"),
                    ParamSpec("slug", ParamType.STRING, "New tag slug"),
                ),
                handler=update_tag,
            ),
            CommandDescriptor(
                name="deleteTag",
                description="Delete a WordPress tag. Tags require force=true.",
                params=(
                    _id("ID of the tag to delete"),
                    _force("true to delete permanently (default: false)"),
                ),
                handler=delete_tag,
            ),
            CommandDescriptor(
                name="activateBuilder",
                description="Enable the Avia layout builder on a WordPress post.",
                params=(_id("Post ID"),),
                handler=activate_builder,
            ),
            CommandDescriptor(
                name="updateYoastSeo",
                description="Set Yoast SEO metadata (focus keyword, meta description, title).",
                params=(
                    _id("Post ID"),
                    ParamSpec("focuskw", ParamType.STRING, "Focus keyword"),
                    ParamSpec("metadesc", ParamType.STRING, "Meta description"),
                    ParamSpec("title", ParamType.STRING, "SEO title"),
                ),
                handler=update_yoast_seo,
            ),
        ]
    )
