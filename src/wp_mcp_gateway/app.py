"""WordPress MCP Gateway Application.

Creates the Starlette ASGI application with all routes.

Route organization:
- /health - Health check (session counts per transport)
- /mcp - Streamable HTTP transport (POST, GET, DELETE)
- /sse - Legacy HTTP+SSE event stream
- /messages - Legacy HTTP+SSE message endpoint

Both transports share one protocol handler (and so one registry and one
dispatcher) but keep separate session stores.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import BaseRoute

from .backend import WordPressBackend, WordPressClient
from .commands import Dispatcher, build_registry
from .config import GatewaySettings, load_settings
from .protocol import McpProtocolHandler
from .routes import health_routes
from .session import Outbox, PushChannel, SessionStore, TransportKind
from .transport import LegacySseTransport, StreamableHttpTransport
from .transport.streamable import SESSION_HEADER

logger = logging.getLogger(__name__)


def create_protocol_handler(
    settings: GatewaySettings, backend: WordPressBackend
) -> McpProtocolHandler:
    """Wire registry, dispatcher and protocol handler for ``backend``."""
    registry = build_registry(backend)
    dispatcher = Dispatcher(registry, timeout=settings.gateway_call_timeout)
    return McpProtocolHandler(dispatcher)


def create_app(
    settings: GatewaySettings | None = None,
    backend: WordPressBackend | None = None,
) -> Starlette:
    """Create the gateway application.

    Args:
        settings: Gateway settings (loaded from the environment if omitted)
        backend: WordPress backend (a WordPressClient is created if omitted;
            a backend passed in is owned by the caller and not closed here)

    Returns:
        Configured Starlette application

    Raises:
        ConfigError: If settings are omitted and the environment is invalid
    """
    settings = settings or load_settings()
    owned_client: WordPressClient | None = None
    if backend is None:
        owned_client = WordPressClient(settings)
        backend = owned_client
    handler = create_protocol_handler(settings, backend)

    streamable_store: SessionStore[PushChannel] = SessionStore(TransportKind.STREAMABLE_HTTP)
    sse_store: SessionStore[Outbox] = SessionStore(TransportKind.SSE)
    streamable = StreamableHttpTransport(
        streamable_store, handler, heartbeat_interval=settings.gateway_heartbeat_interval
    )
    legacy = LegacySseTransport(
        sse_store, handler, heartbeat_interval=settings.gateway_heartbeat_interval
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info(
            f"Gateway ready: {handler.dispatcher.registry.count} tools, "
            f"WordPress at {settings.wordpress_base_url}"
        )
        try:
            yield
        finally:
            closed = streamable_store.close_all() + sse_store.close_all()
            await legacy.aclose()
            if owned_client is not None:
                await owned_client.aclose()
            logger.info(f"Gateway stopped, {closed} session(s) closed")

    routes: list[BaseRoute] = []
    routes.extend(health_routes)
    routes.extend(streamable.routes())
    routes.extend(legacy.routes())

    # CORS middleware for browser-based MCP clients
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=[SESSION_HEADER],
        ),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)

    # Set here, not in lifespan, so the app also works without lifespan events.
    app.state.settings = settings
    app.state.protocol_handler = handler
    app.state.streamable_store = streamable_store
    app.state.sse_store = sse_store
    app.state.streamable_transport = streamable
    app.state.sse_transport = legacy
    return app
