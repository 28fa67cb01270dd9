"""Health check endpoint."""

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route


async def health_check(request: Request) -> JSONResponse:
    """Liveness plus live session counts per transport family."""
    state = request.app.state
    return JSONResponse(
        {
            "status": "ok",
            "streamableSessions": state.streamable_store.count,
            "legacySessions": state.sse_store.count,
            "wordpress": state.settings.wordpress_base_url,
        }
    )


health_routes = [
    Route("/health", health_check, methods=["GET"]),
]
