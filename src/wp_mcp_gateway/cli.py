"""WordPress MCP Gateway CLI.

Default mode is stdio (for MCP clients that spawn the gateway).
Use --http to serve the Streamable HTTP and legacy SSE transports.

Usage:
    wp-mcp-gateway                       # Stdio mode (default)
    wp-mcp-gateway --http                # HTTP server mode
    wp-mcp-gateway --http --port 8080    # HTTP with custom port
    wp-mcp-gateway --health              # Check HTTP server health

    wp-mcp-gateway tools                 # List the exposed tools
    wp-mcp-gateway tools --format json   # ... with their input schemas
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click
import httpx

from .backend import WordPressClient
from .commands import build_registry
from .config import GatewaySettings, load_settings
from .errors import ConfigError


# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def truncate(text: str | None, max_len: int = 50) -> str:
    """Truncate text for display."""
    if not text:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def configure_logging(level: str) -> None:
    """Send all logging to stderr; stdout is reserved for the stdio protocol."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(stderr_handler)
    root_logger.setLevel(level)


def _load_settings(**overrides: Any) -> GatewaySettings:
    """Load settings, turning configuration errors into a clean exit."""
    try:
        return load_settings(**{k: v for k, v in overrides.items() if v is not None})
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


@click.group(invoke_without_command=True)
@click.option("--http", "http_mode", is_flag=True, help="Run as HTTP server instead of stdio")
@click.option("--host", default=None, help="Host to bind to (HTTP mode, default: GATEWAY_HOST)")
@click.option(
    "--port", default=None, type=int, help="Port to bind to (HTTP mode, default: SSE_PORT)"
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Log level (default: GATEWAY_LOG_LEVEL)",
)
@click.option("--health", "health_check", is_flag=True, help="Check HTTP server health and exit")
@click.option("--health-url", default="http://localhost:3000", help="Server URL for health check")
@click.pass_context
def main(
    ctx: click.Context,
    http_mode: bool,
    host: str | None,
    port: int | None,
    log_level: str | None,
    health_check: bool,
    health_url: str,
) -> None:
    """WordPress MCP Gateway - WordPress REST tools over MCP.

    By default, runs in stdio mode for subprocess communication.
    Use --http to run as an HTTP server.
    """
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level

    # If a subcommand is invoked, let it handle everything
    if ctx.invoked_subcommand is not None:
        return

    if (host is not None or port is not None) and not http_mode:
        raise click.UsageError(
            "--host and --port require --http mode. "
            "These options are only available when running as an HTTP server."
        )

    # Handle --health flag
    if health_check:
        _do_health_check(health_url)
        return

    settings = _load_settings(gateway_log_level=log_level)
    configure_logging(settings.gateway_log_level)

    # Run in appropriate mode
    if http_mode:
        _run_http_server(settings, host or settings.gateway_host, port or settings.sse_port)
    else:
        _run_stdio_server(settings)


def _do_health_check(url: str) -> None:
    """Check server health."""

    async def check() -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{url}/health")
                if response.status_code == 200:
                    data = response.json()
                    click.echo(f"Server is healthy: {data}")
                else:
                    click.echo(f"Server returned {response.status_code}", err=True)
                    sys.exit(1)
        except httpx.ConnectError:
            click.echo(f"Cannot connect to server at {url}", err=True)
            sys.exit(1)

    asyncio.run(check())


def _run_http_server(settings: GatewaySettings, host: str, port: int) -> None:
    """Run HTTP server mode."""
    import uvicorn

    from .app import create_app

    app = create_app(settings)

    click.echo(f"Starting WordPress MCP gateway on http://{host}:{port}", err=True)
    click.echo(f"  Streamable HTTP: http://{host}:{port}/mcp", err=True)
    click.echo(f"  Legacy SSE:      http://{host}:{port}/sse", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(app, host=host, port=port, log_level=settings.gateway_log_level.lower())


def _run_stdio_server(settings: GatewaySettings) -> None:
    """Run stdio server mode (default)."""
    from .app import create_protocol_handler
    from .transport import StdioTransport

    click.echo("Starting WordPress MCP gateway in stdio mode", err=True)

    async def run() -> None:
        client = WordPressClient(settings)
        try:
            await StdioTransport(create_protocol_handler(settings, client)).run()
        finally:
            await client.aclose()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)


# =============================================================================
# Tool Commands
# =============================================================================


@main.command("tools")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
@click.pass_context
def list_tools(ctx: click.Context, output_format: str) -> None:
    """List the tools exposed to MCP clients.

    Examples:

        wp-mcp-gateway tools
        wp-mcp-gateway tools --format json
    """
    settings = _load_settings(gateway_log_level=ctx.obj.get("log_level"))

    async def collect() -> list[dict[str, Any]]:
        client = WordPressClient(settings)
        try:
            return [d.to_tool() for d in build_registry(client).list_commands()]
        finally:
            await client.aclose()

    tools = asyncio.run(collect())

    if output_format == FORMAT_JSON:
        click.echo(json.dumps(tools, indent=2, ensure_ascii=False))
        return

    click.echo(f"{'Name':<18} {'Description':<60}")
    click.echo("-" * 78)
    for tool in tools:
        click.echo(f"{tool['name']:<18} {truncate(tool['description'], 60):<60}")
    click.echo(f"\nTotal: {len(tools)} tool(s)")


if __name__ == "__main__":
    main()
