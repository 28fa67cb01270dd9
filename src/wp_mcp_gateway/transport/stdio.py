"""MCP transport over stdio (stdin/stdout).

Used when the gateway runs as a subprocess of an MCP client. Messages are
newline-delimited JSON; the process is one implicit session. Logging goes to
stderr so stdout carries protocol messages only.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, TextIO

from ..protocol import McpProtocolHandler

logger = logging.getLogger(__name__)


class StdioTransport:
    """Serves the protocol handler over stdin/stdout.

    Example:
        transport = StdioTransport(handler)
        await transport.run()  # returns on EOF
    """

    def __init__(
        self,
        handler: McpProtocolHandler,
        reader: asyncio.StreamReader | None = None,
        writer: TextIO | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            handler: Protocol handler for incoming messages
            reader: Input stream (defaults to stdin)
            writer: Output stream (defaults to stdout)
        """
        self._handler = handler
        self._reader = reader
        self._writer = writer or sys.stdout
        self._writer_lock = asyncio.Lock()
        self._running = False
        self._tasks: set[asyncio.Task[None]] = set()

    async def _connect_stdin(self) -> asyncio.StreamReader:
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        loop = asyncio.get_running_loop()
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
        return reader

    async def run(self) -> None:
        """Read and handle messages until EOF or ``stop()``.

        Each message is handled in its own task, so a slow call never holds
        back later messages. Calls still in flight at EOF are awaited so
        their responses are written.
        """
        reader = self._reader or await self._connect_stdin()
        self._running = True
        logger.info("Stdio transport started")

        try:
            while self._running:
                line = await reader.readline()
                if not line:
                    break
                task = asyncio.create_task(self._process_safely(line))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

            if self._tasks:
                await asyncio.gather(*self._tasks)
        finally:
            for task in list(self._tasks):
                task.cancel()
            self._running = False
            logger.info("Stdio transport stopped")

    def stop(self) -> None:
        self._running = False

    async def _process_safely(self, line: bytes) -> None:
        try:
            await self.process_line(line)
        except Exception as e:
            logger.exception(f"Error processing stdin message: {e}")

    async def process_line(self, line: str | bytes) -> None:
        """Handle one input line and write whatever it produces.

        Bytes are passed through undecoded; invalid UTF-8 is answered with a
        parse error like any other malformed message.
        """
        data = line.strip()
        if not data:
            return

        notifications: list[dict[str, Any]] = []
        response = await self._handler.handle_raw(data, notify=notifications.append)
        for notification in notifications:
            await self._write(notification)
        if response is not None:
            await self._write(response.to_wire())

    async def _write(self, message: dict[str, Any]) -> None:
        """Write one message to stdout with locking."""
        async with self._writer_lock:
            self._writer.write(json.dumps(message, ensure_ascii=False) + "\n")
            self._writer.flush()
