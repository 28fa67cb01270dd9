"""Session multiplexer primitives.

- Session: one client's logical conversation over one transport family
- SessionStore: concurrency-safe registry of live sessions, one per family
- Outbox: ordered per-session message queue, the session's transport handle
- PushChannel: outbox variant that only buffers while a reader is attached

Store operations never suspend, so a session is either fully registered or
not visible at all. Outboxes have exactly one consumer (the stream writer),
which serializes writes to a single connection.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)


class TransportKind(str, Enum):
    """Transport families served by the gateway."""

    STREAMABLE_HTTP = "streamable-http"
    SSE = "sse"


HandleT = TypeVar("HandleT")


@dataclass
class Session(Generic[HandleT]):
    """A live session.

    Only ``closed`` changes after construction.
    """

    id: str
    transport_kind: TransportKind
    handle: HandleT
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    closed: bool = False

    def close(self) -> bool:
        """Mark closed and release the handle.

        Returns:
            True on the first call, False if the session was already closed
        """
        if self.closed:
            return False
        self.closed = True
        close = getattr(self.handle, "close", None)
        if callable(close):
            close()
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.id,
            "transport": self.transport_kind.value,
            "created_at": self.created_at.isoformat(),
            "closed": self.closed,
        }


class SessionStore(Generic[HandleT]):
    """Keyed collection of live sessions for one transport family.

    Thread-safe; all operations are synchronous and finish without awaiting,
    so they are also atomic with respect to other asyncio tasks.

    Example:
        store: SessionStore[Outbox] = SessionStore(TransportKind.SSE)
        session = store.create(Outbox())
        store.get(session.id)
        store.remove(session.id)  # True
        store.remove(session.id)  # False
    """

    def __init__(self, transport_kind: TransportKind) -> None:
        self.transport_kind = transport_kind
        self._sessions: dict[str, Session[HandleT]] = {}
        self._lock = threading.Lock()

    def _new_id(self) -> str:
        return uuid.uuid4().hex

    def create(self, handle: HandleT) -> Session[HandleT]:
        """Register a new session owning ``handle``.

        Args:
            handle: Transport-specific handle used to deliver async output

        Returns:
            The registered session
        """
        with self._lock:
            session_id = self._new_id()
            while session_id in self._sessions:
                logger.warning(f"Session id collision on {session_id}, regenerating")
                session_id = self._new_id()
            session: Session[HandleT] = Session(
                id=session_id,
                transport_kind=self.transport_kind,
                handle=handle,
            )
            self._sessions[session_id] = session
        logger.info(f"[{self.transport_kind.value}] Session created: {session_id}")
        return session

    def get(self, session_id: str) -> Session[HandleT] | None:
        """Look up a live session. Unknown ids return None."""
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        """Remove a session and close it.

        Idempotent: the second call for the same id is a no-op.

        Returns:
            True if an entry existed
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        logger.info(f"[{self.transport_kind.value}] Session closed: {session_id}")
        return True

    def close_all(self) -> int:
        """Remove every session (used on shutdown).

        Returns:
            Number of sessions removed
        """
        with self._lock:
            session_ids = list(self._sessions)
        return sum(1 for session_id in session_ids if self.remove(session_id))

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    @property
    def count(self) -> int:
        return len(self)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions


# =============================================================================
# Outboxes
# =============================================================================


class Slot:
    """A reserved position in an outbox.

    The slot keeps its place in the delivery order until it is resolved with
    the messages that belong there. Resolving twice, or after the outbox has
    closed, does nothing.
    """

    def __init__(self, future: asyncio.Future[list[Any] | None]) -> None:
        self._future = future

    def resolve(self, messages: list[Any]) -> None:
        if not self._future.done():
            self._future.set_result(list(messages))

    @property
    def resolved(self) -> bool:
        return self._future.done()


class Outbox:
    """Ordered message queue for one session.

    Producers either ``put`` a ready message or ``reserve`` a slot that is
    resolved later. The single consumer receives messages in reservation
    order, regardless of the order in which slots are resolved.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[asyncio.Future[list[Any] | None]] = asyncio.Queue()
        self._ready: deque[Any] = deque()
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        return self._closed

    def reserve(self) -> Slot | None:
        """Reserve the next delivery position.

        Returns:
            The slot, or None if the outbox is closed
        """
        if self._closed:
            return None
        future: asyncio.Future[list[Any] | None] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(future)
        return Slot(future)

    def put(self, message: Any) -> bool:
        """Append a ready message.

        Returns:
            False if the message was dropped because the outbox is closed
        """
        slot = self.reserve()
        if slot is None:
            return False
        slot.resolve([message])
        return True

    async def get(self) -> Any | None:
        """Wait for the next message.

        Returns:
            The next message, or None once the outbox is closed and drained
        """
        while not self._ready:
            if self._drained:
                return None
            future = await self._queue.get()
            messages = await future
            if messages is None:
                self._drained = True
                return None
            self._ready.extend(messages)
        return self._ready.popleft()

    def close(self) -> None:
        """Stop accepting messages; the consumer drains what is queued."""
        if self._closed:
            return
        self._closed = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (e.g. interpreter shutdown): nobody can be waiting.
            self._drained = True
            return
        sentinel: asyncio.Future[list[Any] | None] = loop.create_future()
        sentinel.set_result(None)
        self._queue.put_nowait(sentinel)


class PushChannel(Outbox):
    """Outbox for server-initiated messages on a streamable HTTP session.

    Messages are only buffered while a reader (the GET stream) is attached;
    otherwise they are dropped, as there is nowhere to deliver them.
    """

    def __init__(self) -> None:
        super().__init__()
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> bool:
        """Claim the channel for a reader. Returns False if already claimed."""
        if self._attached or self.closed:
            return False
        self._attached = True
        return True

    def detach(self) -> None:
        self._attached = False

    def reserve(self) -> Slot | None:
        if not self._attached:
            return None
        return super().reserve()
