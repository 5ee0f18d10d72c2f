"""Broadcast hub — owns the live-connection set and fans messages out.

Learn: The set of open sockets is the only shared mutable state in the
process. It is touched only through register/unregister (writers, under
the lock) and relay/broadcast (readers, which copy the set under the lock
and then send OUTSIDE it). No send ever happens while the lock is held.

Delivery is best-effort. A send that raises marks that connection Closed,
drops it from the set and gets logged; every other delivery carries on and
the caller never sees the error.
"""

import asyncio
import enum
import uuid
from typing import Any, Iterable, Optional

import structlog
from fastapi import Request

from taskify.realtime.events import BroadcastEvent, RawRelay

logger = structlog.get_logger()


class ConnectionState(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class Connection:
    """One client's live channel. Open -> Closed, never back.

    `transport` is anything with an async send_text(str) and close():
    a Starlette WebSocket in production, a fake in tests.
    """

    def __init__(self, transport: Any, connection_id: Optional[str] = None):
        self.id = connection_id or uuid.uuid4().hex
        self.transport = transport
        self.state = ConnectionState.OPEN
        self._send_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def mark_closed(self) -> None:
        self.state = ConnectionState.CLOSED

    async def send_text(self, text: str) -> bool:
        """Send one frame. Returns False if the connection was already closed.

        Frames to the same connection are serialized so concurrent
        broadcasts never interleave on the wire.
        """
        async with self._send_lock:
            if not self.is_open:
                return False
            try:
                await self.transport.send_text(text)
            except Exception:
                self.mark_closed()
                raise
            return True

    def __repr__(self) -> str:
        return f"<Connection {self.id} {self.state.value}>"


class BroadcastHub:
    """Tracks live connections and delivers text to them."""

    def __init__(self):
        self._connections: set[Connection] = set()
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def register(self, connection: Connection) -> None:
        async with self._lock:
            self._connections.add(connection)
            count = len(self._connections)
        logger.info(
            "hub.connection_registered",
            connection_id=connection.id,
            connections=count,
        )

    async def unregister(self, connection: Connection) -> None:
        """Remove a connection. Removing an absent connection is a no-op."""
        connection.mark_closed()
        async with self._lock:
            if connection not in self._connections:
                return
            self._connections.discard(connection)
            count = len(self._connections)
        logger.info(
            "hub.connection_unregistered",
            connection_id=connection.id,
            connections=count,
        )

    async def relay(self, source: Connection, raw_text: str) -> int:
        """Forward a client's frame verbatim to every other open connection."""
        targets = await self._snapshot(exclude=source)
        return await self._deliver(targets, RawRelay(raw_text).to_wire())

    async def broadcast(self, event: BroadcastEvent) -> int:
        """Serialize an event and push it to every open connection.

        Returns how many connections accepted the frame.
        """
        try:
            message = event.to_wire()
        except (TypeError, ValueError) as e:
            logger.error("hub.serialize_failed", event_type=type(event).__name__, error=str(e))
            return 0
        targets = await self._snapshot()
        delivered = await self._deliver(targets, message)
        logger.debug(
            "hub.broadcast",
            event_type=type(event).__name__,
            delivered=delivered,
            targets=len(targets),
        )
        return delivered

    async def close(self) -> None:
        """Close every live connection (used on shutdown)."""
        async with self._lock:
            targets = list(self._connections)
            self._connections.clear()
        for connection in targets:
            connection.mark_closed()
            try:
                await connection.transport.close()
            except Exception as e:
                logger.debug("hub.close_failed", connection_id=connection.id, error=str(e))

    # ─── Internals ───────────────────────────────────────

    async def _snapshot(self, exclude: Optional[Connection] = None) -> list[Connection]:
        async with self._lock:
            return [
                c for c in self._connections
                if c.is_open and c is not exclude
            ]

    async def _deliver(self, targets: Iterable[Connection], message: str) -> int:
        targets = list(targets)
        if not targets:
            return 0
        results = await asyncio.gather(
            *(self._send_one(c, message) for c in targets)
        )
        stale = [c for c, ok in zip(targets, results) if not ok]
        for connection in stale:
            await self.unregister(connection)
        return sum(1 for ok in results if ok)

    async def _send_one(self, connection: Connection, message: str) -> bool:
        try:
            return await connection.send_text(message)
        except Exception as e:
            logger.warning(
                "hub.delivery_failed",
                connection_id=connection.id,
                error=str(e),
            )
            return False


def get_hub(request: Request) -> BroadcastHub:
    """FastAPI dependency — the hub owned by this application instance."""
    return request.app.state.hub
