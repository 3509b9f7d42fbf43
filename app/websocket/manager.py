"""WebSocket connection manager for display and participant clients."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from fastapi import WebSocket

from app.core.logging import get_logger
from .events import WSEvent, WSEventType

logger = get_logger("websocket.manager")


@dataclass
class DisplayConnection:
    """A connected client. Display widgets connect without credentials."""

    websocket: WebSocket
    client_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    subscriptions: set[str] = field(default_factory=set)

    async def send_event(self, event: WSEvent) -> bool:
        """Send an event to this connection."""
        try:
            await self.websocket.send_json(event.model_dump(mode="json"))
            return True
        except Exception as e:
            logger.debug(f"Failed to send to {self.client_id}: {e}")
            return False


class ConnectionManager:
    """Tracks open WebSocket connections and fans events out to them."""

    def __init__(self):
        self._connections: dict[str, DisplayConnection] = {}
        self._lock = asyncio.Lock()

    async def connect(
        self,
        websocket: WebSocket,
        subscriptions: Optional[set[str]] = None,
    ) -> DisplayConnection:
        """Accept and register a new connection."""
        await websocket.accept()

        conn_id = str(id(websocket))
        conn = DisplayConnection(
            websocket=websocket,
            client_id=conn_id,
            subscriptions=subscriptions or {"all"},
        )

        async with self._lock:
            self._connections[conn_id] = conn

        logger.info(f"WebSocket connected: {conn_id}")

        await conn.send_event(WSEvent(
            type=WSEventType.CONNECTED,
            message="Connected",
            data={"subscriptions": sorted(conn.subscriptions)},
        ))

        return conn

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a connection."""
        conn_id = str(id(websocket))

        async with self._lock:
            conn = self._connections.pop(conn_id, None)
        if conn:
            logger.info(f"WebSocket disconnected: {conn_id}")

    async def broadcast(
        self,
        event: WSEvent,
        subscription: Optional[str] = None,
    ) -> int:
        """Broadcast an event to all matching connections.

        Delivery is best-effort: failed sends are counted out, never raised.

        Returns:
            Number of connections that received the event
        """
        async with self._lock:
            connections = list(self._connections.values())

        if subscription:
            connections = [
                c for c in connections
                if subscription in c.subscriptions or "all" in c.subscriptions
            ]

        results = await asyncio.gather(
            *[conn.send_event(event) for conn in connections],
            return_exceptions=True
        )

        sent_count = sum(1 for r in results if r is True)
        logger.debug(f"Broadcast {event.type}: sent to {sent_count}/{len(connections)}")

        return sent_count

    @property
    def connection_count(self) -> int:
        """Number of active connections."""
        return len(self._connections)
