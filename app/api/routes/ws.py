"""WebSocket route for real-time day updates."""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from app.core.logging import get_logger
from app.websocket import WSEvent, WSEventType

logger = get_logger("api.routes.ws")

router = APIRouter(tags=["websocket"])


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    channels: Optional[str] = Query(None, description="Comma-separated subscriptions"),
):
    """
    WebSocket endpoint for display widgets and participant clients.

    No credentials are needed; the channel carries no private data.

    Events you'll receive:
    - day_changed: a new simulated day opened
    - schedule_changed: auto-advance was enabled, disabled or retimed
    - notification: toast messages for day-cycle actions
    """
    manager = websocket.app.state.connection_manager
    subscriptions = {c.strip() for c in channels.split(",") if c.strip()} if channels else None
    conn = await manager.connect(websocket, subscriptions)

    try:
        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_json(), timeout=60.0)

                msg_type = data.get("type", "") if isinstance(data, dict) else ""

                if msg_type == "ping":
                    await conn.send_event(WSEvent(type=WSEventType.PONG))

                elif msg_type == "subscribe":
                    requested = data.get("channels", [])
                    if isinstance(requested, list):
                        conn.subscriptions.update(requested)
                        logger.debug(f"{conn.client_id} subscribed to: {requested}")

                elif msg_type == "unsubscribe":
                    requested = data.get("channels", [])
                    if isinstance(requested, list):
                        conn.subscriptions.difference_update(requested)
                        logger.debug(f"{conn.client_id} unsubscribed from: {requested}")

            except asyncio.TimeoutError:
                if not await conn.send_event(WSEvent(type=WSEventType.PING)):
                    break

    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket)
