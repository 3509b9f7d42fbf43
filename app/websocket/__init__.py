"""WebSocket module for real-time updates."""

from .manager import ConnectionManager
from .events import WSEventType, WSEvent

__all__ = [
    "ConnectionManager",
    "WSEventType",
    "WSEvent",
]
