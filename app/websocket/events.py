"""WebSocket event types and models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class WSEventType(str, Enum):
    """WebSocket event types."""

    # Connection events
    CONNECTED = "connected"
    ERROR = "error"
    PING = "ping"
    PONG = "pong"

    # Day cycle events
    DAY_CHANGED = "day_changed"
    SCHEDULE_CHANGED = "schedule_changed"
    NOTIFICATION = "notification"


class WSEvent(BaseModel):
    """WebSocket event payload."""

    type: WSEventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Optional[dict[str, Any]] = None
    message: Optional[str] = None

    model_config = {"use_enum_values": True}


class NotificationData(BaseModel):
    """Toast shown by display and participant clients."""

    type: Literal["success", "info", "warning", "error"] = "info"
    title: str
    message: str


def day_changed_event(current_day: int) -> WSEvent:
    return WSEvent(type=WSEventType.DAY_CHANGED, data={"currentDay": current_day})


def notification_event(title: str, message: str, level: str = "info") -> WSEvent:
    payload = NotificationData(type=level, title=title, message=message)
    return WSEvent(
        type=WSEventType.NOTIFICATION,
        message=message,
        data=payload.model_dump(),
    )


def schedule_changed_event(
    enabled: bool, interval_minutes: Optional[int], next_run_at: Optional[datetime]
) -> WSEvent:
    return WSEvent(
        type=WSEventType.SCHEDULE_CHANGED,
        data={
            "enabled": enabled,
            "intervalMinutes": interval_minutes,
            "nextRunAt": next_run_at.isoformat() if next_run_at else None,
        },
    )
