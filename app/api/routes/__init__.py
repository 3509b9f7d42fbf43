"""API routes package."""

from . import (
    days,
    health,
    participants,
    public,
    ws,
)


__all__ = [
    "days",
    "health",
    "participants",
    "public",
    "ws",
]
