"""Core infrastructure: settings, security, logging, exceptions, clock."""

from .clock import Clock, system_clock
from .config import settings
from .exceptions import (
    AlreadyActiveError,
    AlreadyPausedError,
    AppException,
    AuthenticationError,
    AuthorizationError,
    DaySimulationError,
    NotActiveError,
    NotFoundError,
    NotInitializedError,
    NotPausedError,
    ValidationError,
)
from .security import (
    TokenData,
    create_access_token,
    decode_access_token,
)


__all__ = [
    "AlreadyActiveError",
    "AlreadyPausedError",
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "Clock",
    "DaySimulationError",
    "NotActiveError",
    "NotFoundError",
    "NotInitializedError",
    "NotPausedError",
    "TokenData",
    "ValidationError",
    "create_access_token",
    "decode_access_token",
    "settings",
    "system_clock",
]
