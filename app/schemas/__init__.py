"""Pydantic schemas for API requests and responses."""

from .common import ErrorResponse, HealthResponse, SuccessResponse
from .days import (
    AdvanceResponse,
    AutoDaySchedule,
    ConfigureAutoRequest,
    DaySnapshot,
    PauseResponse,
    ResetRequest,
    StartResponse,
)
from .leaderboard import (
    HoldingValuationResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    PortfolioValuationResponse,
)


__all__ = [
    "AdvanceResponse",
    "AutoDaySchedule",
    "ConfigureAutoRequest",
    "DaySnapshot",
    "ErrorResponse",
    "HealthResponse",
    "HoldingValuationResponse",
    "LeaderboardEntryResponse",
    "LeaderboardResponse",
    "PauseResponse",
    "PortfolioValuationResponse",
    "ResetRequest",
    "StartResponse",
    "SuccessResponse",
]
