"""Trading-day simulation: day cycle, scheduler, valuation and leaderboard."""

from .leaderboard import Leaderboard, LeaderboardBuilder, LeaderboardEntry
from .scheduler import DayScheduler
from .service import AdvanceResult, DayService, build_day_service
from .state import (
    DAY_CONTROL_ID,
    DayControlState,
    DayTransition,
    Holding,
    ParticipantSnapshot,
    SchedulerStatus,
    SimulationPhase,
)
from .valuation import Valuation, ValuationEngine, resolve_price_as_of


__all__ = [
    "AdvanceResult",
    "DAY_CONTROL_ID",
    "DayControlState",
    "DayScheduler",
    "DayService",
    "DayTransition",
    "Holding",
    "Leaderboard",
    "LeaderboardBuilder",
    "LeaderboardEntry",
    "ParticipantSnapshot",
    "SchedulerStatus",
    "SimulationPhase",
    "Valuation",
    "ValuationEngine",
    "build_day_service",
    "resolve_price_as_of",
]
