"""Value types shared by the day-cycle and valuation code."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


DAY_CONTROL_ID = "day-control-singleton"


class SimulationPhase(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class DayControlState:
    """Snapshot of the singleton day-control record."""

    current_day: int
    total_days: int
    is_simulation_active: bool
    last_day_change: datetime
    is_paused: bool = False
    remaining_ms: Optional[int] = None
    paused_at: Optional[datetime] = None
    simulation_start_date: Optional[datetime] = None

    @property
    def phase(self) -> SimulationPhase:
        if self.is_simulation_active:
            return SimulationPhase.PAUSED if self.is_paused else SimulationPhase.RUNNING
        if self.current_day == 0:
            return SimulationPhase.NOT_STARTED
        return SimulationPhase.STOPPED

    def to_dict(self) -> dict:
        return {
            "currentDay": self.current_day,
            "totalDays": self.total_days,
            "isSimulationActive": self.is_simulation_active,
            "isPaused": self.is_paused,
            "simulationStartDate": self.simulation_start_date,
            "lastDayChange": self.last_day_change,
        }


@dataclass(frozen=True)
class DayTransition:
    """Result of one state-machine step.

    `opened_day` is set when the step made a new trading day current and the
    store must open that day's prices and reports. `credit_interest` asks the
    store to pay broker interest for the opened day; the store reports how many
    participants were credited in `interest_credited`.
    """

    previous: Optional[DayControlState]
    state: DayControlState
    opened_day: Optional[int] = None
    credit_interest: bool = False
    overflow: bool = False
    final_day_reached: bool = False
    interest_credited: int = 0

    @property
    def day_changed(self) -> bool:
        previous_day = self.previous.current_day if self.previous else 0
        return previous_day != self.state.current_day


@dataclass(frozen=True)
class SchedulerStatus:
    enabled: bool
    interval_ms: Optional[int]
    next_run_at: Optional[datetime]
    paused: bool = False

    @property
    def interval_minutes(self) -> Optional[int]:
        if not self.interval_ms:
            return None
        return round(self.interval_ms / 60_000)


@dataclass(frozen=True)
class Holding:
    company_id: int
    quantity: int
    average_buy_price: Decimal
    stock_code: str = ""
    company_name: str = ""


@dataclass(frozen=True)
class ParticipantSnapshot:
    """Read-only view of a participant as the valuation engine needs it."""

    id: int
    username: str
    cash_balance: Decimal
    starting_balance: Decimal
    holdings: tuple[Holding, ...] = field(default_factory=tuple)
    team_name: Optional[str] = None
    school_origin: Optional[str] = None

    @property
    def team_label(self) -> str:
        return self.team_name or self.username
