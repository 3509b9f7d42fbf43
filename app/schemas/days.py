"""Day-cycle request and response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AutoDaySchedule(_CamelModel):
    """Automatic day-advance configuration and countdown."""

    enabled: bool
    interval_minutes: Optional[int] = Field(default=None, alias="intervalMinutes")
    next_run_at: Optional[datetime] = Field(default=None, alias="nextRunAt")
    paused: bool = False


class DaySnapshot(_CamelModel):
    """Current state of the simulated calendar."""

    current_day: int = Field(..., alias="currentDay", ge=0)
    total_days: int = Field(..., alias="totalDays", gt=0)
    is_simulation_active: bool = Field(..., alias="isSimulationActive")
    is_paused: bool = Field(default=False, alias="isPaused")
    remaining_ms: Optional[int] = Field(default=None, alias="remainingMs")
    phase: str
    simulation_start_date: Optional[datetime] = Field(default=None, alias="simulationStartDate")
    last_day_change: Optional[datetime] = Field(default=None, alias="lastDayChange")
    auto_day: AutoDaySchedule = Field(..., alias="autoDay")


class StartResponse(_CamelModel):
    success: bool = True
    current_day: int = Field(..., alias="currentDay")


class AdvanceResponse(_CamelModel):
    success: bool = True
    current_day: int = Field(..., alias="currentDay")
    overflow: bool = False
    simulation_stopped: bool = Field(default=False, alias="simulationStopped")


class PauseResponse(_CamelModel):
    success: bool = True
    message: str
    remaining_ms: Optional[int] = Field(default=None, alias="remainingMs")


class ConfigureAutoRequest(_CamelModel):
    """Enable or disable automatic day advance."""

    enabled: bool
    interval_minutes: Optional[int] = Field(default=None, alias="intervalMinutes", gt=0)


class ResetRequest(BaseModel):
    """Reset must be confirmed with the literal word RESET."""

    confirmation: str = Field(..., examples=["RESET"])
