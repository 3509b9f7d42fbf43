"""Day-cycle state machine.

Pure functions from the current `DayControlState` to a `DayTransition`.
Nothing here touches storage, caches or timers; the service wraps each call
in a store transaction so the read-modify-write is atomic.

    NOT_STARTED --start--> RUNNING --pause--> PAUSED
                            ^  ^ |              |
                            |  +-|---resume-----+
                            |    |              |
                          start  stop          stop
                            |    v              |
                            +- STOPPED <--------+

    reset (from any phase) --> NOT_STARTED
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from app.core.exceptions import (
    AlreadyActiveError,
    AlreadyPausedError,
    NotActiveError,
    NotInitializedError,
    NotPausedError,
)

from .state import DayControlState, DayTransition


FIRST_TRADING_DAY = 1


def _require(state: Optional[DayControlState]) -> DayControlState:
    if state is None:
        raise NotInitializedError()
    return state


def _require_active(state: Optional[DayControlState]) -> DayControlState:
    state = _require(state)
    if not state.is_simulation_active:
        raise NotActiveError()
    return state


def start(
    state: Optional[DayControlState], *, now: datetime, total_days: int
) -> DayTransition:
    """Start or restart the day cycle.

    The first start after a reset opens day 1; a restart after stop keeps the
    current day. `total_days` only applies when the record does not exist.
    """
    if state is not None and state.is_simulation_active:
        raise AlreadyActiveError()

    if state is None:
        state = DayControlState(
            current_day=0,
            total_days=total_days,
            is_simulation_active=False,
            last_day_change=now,
        )

    first_start = state.current_day == 0
    day = FIRST_TRADING_DAY if first_start else state.current_day
    started = replace(
        state,
        current_day=day,
        is_simulation_active=True,
        is_paused=False,
        remaining_ms=None,
        paused_at=None,
        last_day_change=now if first_start else state.last_day_change,
        simulation_start_date=now if first_start else state.simulation_start_date,
    )
    return DayTransition(previous=state, state=started, opened_day=day)


def advance(
    state: Optional[DayControlState],
    *,
    now: datetime,
    forced: bool = False,
    paused_remaining_ms: Optional[int] = None,
) -> DayTransition:
    """Move to the next trading day.

    The step is applied even past `total_days`; `overflow` tells the caller
    so it can end the simulation. A paused simulation only advances when
    `forced` (an administrator, or a timer that fired before the pause).
    `paused_remaining_ms` replaces the stored countdown of a paused record.
    """
    state = _require_active(state)
    if state.is_paused and not forced:
        raise AlreadyPausedError(message="Simulation is paused")

    next_day = state.current_day + 1
    remaining = state.remaining_ms
    if state.is_paused and paused_remaining_ms is not None:
        remaining = paused_remaining_ms

    advanced = replace(
        state,
        current_day=next_day,
        last_day_change=now,
        remaining_ms=remaining,
    )
    return DayTransition(
        previous=state,
        state=advanced,
        opened_day=next_day,
        credit_interest=True,
        overflow=next_day > state.total_days,
        final_day_reached=next_day >= state.total_days,
    )


def stop(state: Optional[DayControlState]) -> DayTransition:
    state = _require_active(state)
    stopped = replace(
        state,
        is_simulation_active=False,
        is_paused=False,
        remaining_ms=None,
        paused_at=None,
    )
    return DayTransition(previous=state, state=stopped)


def pause(
    state: Optional[DayControlState], *, now: datetime, remaining_ms: int
) -> DayTransition:
    state = _require_active(state)
    if state.is_paused:
        raise AlreadyPausedError()
    paused = replace(
        state,
        is_paused=True,
        paused_at=now,
        remaining_ms=max(0, remaining_ms),
    )
    return DayTransition(previous=state, state=paused)


def resume(state: Optional[DayControlState]) -> DayTransition:
    """Leave the paused phase; the stored countdown is on `previous`."""
    state = _require_active(state)
    if not state.is_paused:
        raise NotPausedError()
    resumed = replace(state, is_paused=False, paused_at=None, remaining_ms=None)
    return DayTransition(previous=state, state=resumed)


def set_paused_countdown(
    state: Optional[DayControlState], remaining_ms: int
) -> DayTransition:
    """Replace the countdown a paused record will resume with."""
    state = _require_active(state)
    if not state.is_paused:
        raise NotPausedError()
    return DayTransition(previous=state, state=replace(state, remaining_ms=remaining_ms))


def reset(
    state: Optional[DayControlState], *, now: datetime, total_days: int
) -> DayTransition:
    """Back to NOT_STARTED. An existing record keeps its `total_days`."""
    cleared = DayControlState(
        current_day=0,
        total_days=state.total_days if state is not None else total_days,
        is_simulation_active=False,
        last_day_change=now,
    )
    return DayTransition(previous=state, state=cleared)
