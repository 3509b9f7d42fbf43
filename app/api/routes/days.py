"""Administrator day-cycle routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_day_service, require_admin
from app.core.logging import get_logger
from app.schemas.common import SuccessResponse
from app.schemas.days import (
    AdvanceResponse,
    AutoDaySchedule,
    ConfigureAutoRequest,
    DaySnapshot,
    PauseResponse,
    ResetRequest,
    StartResponse,
)
from app.simulation.service import DayService, scheduler_payload


logger = get_logger("api.routes.days")

router = APIRouter(prefix="/admin/days", dependencies=[Depends(require_admin)])


@router.get(
    "/status",
    response_model=DaySnapshot,
    summary="Day-control status",
    description="Uncached snapshot of the simulated calendar and the auto-advance timer.",
)
async def day_status(service: DayService = Depends(get_day_service)) -> dict:
    return await service.status()


@router.post(
    "/start",
    response_model=StartResponse,
    summary="Start the simulation",
    description="Open day 1, or continue from the current day after a stop.",
)
async def start_simulation(service: DayService = Depends(get_day_service)) -> StartResponse:
    state = await service.start()
    return StartResponse(current_day=state.current_day)


@router.post(
    "/next",
    response_model=AdvanceResponse,
    summary="Advance to the next day",
)
async def next_day(service: DayService = Depends(get_day_service)) -> AdvanceResponse:
    """
    Advance one day immediately and restart the auto-advance countdown.

    Advancing past the last day ends the simulation; the response reports it
    through `overflow` and `simulationStopped`.
    """
    result = await service.advance()
    return AdvanceResponse(
        current_day=result.current_day,
        overflow=result.overflow,
        simulation_stopped=result.simulation_stopped,
    )


@router.post(
    "/end",
    response_model=SuccessResponse,
    summary="End the simulation",
)
async def end_simulation(service: DayService = Depends(get_day_service)) -> SuccessResponse:
    state = await service.stop()
    return SuccessResponse(message=f"Simulation ended on day {state.current_day}")


@router.post("/pause", response_model=PauseResponse, summary="Pause the day countdown")
async def pause_simulation(service: DayService = Depends(get_day_service)) -> PauseResponse:
    remaining_ms = await service.pause()
    return PauseResponse(message="Simulation paused", remaining_ms=remaining_ms)


@router.post("/resume", response_model=PauseResponse, summary="Resume the day countdown")
async def resume_simulation(service: DayService = Depends(get_day_service)) -> PauseResponse:
    remaining_ms = await service.resume()
    return PauseResponse(message="Simulation resumed", remaining_ms=remaining_ms)


@router.get("/auto", response_model=AutoDaySchedule, summary="Auto-advance status")
async def get_auto_day(service: DayService = Depends(get_day_service)) -> dict:
    return scheduler_payload(service.auto_status())


@router.post(
    "/auto",
    response_model=AutoDaySchedule,
    summary="Configure auto-advance",
    description="Enable with an interval in minutes, or disable. Enabling starts an idle simulation.",
)
async def configure_auto_day(
    payload: ConfigureAutoRequest,
    service: DayService = Depends(get_day_service),
) -> dict:
    status = await service.configure_auto(payload.enabled, payload.interval_minutes)
    return scheduler_payload(status)


@router.post(
    "/reset",
    response_model=SuccessResponse,
    summary="Reset the simulation",
    description="Delete all trading progress and return to day 0. Requires `{\"confirmation\": \"RESET\"}`.",
)
async def reset_simulation(
    payload: ResetRequest,
    service: DayService = Depends(get_day_service),
) -> SuccessResponse:
    await service.reset(payload.confirmation)
    return SuccessResponse(message="Simulation reset")
