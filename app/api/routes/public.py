"""Public day and leaderboard routes used by participants and display widgets."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_day_service
from app.core.config import settings
from app.schemas.days import AutoDaySchedule, DaySnapshot
from app.schemas.leaderboard import LeaderboardResponse
from app.simulation.service import DayService, scheduler_payload


router = APIRouter()


@router.get(
    "/days/current",
    response_model=DaySnapshot,
    summary="Current simulated day",
    description="Cached briefly; invalidated on every day-control change.",
)
async def current_day(service: DayService = Depends(get_day_service)) -> dict:
    return await service.current_day_snapshot()


@router.get("/days/schedule", response_model=AutoDaySchedule, summary="Auto-advance countdown")
async def day_schedule(service: DayService = Depends(get_day_service)) -> dict:
    return scheduler_payload(service.auto_status())


@router.get(
    "/obs/days/current",
    response_model=DaySnapshot,
    summary="Current day for display overlays",
    description="Always read from the database so countdowns stay accurate.",
)
async def obs_current_day(service: DayService = Depends(get_day_service)) -> dict:
    return await service.status()


@router.get(
    "/obs/leaderboard",
    response_model=LeaderboardResponse,
    summary="Leaderboard",
    description="Participants ranked by total portfolio value at the current day.",
)
async def obs_leaderboard(
    limit: int = Query(default=settings.leaderboard_default_limit, ge=1, le=500),
    service: DayService = Depends(get_day_service),
) -> dict:
    return await service.leaderboard(limit)
