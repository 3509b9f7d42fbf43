"""Administrator participant valuation routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from app.api.dependencies import get_day_service, require_admin
from app.schemas.leaderboard import PortfolioValuationResponse
from app.simulation.service import DayService


router = APIRouter(prefix="/admin/participants", dependencies=[Depends(require_admin)])


@router.get(
    "/{participant_id}/portfolio",
    response_model=PortfolioValuationResponse,
    summary="Participant portfolio valuation",
    description="Cash, holdings and per-company profit/loss at the current simulated day.",
)
async def participant_portfolio(
    participant_id: int = Path(..., ge=1),
    service: DayService = Depends(get_day_service),
) -> dict:
    return await service.portfolio(participant_id)
