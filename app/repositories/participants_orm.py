"""Participant repository - SQLAlchemy ORM async."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.database.connection import get_session
from app.database.orm import Participant, PortfolioHolding
from app.simulation.state import Holding, ParticipantSnapshot


def _participant_to_snapshot(p: Participant) -> ParticipantSnapshot:
    """Convert Participant ORM object (holdings loaded) to a snapshot."""
    return ParticipantSnapshot(
        id=p.id,
        username=p.username,
        cash_balance=p.current_balance,
        starting_balance=p.starting_balance,
        team_name=p.team_name,
        school_origin=p.school_origin,
        holdings=tuple(
            Holding(
                company_id=h.company_id,
                quantity=h.quantity,
                average_buy_price=h.average_buy_price,
                stock_code=h.company.stock_code if h.company else "",
                company_name=h.company.name if h.company else "",
            )
            for h in sorted(p.holdings, key=lambda h: h.company_id)
        ),
    )


def _with_holdings():
    return selectinload(Participant.holdings).selectinload(PortfolioHolding.company)


async def list_active_participants() -> list[ParticipantSnapshot]:
    """Active participants ordered by id."""
    async with get_session() as session:
        result = await session.execute(
            select(Participant)
            .where(Participant.is_active == True)
            .options(_with_holdings())
            .order_by(Participant.id)
        )
        return [_participant_to_snapshot(p) for p in result.scalars().all()]


async def get_participant(participant_id: int) -> ParticipantSnapshot | None:
    async with get_session() as session:
        result = await session.execute(
            select(Participant)
            .where(Participant.id == participant_id)
            .options(_with_holdings())
        )
        participant = result.scalar_one_or_none()
        return _participant_to_snapshot(participant) if participant else None


class SqlParticipantRepository:
    async def list_active(self) -> list[ParticipantSnapshot]:
        return await list_active_participants()

    async def get(self, participant_id: int) -> ParticipantSnapshot | None:
        return await get_participant(participant_id)
