"""Day-control store - SQLAlchemy ORM async.

Every write locks the singleton row with `SELECT ... FOR UPDATE`, applies a
pure transition function to what it read and persists the result together
with the day-open effects in the same transaction. A failure anywhere rolls
the whole step back.

Usage:
    from app.repositories.day_control_orm import SqlDayControlStore
    from app.simulation import advancer

    store = SqlDayControlStore()
    transition = await store.transition(advancer.stop)
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.logging import get_logger
from app.database.connection import get_session
from app.database.orm import (
    DayControl,
    FinancialReport,
    InterestPayment,
    NewsPurchase,
    Participant,
    PortfolioHolding,
    StockPrice,
    TradeTransaction,
)
from app.simulation.interest import InterestCredit, compute_interest
from app.simulation.ports import TransitionFn
from app.simulation.state import DAY_CONTROL_ID, DayControlState, DayTransition

from . import prices_orm


logger = get_logger("repositories.day_control")


def _row_to_state(row: DayControl) -> DayControlState:
    return DayControlState(
        current_day=row.current_day,
        total_days=row.total_days,
        is_simulation_active=row.is_simulation_active,
        is_paused=row.is_paused,
        remaining_ms=row.remaining_ms,
        paused_at=row.paused_at,
        last_day_change=row.last_day_change,
        simulation_start_date=row.simulation_start_date,
    )


def _apply_state(row: DayControl, state: DayControlState) -> None:
    row.current_day = state.current_day
    row.total_days = state.total_days
    row.is_simulation_active = state.is_simulation_active
    row.is_paused = state.is_paused
    row.remaining_ms = state.remaining_ms
    row.paused_at = state.paused_at
    row.last_day_change = state.last_day_change
    row.simulation_start_date = state.simulation_start_date


async def _lock_day_control(session: AsyncSession) -> DayControl | None:
    result = await session.execute(
        select(DayControl).where(DayControl.id == DAY_CONTROL_ID).with_for_update()
    )
    return result.scalar_one_or_none()


async def _upsert_day_control(
    session: AsyncSession, row: DayControl | None, state: DayControlState
) -> None:
    if row is None:
        row = DayControl(id=DAY_CONTROL_ID)
        session.add(row)
    _apply_state(row, state)


# ───────────────────────────────────────────────────────────────────────────────
# Day-open effects
# ───────────────────────────────────────────────────────────────────────────────


async def open_day_content(session: AsyncSession, day_number: int) -> None:
    """Release the day's prices and financial reports to participants."""
    await session.execute(
        update(StockPrice)
        .where(StockPrice.day_number == day_number)
        .values(is_active=True)
        .execution_options(synchronize_session=False)
    )
    await session.execute(
        update(FinancialReport)
        .where(FinancialReport.day_number == day_number)
        .values(is_available=True)
        .execution_options(synchronize_session=False)
    )


async def credit_broker_interest(session: AsyncSession, day_number: int) -> list[InterestCredit]:
    """Pay each brokered participant interest on the value of their holdings.

    Holdings are valued with the latest price up to `day_number`. Cash does
    not earn interest.
    """
    result = await session.execute(
        select(Participant)
        .where(Participant.is_active == True, Participant.broker_id.is_not(None))
        .options(selectinload(Participant.holdings), selectinload(Participant.broker))
        .order_by(Participant.id)
        .with_for_update(of=Participant)
    )
    participants = result.scalars().all()

    company_ids = {h.company_id for p in participants for h in p.holdings}
    prices = await prices_orm.latest_prices(company_ids, day_number, session=session)

    credits: list[InterestCredit] = []
    for participant in participants:
        broker = participant.broker
        rate = Decimal(broker.interest_rate or 0) if broker else Decimal("0")
        if rate <= 0:
            continue

        holdings_value = sum(
            (Decimal(h.quantity) * prices.get(h.company_id, Decimal("0")) for h in participant.holdings),
            Decimal("0"),
        )
        amount = compute_interest(holdings_value, rate)
        if amount <= 0:
            continue

        credit = InterestCredit(
            participant_id=participant.id,
            broker_id=broker.id,
            day_number=day_number,
            holdings_value=holdings_value,
            interest_rate=rate,
            interest_amount=amount,
            balance_before=participant.current_balance,
        )
        participant.current_balance = credit.balance_after
        session.add(
            InterestPayment(
                participant_id=credit.participant_id,
                broker_id=credit.broker_id,
                day_number=credit.day_number,
                holdings_value=credit.holdings_value,
                interest_rate=credit.interest_rate,
                interest_amount=credit.interest_amount,
                balance_before=credit.balance_before,
                balance_after=credit.balance_after,
            )
        )
        credits.append(credit)

    return credits


# ───────────────────────────────────────────────────────────────────────────────
# Reset cascade
# ───────────────────────────────────────────────────────────────────────────────


def _reset_progress_statements():
    """Statements that wipe trading progress, in execution order."""
    return [
        delete(TradeTransaction),
        delete(PortfolioHolding),
        delete(NewsPurchase),
        delete(InterestPayment),
        update(Participant)
        .values(current_balance=Participant.starting_balance, broker_id=None)
        .execution_options(synchronize_session=False),
    ]


def _reset_content_statements():
    return [
        update(StockPrice).values(is_active=False).execution_options(synchronize_session=False),
        update(FinancialReport).values(is_available=False).execution_options(synchronize_session=False),
    ]


# ───────────────────────────────────────────────────────────────────────────────
# Store
# ───────────────────────────────────────────────────────────────────────────────


async def read_day_control() -> DayControlState | None:
    async with get_session() as session:
        row = await session.get(DayControl, DAY_CONTROL_ID)
        return _row_to_state(row) if row else None


async def transition_day_control(fn: TransitionFn) -> DayTransition:
    """Lock, transform and persist the singleton plus its day-open effects."""
    async with get_session() as session:
        row = await _lock_day_control(session)
        transition = fn(_row_to_state(row) if row else None)
        await _upsert_day_control(session, row, transition.state)

        credited = 0
        if transition.opened_day is not None:
            await open_day_content(session, transition.opened_day)
            if transition.credit_interest:
                credited = len(await credit_broker_interest(session, transition.opened_day))

        await session.commit()

    if transition.opened_day is not None:
        logger.info(
            f"Opened day {transition.opened_day}",
            extra={"day": transition.opened_day, "interest_credited": credited},
        )
    return replace(transition, interest_credited=credited)


async def reset_day_control(fn: TransitionFn) -> DayTransition:
    """Wipe simulation progress and reset the singleton atomically."""
    async with get_session() as session:
        row = await _lock_day_control(session)
        transition = fn(_row_to_state(row) if row else None)

        for statement in _reset_progress_statements():
            await session.execute(statement)
        await _upsert_day_control(session, row, transition.state)
        for statement in _reset_content_statements():
            await session.execute(statement)

        await session.commit()

    logger.warning("Simulation data reset")
    return transition


class SqlDayControlStore:
    """Day-control store backed by PostgreSQL."""

    async def read(self) -> DayControlState | None:
        return await read_day_control()

    async def transition(self, fn: TransitionFn) -> DayTransition:
        return await transition_day_control(fn)

    async def reset(self, fn: TransitionFn) -> DayTransition:
        return await reset_day_control(fn)
