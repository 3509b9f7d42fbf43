"""Stock price repository - SQLAlchemy ORM async.

Usage:
    from app.repositories import prices_orm

    prices = await prices_orm.latest_prices([1, 2, 3], as_of_day=4)
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.connection import get_session
from app.database.orm import StockPrice


def _latest_prices_query(company_ids: list[int], as_of_day: int):
    # DISTINCT ON keeps the first row per company, so the newest day must sort first
    return (
        select(StockPrice.company_id, StockPrice.price)
        .where(
            StockPrice.company_id.in_(company_ids),
            StockPrice.day_number <= as_of_day,
        )
        .order_by(StockPrice.company_id, StockPrice.day_number.desc())
        .distinct(StockPrice.company_id)
    )


async def latest_prices(
    company_ids: Iterable[int],
    as_of_day: int,
    session: AsyncSession | None = None,
) -> dict[int, Decimal]:
    """Latest price per company with `day_number <= as_of_day`.

    Companies without a qualifying price are absent from the result.
    Pass `session` to read inside an open transaction.
    """
    ids = sorted(set(company_ids))
    if not ids:
        return {}

    query = _latest_prices_query(ids, as_of_day)
    if session is not None:
        result = await session.execute(query)
    else:
        async with get_session() as own_session:
            result = await own_session.execute(query)
    return {company_id: Decimal(price) for company_id, price in result.all()}


class SqlPriceLookup:
    """Price lookup backed by the `stock_prices` table."""

    async def latest_prices(
        self, company_ids: Iterable[int], as_of_day: int
    ) -> dict[int, Decimal]:
        return await latest_prices(company_ids, as_of_day)
