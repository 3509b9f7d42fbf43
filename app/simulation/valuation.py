"""Portfolio valuation as of a simulated day.

A holding is valued at the latest price whose day number is not newer than
the requested day. A company with no such price is worth zero; that is not
an error. Arithmetic stays in `Decimal` at full precision and only the
serialised output is rounded.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from .ports import PriceLookup
from .state import Holding, ParticipantSnapshot


ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")


def round2(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def resolve_price_as_of(
    prices: Iterable[tuple[int, Decimal]], as_of_day: int
) -> Optional[Decimal]:
    """Pick the price with the greatest day number <= `as_of_day`.

    `prices` holds `(day_number, price)` pairs for one company, in any order.
    """
    best_day: Optional[int] = None
    best_price: Optional[Decimal] = None
    for day_number, price in prices:
        if day_number > as_of_day:
            continue
        if best_day is None or day_number > best_day:
            best_day, best_price = day_number, price
    return best_price


def return_percentage(total_value: Decimal, starting_balance: Decimal) -> Decimal:
    if starting_balance <= 0:
        return ZERO
    return (total_value - starting_balance) / starting_balance * HUNDRED


@dataclass(frozen=True)
class Valuation:
    participant_id: int
    cash_balance: Decimal
    holdings_value: Decimal
    total_value: Decimal
    starting_balance: Decimal

    @property
    def raw_return_percentage(self) -> Decimal:
        return return_percentage(self.total_value, self.starting_balance)

    @property
    def return_percentage(self) -> Decimal:
        return round2(self.raw_return_percentage)

    def to_dict(self) -> dict:
        return {
            "cashBalance": float(round2(self.cash_balance)),
            "holdingsValue": float(round2(self.holdings_value)),
            "totalValue": float(round2(self.total_value)),
            "returnPercentage": float(self.return_percentage),
        }


@dataclass(frozen=True)
class HoldingValuation:
    holding: Holding
    current_price: Decimal

    @property
    def equity(self) -> Decimal:
        return self.current_price * self.holding.quantity

    @property
    def profit_loss(self) -> Decimal:
        return (self.current_price - self.holding.average_buy_price) * self.holding.quantity

    def to_dict(self) -> dict:
        return {
            "companyId": self.holding.company_id,
            "stockCode": self.holding.stock_code,
            "companyName": self.holding.company_name,
            "quantity": self.holding.quantity,
            "averageBuyPrice": float(round2(self.holding.average_buy_price)),
            "currentPrice": float(round2(self.current_price)),
            "totalEquity": float(round2(self.equity)),
            "profitLoss": float(round2(self.profit_loss)),
        }


def value_holdings(
    participant: ParticipantSnapshot, prices: dict[int, Decimal]
) -> Valuation:
    """Value one participant against an already-resolved price map."""
    holdings_value = sum(
        (Decimal(h.quantity) * prices.get(h.company_id, ZERO) for h in participant.holdings),
        ZERO,
    )
    return Valuation(
        participant_id=participant.id,
        cash_balance=participant.cash_balance,
        holdings_value=holdings_value,
        total_value=participant.cash_balance + holdings_value,
        starting_balance=participant.starting_balance,
    )


class ValuationEngine:
    """Values participants through an injected price lookup."""

    def __init__(self, prices: PriceLookup):
        self._prices = prices

    async def value_of(self, participant: ParticipantSnapshot, as_of_day: int) -> Valuation:
        prices = await self._prices.latest_prices(
            {h.company_id for h in participant.holdings}, as_of_day
        )
        return value_holdings(participant, prices)

    async def value_all(
        self, participants: Sequence[ParticipantSnapshot], as_of_day: int
    ) -> list[Valuation]:
        """Value every participant, in input order, with one price lookup."""
        company_ids = {h.company_id for p in participants for h in p.holdings}
        prices = await self._prices.latest_prices(company_ids, as_of_day) if company_ids else {}
        return [value_holdings(p, prices) for p in participants]

    async def breakdown(
        self, participant: ParticipantSnapshot, as_of_day: int
    ) -> tuple[Valuation, list[HoldingValuation]]:
        """Valuation plus per-holding price, equity and profit/loss."""
        prices = await self._prices.latest_prices(
            {h.company_id for h in participant.holdings}, as_of_day
        )
        rows = [
            HoldingValuation(holding=h, current_price=prices.get(h.company_id, ZERO))
            for h in participant.holdings
        ]
        return value_holdings(participant, prices), rows
