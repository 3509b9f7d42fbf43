"""Daily broker interest credited when a new trading day opens."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .valuation import ZERO, HUNDRED, round2


@dataclass(frozen=True)
class InterestCredit:
    participant_id: int
    broker_id: int
    day_number: int
    holdings_value: Decimal
    interest_rate: Decimal
    interest_amount: Decimal
    balance_before: Decimal

    @property
    def balance_after(self) -> Decimal:
        return self.balance_before + self.interest_amount


def compute_interest(holdings_value: Decimal, interest_rate: Decimal) -> Decimal:
    """Interest on stock holdings only; cash earns nothing.

    `interest_rate` is a percentage per trading day.
    """
    if holdings_value <= 0 or interest_rate <= 0:
        return ZERO
    return round2(holdings_value * interest_rate / HUNDRED)
