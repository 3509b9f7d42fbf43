"""Leaderboard ranking.

Participants are ordered by total portfolio value, highest first. Python's
sort is stable, so equal values keep the order in which the repository
listed the participants. Ranks are 1-based and sequential: tied
participants still get distinct consecutive ranks.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from .state import ParticipantSnapshot
from .valuation import Valuation, ValuationEngine, round2


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    participant_id: int
    team_label: str
    school: str
    portfolio_value: Decimal
    return_percentage: Decimal

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "teamName": self.team_label,
            "school": self.school,
            "portfolioValue": float(round2(self.portfolio_value)),
            "returnPercentage": float(self.return_percentage),
        }


@dataclass(frozen=True)
class Leaderboard:
    entries: list[LeaderboardEntry]
    total: int
    as_of_day: int

    def to_dict(self) -> dict:
        return {
            "leaderboard": [entry.to_dict() for entry in self.entries],
            "total": self.total,
            "day": self.as_of_day,
        }


def rank_valuations(
    participants: Sequence[ParticipantSnapshot],
    valuations: Sequence[Valuation],
    limit: int,
    as_of_day: int = 0,
) -> Leaderboard:
    """Rank already-computed valuations; both sequences share one order."""
    paired = list(zip(participants, valuations))
    paired.sort(key=lambda pv: pv[1].total_value, reverse=True)

    entries = [
        LeaderboardEntry(
            rank=index + 1,
            participant_id=participant.id,
            team_label=participant.team_label,
            school=participant.school_origin or "-",
            portfolio_value=valuation.total_value,
            return_percentage=valuation.return_percentage,
        )
        for index, (participant, valuation) in enumerate(paired)
    ]
    return Leaderboard(entries=entries[: max(0, limit)], total=len(entries), as_of_day=as_of_day)


class LeaderboardBuilder:
    def __init__(self, engine: ValuationEngine):
        self._engine = engine

    async def build(
        self,
        participants: Sequence[ParticipantSnapshot],
        as_of_day: int,
        limit: int = 10,
    ) -> Leaderboard:
        valuations = await self._engine.value_all(participants, as_of_day)
        return rank_valuations(participants, valuations, limit, as_of_day)
