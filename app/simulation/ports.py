"""Collaborator protocols injected into the day service.

The SQLAlchemy-backed implementations live in `app.repositories`; tests use
in-memory doubles.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Protocol

from app.websocket.events import WSEvent

from .state import DayControlState, DayTransition, ParticipantSnapshot


TransitionFn = Callable[[Optional[DayControlState]], DayTransition]


class DayControlStore(Protocol):
    """Protocol for the singleton day-control record."""

    async def read(self) -> Optional[DayControlState]:
        """Return the current record, or None before the first start/reset."""
        ...

    async def transition(self, fn: TransitionFn) -> DayTransition:
        """Atomically apply `fn` to the locked record and persist its result.

        Day-open effects requested by the transition run in the same
        transaction.
        """
        ...

    async def reset(self, fn: TransitionFn) -> DayTransition:
        """Run the reset cascade and persist `fn`'s result in one transaction."""
        ...


class PriceLookup(Protocol):
    """Protocol for price-as-of-day resolution."""

    async def latest_prices(
        self, company_ids: Iterable[int], as_of_day: int
    ) -> dict[int, Decimal]:
        """Map company id to its latest price with day_number <= as_of_day.

        Companies without such a price are left out of the mapping.
        """
        ...


class ParticipantRepository(Protocol):
    """Protocol for reading participants and their holdings."""

    async def list_active(self) -> list[ParticipantSnapshot]:
        """Active participants in a stable order."""
        ...

    async def get(self, participant_id: int) -> Optional[ParticipantSnapshot]:
        ...


class SettingsRepository(Protocol):
    async def get_setting(self, key: str) -> Optional[dict[str, Any]]:
        ...

    async def save_setting(
        self, key: str, value: dict[str, Any], description: str | None = None
    ) -> None:
        ...


class Broadcaster(Protocol):
    """Best-effort push to connected display clients."""

    async def broadcast(self, event: WSEvent, subscription: Optional[str] = None) -> int:
        ...
