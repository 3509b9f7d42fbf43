"""Pytest configuration and fixtures.

The day service is exercised against in-memory repositories, caches and
broadcasters so no PostgreSQL or Valkey instance is needed.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Generator, Optional

import pytest
from fastapi.testclient import TestClient

from app.core.clock import Clock
from app.simulation.service import DayService
from app.simulation.state import DayControlState, Holding, ParticipantSnapshot
from app.simulation.valuation import resolve_price_as_of


T0 = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)


# ============================================================================
# In-memory collaborators
# ============================================================================


class ManualClock(Clock):
    """Clock that only moves when a test tells it to."""

    def __init__(self, start: datetime = T0):
        self._start = start
        self.ms = 0

    def advance(self, ms: int) -> None:
        self.ms += ms

    def monotonic_ms(self) -> int:
        return self.ms

    def now(self) -> datetime:
        return self._start + timedelta(milliseconds=self.ms)


class FakeDayControlStore:
    """Day-control store keeping the record in memory."""

    def __init__(self, state: Optional[DayControlState] = None):
        self.state = state
        self.opened_days: list[int] = []
        self.interest_days: list[int] = []
        self.reset_calls = 0
        self.fail_next: Optional[Exception] = None

    async def read(self) -> Optional[DayControlState]:
        return self.state

    async def transition(self, fn):
        transition = fn(self.state)
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error
        self.state = transition.state
        if transition.opened_day is not None:
            self.opened_days.append(transition.opened_day)
            if transition.credit_interest:
                self.interest_days.append(transition.opened_day)
        return transition

    async def reset(self, fn):
        transition = fn(self.state)
        self.reset_calls += 1
        self.state = transition.state
        return transition


class FakePriceLookup:
    """Price table as `{company_id: [(day_number, price), ...]}`."""

    def __init__(self, prices: Optional[dict[int, list[tuple[int, Decimal]]]] = None):
        self.prices = prices or {}
        self.calls: list[tuple[frozenset, int]] = []

    async def latest_prices(self, company_ids, as_of_day):
        ids = frozenset(company_ids)
        self.calls.append((ids, as_of_day))
        resolved = {}
        for company_id in ids:
            price = resolve_price_as_of(self.prices.get(company_id, []), as_of_day)
            if price is not None:
                resolved[company_id] = price
        return resolved


class FakeParticipantRepository:
    def __init__(self, participants: Optional[list[ParticipantSnapshot]] = None):
        self.participants = participants or []
        self.gate: Optional[asyncio.Event] = None

    async def list_active(self):
        if self.gate is not None:
            await self.gate.wait()
        return list(self.participants)

    async def get(self, participant_id):
        return next((p for p in self.participants if p.id == participant_id), None)


class FakeSettingsRepository:
    def __init__(self, values: Optional[dict[str, dict]] = None):
        self.values = dict(values or {})

    async def get_setting(self, key):
        value = self.values.get(key)
        return dict(value) if value is not None else None

    async def save_setting(self, key, value, description=None):
        self.values[key] = dict(value)


class FakeCache:
    """Dict-backed stand-in for `app.cache.Cache`."""

    def __init__(self):
        self.data: dict[str, Any] = {}
        self.invalidations = 0
        self.stores = 0

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ttl=None):
        self.stores += 1
        self.data[key] = value
        return True

    async def delete(self, key):
        self.data.pop(key, None)
        return True

    async def invalidate(self):
        self.invalidations += 1
        count = len(self.data)
        self.data.clear()
        return count


class FakeBroadcaster:
    def __init__(self, yielding: bool = False):
        self.events = []
        self.yielding = yielding

    async def broadcast(self, event, subscription=None):
        if self.yielding:
            await asyncio.sleep(0)
        self.events.append(event)
        return 1

    def types(self) -> list[str]:
        return [e.type for e in self.events]


def make_participant(
    participant_id: int,
    cash: str,
    holdings: tuple[tuple[int, int, str], ...] = (),
    starting: str = "10000",
    team_name: Optional[str] = None,
    school: Optional[str] = None,
) -> ParticipantSnapshot:
    """Build a participant; holdings are `(company_id, quantity, avg_price)`."""
    return ParticipantSnapshot(
        id=participant_id,
        username=f"team{participant_id}",
        cash_balance=Decimal(cash),
        starting_balance=Decimal(starting),
        holdings=tuple(
            Holding(company_id=c, quantity=q, average_buy_price=Decimal(avg), stock_code=f"C{c}")
            for c, q, avg in holdings
        ),
        team_name=team_name,
        school_origin=school,
    )


def make_state(
    current_day: int = 1,
    total_days: int = 15,
    active: bool = True,
    paused: bool = False,
    remaining_ms: Optional[int] = None,
) -> DayControlState:
    return DayControlState(
        current_day=current_day,
        total_days=total_days,
        is_simulation_active=active,
        last_day_change=T0,
        is_paused=paused,
        remaining_ms=remaining_ms,
        paused_at=T0 if paused else None,
        simulation_start_date=T0 if current_day else None,
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store() -> FakeDayControlStore:
    return FakeDayControlStore()


@pytest.fixture
def prices() -> FakePriceLookup:
    return FakePriceLookup({
        1: [(1, Decimal("100")), (3, Decimal("120"))],
        2: [(2, Decimal("50"))],
    })


@pytest.fixture
def participants() -> FakeParticipantRepository:
    return FakeParticipantRepository([
        make_participant(1, "5000", ((1, 10, "90"),), team_name="Alpha", school="North High"),
        make_participant(2, "9000", ((2, 40, "45"),), team_name="Bravo"),
        make_participant(3, "10000"),
    ])


@pytest.fixture
def settings_repo() -> FakeSettingsRepository:
    return FakeSettingsRepository()


@pytest.fixture
def broadcaster() -> FakeBroadcaster:
    return FakeBroadcaster()


@pytest.fixture
def day_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def leaderboard_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def day_service(
    store, participants, prices, settings_repo, day_cache, leaderboard_cache, broadcaster, clock
) -> DayService:
    return DayService(
        store=store,
        participants=participants,
        prices=prices,
        settings_repo=settings_repo,
        day_cache=day_cache,
        leaderboard_cache=leaderboard_cache,
        broadcaster=broadcaster,
        clock=clock,
        total_days=15,
        default_interval_minutes=6,
    )


@pytest.fixture
def client(day_service: DayService) -> Generator[TestClient, None, None]:
    """Test client for the API app wired to the in-memory day service."""
    from app.api.app import create_api_app

    app = create_api_app(day_service=day_service)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def auth_token() -> str:
    """Create a valid JWT token for testing."""
    from app.core.security import create_access_token
    return create_access_token(username="test_user", is_admin=False)


@pytest.fixture
def admin_token() -> str:
    """Create an admin JWT token for testing."""
    from app.core.security import create_access_token
    return create_access_token(username="test_admin", is_admin=True)


@pytest.fixture
def auth_headers(auth_token: str) -> dict:
    """Create authorization headers with a regular user token."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def admin_headers(admin_token: str) -> dict:
    """Create authorization headers with an admin token."""
    return {"Authorization": f"Bearer {admin_token}"}
