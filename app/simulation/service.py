"""Day-cycle service.

`DayService` is the single entry point for everything that changes the
day-control record: administrator actions and the automatic scheduler both
go through it. Each transition runs under one `asyncio.Lock` and inside one
store transaction; caches are invalidated before the lock is released and
display clients are notified after.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional

from app.core.clock import Clock, system_clock
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging import get_logger
from app.websocket.events import (
    WSEvent,
    day_changed_event,
    notification_event,
    schedule_changed_event,
)

from . import advancer
from .leaderboard import LeaderboardBuilder
from .ports import (
    Broadcaster,
    DayControlStore,
    ParticipantRepository,
    PriceLookup,
    SettingsRepository,
)
from .scheduler import DayScheduler
from .state import DayControlState, DayTransition, SchedulerStatus
from .valuation import ValuationEngine


logger = get_logger("simulation.service")

AUTO_DAY_SETTING_KEY = "auto_day_scheduler"
AUTO_DAY_SETTING_DESCRIPTION = "Automatic day advance configuration"
RESET_CONFIRMATION = "RESET"
CURRENT_DAY_CACHE_KEY = "current"
MS_PER_MINUTE = 60_000


@dataclass(frozen=True)
class AdvanceResult:
    current_day: int
    overflow: bool
    simulation_stopped: bool


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def scheduler_payload(status: SchedulerStatus) -> dict[str, Any]:
    return {
        "enabled": status.enabled,
        "intervalMinutes": status.interval_minutes,
        "nextRunAt": _iso(status.next_run_at),
        "paused": status.paused,
    }


class DayService:
    """Owns the day-control lifecycle and the process-wide scheduler."""

    def __init__(
        self,
        store: DayControlStore,
        participants: ParticipantRepository,
        prices: PriceLookup,
        settings_repo: SettingsRepository,
        day_cache,
        leaderboard_cache,
        broadcaster: Optional[Broadcaster] = None,
        clock: Optional[Clock] = None,
        total_days: int = 15,
        default_interval_minutes: int = 6,
        scheduler_enabled: bool = True,
    ):
        self._store = store
        self._participants = participants
        self._settings = settings_repo
        self._day_cache = day_cache
        self._leaderboard_cache = leaderboard_cache
        self._broadcaster = broadcaster
        self._clock = clock or system_clock
        self._total_days = total_days
        self._default_interval_minutes = default_interval_minutes
        self._scheduler_enabled = scheduler_enabled
        self._lock = asyncio.Lock()
        self._cache_generation = 0

        self.valuation = ValuationEngine(prices)
        self.leaderboard_builder = LeaderboardBuilder(self.valuation)
        self.scheduler = DayScheduler(self._on_scheduler_fire, self._clock)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Restore the persisted auto-advance setting."""
        setting = await self._settings.get_setting(AUTO_DAY_SETTING_KEY) or {}
        state = await self._store.read()

        minutes = setting.get("intervalMinutes") or self._default_interval_minutes
        enabled = bool(setting.get("enabled")) and self._scheduler_enabled
        paused = bool(state and state.is_paused)

        self.scheduler.restore(enabled, int(minutes) * MS_PER_MINUTE, paused)
        logger.info(
            "Day service initialized",
            extra={
                "current_day": state.current_day if state else 0,
                "auto_enabled": enabled,
                "interval_minutes": minutes,
                "paused": paused,
            },
        )

    async def shutdown(self) -> None:
        self.scheduler.shutdown()

    # ------------------------------------------------------------------
    # Administrator transitions
    # ------------------------------------------------------------------

    async def start(self) -> DayControlState:
        async with self._lock:
            transition = await self._store.transition(
                lambda state: advancer.start(
                    state, now=self._clock.now(), total_days=self._total_days
                )
            )
            self.scheduler.reset_timer()
            await self._invalidate_caches()

        day = transition.state.current_day
        logger.info("Simulation started", extra={"current_day": day})
        await self._publish(
            day_changed_event(day),
            notification_event(
                "Simulation started", f"Simulation started on day {day}", "success"
            ),
        )
        return transition.state

    async def advance(self) -> AdvanceResult:
        """Advance one day on behalf of an administrator.

        Allowed while paused; the paused countdown restarts at a full
        interval. Advancing past the last day stops the simulation.
        """
        async with self._lock:
            transition = await self._store.transition(self._manual_advance)
            if transition.overflow:
                await self._disable_auto()
            else:
                self.scheduler.reset_timer()
            await self._invalidate_caches()

        if transition.overflow:
            logger.warning(
                "Advanced past the final day, simulation stopped",
                extra={"current_day": transition.state.current_day},
            )
        await self._announce_new_day(transition)
        if transition.overflow:
            await self._publish(
                notification_event(
                    "Simulation ended", "The final day has passed", "warning"
                )
            )

        return AdvanceResult(
            current_day=transition.state.current_day,
            overflow=transition.overflow,
            simulation_stopped=not transition.state.is_simulation_active,
        )

    def _manual_advance(self, state: Optional[DayControlState]) -> DayTransition:
        countdown = None
        if state is not None and state.is_paused:
            status = self.scheduler.status()
            countdown = status.interval_ms if status.enabled else 0
        transition = advancer.advance(
            state, now=self._clock.now(), forced=True, paused_remaining_ms=countdown
        )
        if transition.overflow:
            transition = replace(transition, state=advancer.stop(transition.state).state)
        return transition

    async def stop(self) -> DayControlState:
        """End the simulation. Automatic advance is switched off with it."""
        async with self._lock:
            transition = await self._store.transition(advancer.stop)
            auto_was_enabled = self.scheduler.status().enabled
            await self._disable_auto()
            await self._invalidate_caches()

        logger.info("Simulation stopped", extra={"current_day": transition.state.current_day})
        events = [
            notification_event("Simulation ended", "The simulation was ended by an admin", "warning")
        ]
        if auto_was_enabled:
            events.append(self._schedule_event())
        await self._publish(*events)
        return transition.state

    async def pause(self) -> int:
        """Freeze the day countdown; returns the milliseconds that were left."""
        frozen: list[Optional[int]] = []

        def _pause(state: Optional[DayControlState]) -> DayTransition:
            remaining = None
            if state is not None and state.is_simulation_active and not state.is_paused:
                remaining = self.scheduler.pause()
                frozen.append(remaining)
            return advancer.pause(
                state, now=self._clock.now(), remaining_ms=remaining or 0
            )

        async with self._lock:
            try:
                transition = await self._store.transition(_pause)
            except Exception:
                if frozen:
                    self.scheduler.resume(frozen[0])
                raise
            await self._invalidate_caches()

        remaining_ms = transition.state.remaining_ms or 0
        logger.info("Simulation paused", extra={"remaining_ms": remaining_ms})
        await self._publish(
            notification_event("Simulation paused", "The day countdown is on hold", "info")
        )
        return remaining_ms

    async def resume(self) -> Optional[int]:
        """Continue the countdown from where `pause` froze it.

        The timer is rearmed under the lock so a pause that follows always
        sees a running countdown it can freeze.
        """
        async with self._lock:
            transition = await self._store.transition(advancer.resume)
            remaining_ms = transition.previous.remaining_ms if transition.previous else None
            self.scheduler.resume(remaining_ms)
            await self._invalidate_caches()

        logger.info("Simulation resumed", extra={"remaining_ms": remaining_ms})
        await self._publish(
            notification_event("Simulation resumed", "The day countdown continues", "info")
        )
        return remaining_ms

    async def configure_auto(
        self, enabled: bool, interval_minutes: Optional[int] = None
    ) -> SchedulerStatus:
        """Enable or disable automatic day advance and persist the choice.

        Enabling starts the simulation when it is not running.
        """
        if interval_minutes is not None and interval_minutes <= 0:
            raise ValidationError(
                "Interval must be greater than 0 minutes",
                details={"intervalMinutes": interval_minutes},
            )
        if enabled and not self._scheduler_enabled:
            raise ValidationError("Automatic day advance is disabled on this server")

        minutes = interval_minutes or self._current_interval_minutes()
        started: Optional[DayTransition] = None

        async with self._lock:
            if enabled:
                state = await self._store.read()
                if state is None or not state.is_simulation_active:
                    started = await self._store.transition(
                        lambda s: advancer.start(
                            s, now=self._clock.now(), total_days=self._total_days
                        )
                    )
                status = self.scheduler.configure(True, minutes * MS_PER_MINUTE)
                if state is not None and state.is_simulation_active and state.is_paused:
                    await self._store.transition(
                        lambda s: advancer.set_paused_countdown(s, minutes * MS_PER_MINUTE)
                    )
            else:
                status = self.scheduler.configure(False)
            await self._save_auto_setting(enabled, minutes)
            await self._invalidate_caches()

        logger.info(
            "Auto day advance configured",
            extra={"enabled": enabled, "interval_minutes": minutes},
        )
        events = [self._schedule_event()]
        if started is not None:
            day = started.state.current_day
            events += [
                day_changed_event(day),
                notification_event(
                    "Simulation started", f"Simulation started on day {day}", "success"
                ),
            ]
        await self._publish(*events)
        return status

    async def reset(self, confirmation: Optional[str]) -> DayControlState:
        """Wipe all simulation progress back to day 0.

        Requires the literal confirmation token; nothing is touched otherwise.
        """
        if confirmation != RESET_CONFIRMATION:
            raise ValidationError(
                f"Type {RESET_CONFIRMATION} to confirm the reset",
                details={"confirmation": confirmation},
            )

        async with self._lock:
            transition = await self._store.reset(
                lambda state: advancer.reset(
                    state, now=self._clock.now(), total_days=self._total_days
                )
            )
            await self._disable_auto()
            await self._invalidate_caches()

        logger.warning("Simulation reset", extra={"total_days": transition.state.total_days})
        await self._publish(
            day_changed_event(0),
            self._schedule_event(),
            notification_event(
                "Simulation reset", "All simulation data was reset by an admin", "warning"
            ),
        )
        return transition.state

    # ------------------------------------------------------------------
    # Automatic advance
    # ------------------------------------------------------------------

    async def _on_scheduler_fire(self) -> None:
        transition: Optional[DayTransition] = None
        disabled = False

        async with self._lock:
            state = await self._store.read()
            if state is None or not state.is_simulation_active:
                logger.info("Simulation not running, disabling auto day advance")
                await self._disable_auto()
                disabled = True
            elif state.current_day >= state.total_days:
                logger.info("Final day reached, disabling auto day advance")
                await self._disable_auto()
                disabled = True
            else:
                # A paused record here means the tick fired before the pause
                # was applied; the advance still goes through.
                transition = await self._store.transition(
                    lambda s: advancer.advance(s, now=self._clock.now(), forced=True)
                )
                if transition.final_day_reached:
                    logger.info("Final day opened, disabling auto day advance")
                    await self._disable_auto()
                    disabled = True
            if not disabled:
                # Rearm before the snapshot caches drop so reads see the next run.
                self.scheduler.reset_timer()
            await self._invalidate_caches()

        if transition is not None:
            await self._announce_new_day(transition)
        if disabled:
            await self._publish(self._schedule_event())

    async def _disable_auto(self) -> None:
        """Switch auto advance off and persist it. Caller holds the lock."""
        was_enabled = self.scheduler.status().enabled
        self.scheduler.stop()
        if was_enabled:
            await self._save_auto_setting(False, self._current_interval_minutes())

    async def _save_auto_setting(self, enabled: bool, interval_minutes: int) -> None:
        await self._settings.save_setting(
            AUTO_DAY_SETTING_KEY,
            {"enabled": enabled, "intervalMinutes": interval_minutes},
            description=AUTO_DAY_SETTING_DESCRIPTION,
        )

    def _current_interval_minutes(self) -> int:
        return self.scheduler.status().interval_minutes or self._default_interval_minutes

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def auto_status(self) -> SchedulerStatus:
        return self.scheduler.status()

    async def status(self) -> dict[str, Any]:
        """Uncached day snapshot for administrators and display widgets."""
        state = await self._store.read()
        return self._snapshot(state)

    async def current_day_snapshot(self) -> dict[str, Any]:
        async def load() -> dict[str, Any]:
            return self._snapshot(await self._store.read())

        return await self._cached(self._day_cache, CURRENT_DAY_CACHE_KEY, load)

    async def leaderboard(self, limit: int = 10) -> dict[str, Any]:
        async def load() -> dict[str, Any]:
            state = await self._store.read()
            as_of_day = state.current_day if state else 0
            participants = await self._participants.list_active()
            board = await self.leaderboard_builder.build(participants, as_of_day, limit)
            return board.to_dict()

        return await self._cached(self._leaderboard_cache, str(limit), load)

    async def _cached(self, cache, key: str, load) -> dict[str, Any]:
        """Cache-aside read that never stores a value computed before a change.

        Loads run without the lock. The result is stored under the lock, and
        only if no transition invalidated the caches while it was computed.
        """
        value = await cache.get(key)
        if value is not None:
            return value

        generation = self._cache_generation
        value = await load()
        async with self._lock:
            if generation == self._cache_generation:
                await cache.set(key, value)
        return value

    async def value_of(self, participant_id: int) -> dict[str, Any]:
        participant = await self._require_participant(participant_id)
        state = await self._store.read()
        valuation = await self.valuation.value_of(participant, state.current_day if state else 0)
        return {"participantId": participant.id, **valuation.to_dict()}

    async def portfolio(self, participant_id: int) -> dict[str, Any]:
        """Valuation with a per-holding breakdown at the current day."""
        participant = await self._require_participant(participant_id)
        state = await self._store.read()
        as_of_day = state.current_day if state else 0
        valuation, holdings = await self.valuation.breakdown(participant, as_of_day)
        return {
            "participantId": participant.id,
            "teamName": participant.team_label,
            "day": as_of_day,
            **valuation.to_dict(),
            "holdings": [row.to_dict() for row in holdings],
        }

    async def _require_participant(self, participant_id: int):
        participant = await self._participants.get(participant_id)
        if participant is None:
            raise NotFoundError(f"Participant {participant_id} not found")
        return participant

    def _snapshot(self, state: Optional[DayControlState]) -> dict[str, Any]:
        if state is None:
            state = advancer.reset(None, now=self._clock.now(), total_days=self._total_days).state
            last_day_change = None
        else:
            last_day_change = _iso(state.last_day_change)
        return {
            "currentDay": state.current_day,
            "totalDays": state.total_days,
            "isSimulationActive": state.is_simulation_active,
            "isPaused": state.is_paused,
            "remainingMs": state.remaining_ms,
            "phase": state.phase.value,
            "simulationStartDate": _iso(state.simulation_start_date),
            "lastDayChange": last_day_change,
            "autoDay": scheduler_payload(self.scheduler.status()),
        }

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    async def _invalidate_caches(self) -> None:
        """Drop cached reads. Caller holds the lock."""
        self._cache_generation += 1
        await self._day_cache.invalidate()
        await self._leaderboard_cache.invalidate()

    def _schedule_event(self) -> WSEvent:
        status = self.scheduler.status()
        return schedule_changed_event(status.enabled, status.interval_minutes, status.next_run_at)

    async def _announce_new_day(self, transition: DayTransition) -> None:
        day = transition.state.current_day
        message = f"Day {day} has started. Check the latest stock prices."
        if transition.interest_credited:
            message += f" Daily interest was credited to {transition.interest_credited} participants."
        logger.info(
            "Day advanced",
            extra={"current_day": day, "interest_credited": transition.interest_credited},
        )
        await self._publish(
            day_changed_event(day),
            notification_event("New day", message, "info"),
        )

    async def _publish(self, *events: WSEvent) -> None:
        if self._broadcaster is None:
            return
        for event in events:
            try:
                await self._broadcaster.broadcast(event)
            except Exception:
                logger.exception("Broadcast failed", extra={"event": event.type})


def build_day_service(broadcaster: Optional[Broadcaster] = None) -> DayService:
    """Wire a `DayService` to PostgreSQL, Valkey and the configured settings."""
    from app.cache import Cache
    from app.core.config import settings
    from app.repositories import (
        SqlDayControlStore,
        SqlParticipantRepository,
        SqlPriceLookup,
        SqlSettingsRepository,
    )

    return DayService(
        store=SqlDayControlStore(),
        participants=SqlParticipantRepository(),
        prices=SqlPriceLookup(),
        settings_repo=SqlSettingsRepository(),
        day_cache=Cache(prefix="day", default_ttl=settings.current_day_cache_ttl),
        leaderboard_cache=Cache(prefix="leaderboard", default_ttl=settings.leaderboard_cache_ttl),
        broadcaster=broadcaster,
        total_days=settings.simulation_total_days,
        default_interval_minutes=settings.auto_day_default_interval_minutes,
        scheduler_enabled=settings.scheduler_enabled,
    )
