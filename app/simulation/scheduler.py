"""Autonomous day-advance timer.

One `DayScheduler` exists per process, owned by the `DayService` that
created it. It keeps a single asyncio task sleeping until the next run; when
the sleep completes it awaits the `on_fire` callback (the service's advance
path) and rearms for another `interval_ms` unless it was disabled or paused
in the meantime.

Timing rules:
- `configure` and `reset_timer` always arm from "now"; a timer already in
  flight is cancelled, never stretched or shortened.
- `pause` freezes `max(0, deadline - now)`. If the timer already fired and
  its advance is still running, the pause loses: the advance completes and
  the caller gets a full `interval_ms` as the frozen countdown.
- `resume(remaining)` arms a one-shot timer for `remaining`, after which the
  regular cadence continues. `remaining <= 0` fires on the next loop
  iteration.

Only one process may own the timer; nothing here coordinates across
processes.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from app.core.clock import Clock, system_clock
from app.core.logging import get_logger

from .state import SchedulerStatus


logger = get_logger("simulation.scheduler")

FireCallback = Callable[[], Awaitable[None]]


class DayScheduler:
    """Single-owner countdown that triggers automatic day advances."""

    def __init__(self, on_fire: FireCallback, clock: Clock | None = None):
        self._on_fire = on_fire
        self._clock = clock or system_clock
        self._enabled = False
        self._paused = False
        self._interval_ms: Optional[int] = None
        self._task: Optional[asyncio.Task] = None
        self._deadline_ms: Optional[int] = None
        self._next_run_at: Optional[datetime] = None
        self._firing = False

    # ------------------------------------------------------------------
    # Timer plumbing
    # ------------------------------------------------------------------

    @property
    def armed(self) -> bool:
        return self._task is not None

    @property
    def firing(self) -> bool:
        return self._firing

    def _arm(self, delay_ms: int) -> None:
        self._disarm()
        delay_ms = max(0, int(delay_ms))
        self._deadline_ms = self._clock.monotonic_ms() + delay_ms
        self._next_run_at = self._clock.now() + timedelta(milliseconds=delay_ms)
        self._task = asyncio.get_running_loop().create_task(
            self._sleep_then_fire(delay_ms), name="auto-day-timer"
        )
        logger.debug(
            "Auto day timer armed",
            extra={"delay_ms": delay_ms, "next_run_at": self._next_run_at.isoformat()},
        )

    def _disarm(self) -> None:
        task = self._task
        self._task = None
        self._deadline_ms = None
        self._next_run_at = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _sleep_then_fire(self, delay_ms: int) -> None:
        await asyncio.sleep(delay_ms / 1000)
        # Past this point the tick belongs to the advance path; cancel() from
        # pause/configure no longer reaches it.
        self._task = None
        self._deadline_ms = None
        self._next_run_at = None
        await self._fire()

    async def _fire(self) -> None:
        self._firing = True
        try:
            await self._on_fire()
        except Exception:
            logger.exception("Auto day tick failed")
        finally:
            self._firing = False
            if self._enabled and not self._paused and self._task is None:
                self._arm(self._interval_ms)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def configure(self, enabled: bool, interval_ms: Optional[int] = None) -> SchedulerStatus:
        """Enable (and arm from now) or disable the timer.

        While paused the new settings are stored but nothing is armed until
        `resume`.
        """
        if not enabled:
            self._enabled = False
            self._disarm()
            logger.info("Auto day scheduler disabled")
            return self.status()

        interval = interval_ms or self._interval_ms
        if not interval or interval <= 0:
            raise ValueError("interval_ms must be greater than 0")

        self._enabled = True
        self._interval_ms = int(interval)
        if self._paused:
            self._disarm()
        else:
            self._arm(self._interval_ms)
        logger.info(
            "Auto day scheduler enabled",
            extra={"interval_ms": self._interval_ms, "paused": self._paused},
        )
        return self.status()

    def pause(self) -> Optional[int]:
        """Freeze the countdown and return the milliseconds that were left.

        Returns None when no timer was armed.
        """
        if self._paused:
            return None
        self._paused = True

        if self._firing:
            self._disarm()
            logger.info("Pause raced an in-flight tick; countdown restarts on resume")
            return self._interval_ms

        if self._task is None or self._deadline_ms is None:
            return None

        remaining = max(0, self._deadline_ms - self._clock.monotonic_ms())
        self._disarm()
        logger.info("Auto day scheduler paused", extra={"remaining_ms": remaining})
        return remaining

    def resume(self, remaining_ms: Optional[int]) -> None:
        """Continue after a pause with the countdown that was frozen.

        An elapsed countdown arms a zero-delay timer, so the advance runs on
        the next loop iteration and a later `pause` can still cancel it.
        """
        self._paused = False
        if not self._enabled or not self._interval_ms:
            return

        if remaining_ms is None:
            self._arm(self._interval_ms)
        else:
            if remaining_ms <= 0:
                logger.info("Resumed with an elapsed countdown, advancing now")
            self._arm(remaining_ms)
        logger.info("Auto day scheduler resumed", extra={"remaining_ms": remaining_ms})

    def reset_timer(self) -> None:
        """Restart the countdown from now with the configured interval."""
        if self._enabled and not self._paused and self._interval_ms:
            self._arm(self._interval_ms)

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            enabled=self._enabled,
            interval_ms=self._interval_ms,
            next_run_at=self._next_run_at,
            paused=self._paused,
        )

    def restore(self, enabled: bool, interval_ms: Optional[int], paused: bool) -> None:
        """Load persisted configuration at process start."""
        self._paused = paused
        if interval_ms:
            self._interval_ms = int(interval_ms)
        if enabled and self._interval_ms:
            self.configure(True, self._interval_ms)
        else:
            self._enabled = False

    def stop(self) -> None:
        """Disable and forget any pause; the simulation is no longer running."""
        self._enabled = False
        self._paused = False
        self._disarm()
        logger.info("Auto day scheduler stopped")

    def shutdown(self) -> None:
        """Cancel any pending timer; configuration is kept."""
        self._disarm()
        logger.info("Auto day scheduler shut down")
