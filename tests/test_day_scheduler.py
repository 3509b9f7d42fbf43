"""Tests for the auto day-advance timer."""

from __future__ import annotations

import asyncio

import pytest

from app.simulation.scheduler import DayScheduler

from conftest import ManualClock


MINUTE = 60_000


class Recorder:
    """on_fire callback that counts calls and can be held open."""

    def __init__(self):
        self.calls = 0
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None

    async def __call__(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def scheduler(recorder, manual_clock) -> DayScheduler:
    return DayScheduler(recorder, manual_clock)


class TestConfigure:
    """Tests for DayScheduler.configure."""

    @pytest.mark.asyncio
    async def test_enable_arms_from_now(self, scheduler, manual_clock):
        """Enabling arms a timer one interval ahead."""
        status = scheduler.configure(True, 6 * MINUTE)

        assert status.enabled is True
        assert status.interval_minutes == 6
        assert scheduler.armed is True
        assert (status.next_run_at - manual_clock.now()).total_seconds() == 360
        scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_disable_clears_next_run(self, scheduler):
        """Disabling disarms and clears next_run_at."""
        scheduler.configure(True, MINUTE)

        status = scheduler.configure(False)

        assert status.enabled is False
        assert status.next_run_at is None
        assert scheduler.armed is False

    @pytest.mark.asyncio
    async def test_reconfigure_restarts_countdown(self, scheduler, manual_clock):
        """Changing the interval rearms from now, not from the old deadline."""
        scheduler.configure(True, 10 * MINUTE)
        manual_clock.advance(4 * MINUTE)

        scheduler.configure(True, 2 * MINUTE)

        assert scheduler.pause() == 2 * MINUTE

    @pytest.mark.asyncio
    async def test_invalid_interval_rejected(self, scheduler):
        """Enabling needs a positive interval."""
        with pytest.raises(ValueError):
            scheduler.configure(True, 0)
        assert scheduler.status().enabled is False


class TestPauseResume:
    """Tests for pausing and resuming the countdown."""

    @pytest.mark.asyncio
    async def test_pause_returns_remaining(self, scheduler, manual_clock):
        """Pause freezes max(0, deadline - now)."""
        scheduler.configure(True, 6 * MINUTE)
        manual_clock.advance(2 * MINUTE)

        remaining = scheduler.pause()

        assert remaining == 4 * MINUTE
        assert scheduler.armed is False
        assert scheduler.status().paused is True

    @pytest.mark.asyncio
    async def test_pause_never_negative(self, scheduler, manual_clock):
        """A deadline already in the past freezes as zero."""
        scheduler.configure(True, MINUTE)
        manual_clock.advance(5 * MINUTE)

        assert scheduler.pause() == 0
        scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_pause_without_timer_returns_none(self, scheduler):
        """With auto disabled there is nothing to freeze."""
        assert scheduler.pause() is None

    @pytest.mark.asyncio
    async def test_pause_during_tick_returns_full_interval(self, scheduler, recorder):
        """A pause racing an in-flight tick loses and restarts the countdown."""
        scheduler.configure(True, 3 * MINUTE)
        recorder.gate = asyncio.Event()
        tick = asyncio.create_task(scheduler._fire())
        await asyncio.sleep(0)
        assert scheduler.firing is True

        remaining = scheduler.pause()
        recorder.gate.set()
        await tick

        assert remaining == 3 * MINUTE
        assert recorder.calls == 1
        assert scheduler.armed is False

    @pytest.mark.asyncio
    async def test_configure_while_paused_does_not_arm(self, scheduler):
        """New settings wait for resume."""
        scheduler.configure(True, MINUTE)
        scheduler.pause()

        status = scheduler.configure(True, 2 * MINUTE)

        assert status.enabled is True
        assert status.interval_minutes == 2
        assert scheduler.armed is False

    @pytest.mark.asyncio
    async def test_resume_arms_for_remaining(self, scheduler, manual_clock):
        """Resume arms a one-shot timer for the frozen countdown."""
        scheduler.configure(True, 6 * MINUTE)
        manual_clock.advance(MINUTE)
        remaining = scheduler.pause()

        scheduler.resume(remaining)

        assert scheduler.armed is True
        assert scheduler.status().paused is False
        assert (scheduler.status().next_run_at - manual_clock.now()).total_seconds() == 300
        scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_resume_with_elapsed_countdown_fires_now(self, scheduler, recorder, manual_clock):
        """remaining <= 0 advances on the next loop turn, then the cadence continues."""
        scheduler.configure(True, MINUTE)
        scheduler.pause()

        scheduler.resume(0)
        assert recorder.calls == 0
        await asyncio.sleep(0.01)

        assert recorder.calls == 1
        assert scheduler.armed is True
        assert (scheduler.status().next_run_at - manual_clock.now()).total_seconds() == 60
        scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_pause_right_after_elapsed_resume_cancels_tick(self, scheduler, recorder):
        """An immediate advance is still a timer a pause can take back."""
        scheduler.configure(True, MINUTE)
        scheduler.pause()
        scheduler.resume(0)

        remaining = scheduler.pause()
        await asyncio.sleep(0.01)

        assert remaining == 0
        assert recorder.calls == 0
        assert scheduler.armed is False

    @pytest.mark.asyncio
    async def test_resume_while_disabled_is_noop(self, scheduler, recorder):
        """Resume does nothing when auto advance is off."""
        scheduler.pause()

        scheduler.resume(0)
        await asyncio.sleep(0.01)

        assert recorder.calls == 0
        assert scheduler.armed is False


class TestFiring:
    """Tests for the timer callback loop."""

    @pytest.mark.asyncio
    async def test_timer_fires_and_rearms(self, recorder):
        """An elapsed timer calls on_fire and arms the next tick."""
        scheduler = DayScheduler(recorder)
        scheduler.configure(True, 20)

        await asyncio.sleep(0.1)

        assert recorder.calls >= 1
        assert scheduler.armed is True
        scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_callback_error_is_logged_and_rearmed(self, scheduler, recorder):
        """A failing tick does not kill the schedule."""
        scheduler.configure(True, MINUTE)
        recorder.error = RuntimeError("boom")

        await scheduler._fire()

        assert recorder.calls == 1
        assert scheduler.armed is True
        scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_callback_can_disable(self, manual_clock):
        """A tick that disables the scheduler is not rearmed."""
        holder: dict = {}

        async def on_fire():
            holder["scheduler"].configure(False)

        scheduler = DayScheduler(on_fire, manual_clock)
        holder["scheduler"] = scheduler
        scheduler.configure(True, MINUTE)

        await scheduler._fire()

        assert scheduler.armed is False
        assert scheduler.status().enabled is False

    @pytest.mark.asyncio
    async def test_reset_timer_restarts_from_now(self, scheduler, manual_clock):
        """reset_timer rearms a full interval from the current time."""
        scheduler.configure(True, 6 * MINUTE)
        manual_clock.advance(5 * MINUTE)

        scheduler.reset_timer()

        assert scheduler.pause() == 6 * MINUTE


class TestRestore:
    """Tests for restoring persisted configuration."""

    @pytest.mark.asyncio
    async def test_restore_enabled_arms(self, scheduler):
        """An enabled setting arms at startup."""
        scheduler.restore(True, 6 * MINUTE, paused=False)

        assert scheduler.armed is True
        assert scheduler.status().interval_minutes == 6
        scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_restore_paused_stays_disarmed(self, scheduler):
        """A paused simulation restores enabled but not armed."""
        scheduler.restore(True, 6 * MINUTE, paused=True)

        status = scheduler.status()
        assert status.enabled is True
        assert status.paused is True
        assert scheduler.armed is False

    @pytest.mark.asyncio
    async def test_shutdown_keeps_configuration(self, scheduler):
        """Shutdown only cancels the pending timer."""
        scheduler.configure(True, MINUTE)

        scheduler.shutdown()

        assert scheduler.armed is False
        assert scheduler.status().enabled is True
