"""Tests for triggers and the Scheduler."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from introbot.clock import FixedClock
from introbot.scheduler import DailyTrigger, Scheduler, WeeklyTrigger

UTC = timezone.utc


class TestDailyTrigger:
    """Tests for DailyTrigger."""

    def test_later_today(self):
        trigger = DailyTrigger(18)
        assert trigger.next_after(datetime(2024, 3, 4, 9, 0, tzinfo=UTC)) == datetime(
            2024, 3, 4, 18, 0, tzinfo=UTC
        )

    def test_tomorrow_when_passed(self):
        trigger = DailyTrigger(18)
        assert trigger.next_after(datetime(2024, 3, 4, 18, 0, tzinfo=UTC)) == datetime(
            2024, 3, 5, 18, 0, tzinfo=UTC
        )

    def test_timezone(self):
        trigger = DailyTrigger(11, timezone="Europe/Moscow")
        fire = trigger.next_after(datetime(2024, 3, 4, 7, 0, tzinfo=UTC))
        assert fire == datetime(2024, 3, 4, 8, 0, tzinfo=UTC)

    @pytest.mark.parametrize("hour, minute", [(24, 0), (-1, 0), (10, 60)])
    def test_invalid_time(self, hour, minute):
        with pytest.raises(ValueError):
            DailyTrigger(hour, minute)


class TestWeeklyTrigger:
    """Tests for WeeklyTrigger."""

    def test_monday_morning(self):
        trigger = WeeklyTrigger(weekday=0, hour=11)
        # Wednesday
        fire = trigger.next_after(datetime(2024, 3, 6, 12, 0, tzinfo=UTC))
        assert fire == datetime(2024, 3, 11, 11, 0, tzinfo=UTC)

    def test_same_day_before_hour(self):
        trigger = WeeklyTrigger(weekday=0, hour=11)
        fire = trigger.next_after(datetime(2024, 3, 4, 10, 59, tzinfo=UTC))
        assert fire == datetime(2024, 3, 4, 11, 0, tzinfo=UTC)

    def test_strictly_after(self):
        trigger = WeeklyTrigger(weekday=0, hour=11)
        fire = trigger.next_after(datetime(2024, 3, 4, 11, 0, tzinfo=UTC))
        assert fire == datetime(2024, 3, 11, 11, 0, tzinfo=UTC)

    def test_invalid_weekday(self):
        with pytest.raises(ValueError):
            WeeklyTrigger(weekday=7, hour=11)


class TestScheduler:
    """Tests for Scheduler.run_pending()."""

    @pytest.fixture
    def clock(self):
        return FixedClock(datetime(2024, 3, 4, 9, 0, tzinfo=UTC))

    async def test_job_runs_when_due(self, clock):
        scheduler = Scheduler(clock)
        job = AsyncMock()
        scheduler.register("daily", DailyTrigger(18), job)

        assert await scheduler.run_pending() == []
        job.assert_not_awaited()

        clock.set(datetime(2024, 3, 4, 18, 0, 10, tzinfo=UTC))
        assert await scheduler.run_pending() == ["daily"]
        job.assert_awaited_once()
        assert scheduler.jobs[0].next_run == datetime(2024, 3, 5, 18, 0, tzinfo=UTC)

        assert await scheduler.run_pending() == []

    async def test_failing_job_does_not_stop_others(self, clock):
        scheduler = Scheduler(clock)
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = AsyncMock()
        scheduler.register("failing", DailyTrigger(10), failing)
        scheduler.register("healthy", DailyTrigger(10), healthy)

        clock.set(datetime(2024, 3, 4, 10, 0, tzinfo=UTC))
        assert await scheduler.run_pending() == ["failing", "healthy"]
        healthy.assert_awaited_once()
        assert scheduler.jobs[0].next_run == datetime(2024, 3, 5, 10, 0, tzinfo=UTC)

    async def test_missed_runs_fire_once(self, clock):
        scheduler = Scheduler(clock)
        job = AsyncMock()
        scheduler.register("daily", DailyTrigger(10), job)

        clock.set(datetime(2024, 3, 8, 12, 0, tzinfo=UTC))
        await scheduler.run_pending()

        job.assert_awaited_once()
        assert scheduler.jobs[0].next_run == datetime(2024, 3, 9, 10, 0, tzinfo=UTC)

    def test_duplicate_name(self, clock):
        scheduler = Scheduler(clock)
        scheduler.register("job", DailyTrigger(10), AsyncMock())
        with pytest.raises(ValueError):
            scheduler.register("job", DailyTrigger(11), AsyncMock())

    async def test_start_and_stop(self, clock):
        scheduler = Scheduler(clock, poll_interval=0.01)
        job = AsyncMock()
        scheduler.register("daily", DailyTrigger(10), job)
        clock.set(datetime(2024, 3, 4, 10, 0, tzinfo=UTC))

        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        job.assert_awaited_once()
