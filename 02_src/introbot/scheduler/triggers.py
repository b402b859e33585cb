"""Calendar triggers computing the next fire time after a given moment."""

from datetime import datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo


class ITrigger(Protocol):
    """Decides when a job fires next."""

    def next_after(self, moment: datetime) -> datetime:
        """First fire time strictly after ``moment``."""
        ...


class DailyTrigger:
    """Fires every day at hour:minute in the given timezone."""

    def __init__(self, hour: int, minute: int = 0, timezone: str = "UTC"):
        if not 0 <= hour <= 23 or not 0 <= minute <= 59:
            raise ValueError(f"Invalid time {hour}:{minute}")
        self.hour = hour
        self.minute = minute
        self.zone = ZoneInfo(timezone)

    def next_after(self, moment: datetime) -> datetime:
        local = moment.astimezone(self.zone)
        candidate = local.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= local:
            candidate += timedelta(days=1)
        return candidate

    def __repr__(self) -> str:
        return f"DailyTrigger({self.hour:02d}:{self.minute:02d} {self.zone.key})"


class WeeklyTrigger:
    """Fires once a week on ``weekday`` (Monday is 0) at hour:minute."""

    def __init__(self, weekday: int, hour: int, minute: int = 0, timezone: str = "UTC"):
        if not 0 <= weekday <= 6:
            raise ValueError(f"Invalid weekday {weekday}")
        if not 0 <= hour <= 23 or not 0 <= minute <= 59:
            raise ValueError(f"Invalid time {hour}:{minute}")
        self.weekday = weekday
        self.hour = hour
        self.minute = minute
        self.zone = ZoneInfo(timezone)

    def next_after(self, moment: datetime) -> datetime:
        local = moment.astimezone(self.zone)
        days_ahead = (self.weekday - local.weekday()) % 7
        candidate = local.replace(
            hour=self.hour, minute=self.minute, second=0, microsecond=0
        ) + timedelta(days=days_ahead)
        if candidate <= local:
            candidate += timedelta(days=7)
        return candidate

    def __repr__(self) -> str:
        return (
            f"WeeklyTrigger(weekday={self.weekday} "
            f"{self.hour:02d}:{self.minute:02d} {self.zone.key})"
        )
